"""
Migration Module - Black Box Interface

Purpose: Move users from Passage to Auth0 without handling passwords
Interface: TokenExchangeService.exchange_token(), get_migration_stats(),
           create_migration_router(), MigrationFactory.build()
Hidden: Passage and Auth0 API calls, ledger locking

Each legacy user is recorded in the ledger exactly once, however many
times their token is exchanged.
"""

from .auth0 import Auth0Provisioner, ProvisionedAccount
from .errors import MigrationError, MigrationErrorCode
from .exchange import ExchangeResult, TokenExchangeService
from .factory import MigrationFactory
from .ledger import InMemoryMigrationLedger, MigrationLedger, MigrationRecord
from .passage import LegacyIdentity, PassageClient, PassageError, PassageValidator
from .router import create_migration_router

__all__ = [
    "Auth0Provisioner",
    "ExchangeResult",
    "InMemoryMigrationLedger",
    "LegacyIdentity",
    "MigrationError",
    "MigrationErrorCode",
    "MigrationFactory",
    "MigrationLedger",
    "MigrationRecord",
    "PassageClient",
    "PassageError",
    "PassageValidator",
    "ProvisionedAccount",
    "TokenExchangeService",
    "create_migration_router",
]
