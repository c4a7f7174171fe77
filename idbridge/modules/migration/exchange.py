"""
Token exchange service.

Exchanges a Passage token for an Auth0 account:
1. Validate the Passage token and load the legacy user
2. Pick the identifier (email, else phone)
3. Note whether the ledger already knows this legacy user
4. Find or create the Auth0 account
5. Record the exchange in the ledger
6. Report the account and whether this was a new migration

``is_new_migration`` comes from the read in step 3, taken before
provisioning. Two concurrent first exchanges for the same legacy user can
therefore both report True, while the ledger still ends up with a single
record. Treat the flag as informational.

Issuing Auth0 tokens for migrated users is left to Auth0 Actions; the
service stops once the account exists.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Protocol

from .auth0 import ProvisionedAccount
from .errors import MigrationError, MigrationErrorCode
from .ledger import MigrationLedger, MigrationRecord
from .passage import LegacyIdentity

logger = logging.getLogger(__name__)


class SourceTokenValidator(Protocol):
    def validate(self, token: str) -> LegacyIdentity:
        ...


class TargetAccountProvisioner(Protocol):
    def find_or_create(self, identifier: str, email_verified: bool) -> ProvisionedAccount:
        ...


@dataclass(frozen=True)
class ExchangeResult:
    """Outcome of a successful token exchange."""
    target_user_id: str
    identifier: str
    is_new_migration: bool


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenExchangeService:
    """Migrates legacy users to the target provider, once per legacy id."""

    def __init__(
        self,
        validator: SourceTokenValidator,
        provisioner: TargetAccountProvisioner,
        ledger: MigrationLedger,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize with injected collaborators.

        Args:
            validator: Legacy token validator
            provisioner: Target account provisioner
            ledger: Migration ledger, owned by this service
            clock: Returns the current time (timezone-aware)
        """
        self.validator = validator
        self.provisioner = provisioner
        self.ledger = ledger
        self._clock = clock

    def exchange_token(self, source_token: str) -> ExchangeResult:
        """
        Exchange a legacy token for a target provider account.

        Raises:
            MigrationError: validation or provisioning failed
        """
        legacy = self.validator.validate(source_token)

        if not legacy.email and not legacy.phone:
            raise MigrationError(
                MigrationErrorCode.NO_IDENTIFIER, "passage user has no email or phone"
            )

        identifier = legacy.email or legacy.phone

        is_new_migration = self.ledger.get(legacy.user_id) is None

        account = self.provisioner.find_or_create(identifier, legacy.email_verified)

        record, created = self.ledger.upsert(
            legacy.user_id, account.user_id, identifier, self._clock()
        )
        if created:
            logger.info(f"Migrated passage user {legacy.user_id} to auth0 user {account.user_id}")
        else:
            logger.info(f"Repeat exchange for passage user {legacy.user_id}")

        return ExchangeResult(
            target_user_id=account.user_id,
            identifier=identifier,
            is_new_migration=is_new_migration,
        )

    def get_migration_status(self, legacy_user_id: str) -> Optional[MigrationRecord]:
        """Migration record for a legacy user id, if migrated."""
        return self.ledger.get(legacy_user_id)

    def get_migration_stats(self) -> Dict[str, int]:
        """Ledger statistics."""
        total = self.ledger.count()
        return {
            "total_migrated_users": total,
            "cache_size": total,
        }
