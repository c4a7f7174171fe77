"""
Migration Factory following Black Box Design principles.

Wires the Passage validator, Auth0 provisioner and ledger into a token
exchange service, or builds nothing when migration is not configured.
"""

import logging
from typing import Optional

import httpx

from .auth0 import Auth0Provisioner
from .exchange import TokenExchangeService
from .ledger import InMemoryMigrationLedger, MigrationLedger
from .passage import PassageClient, PassageValidator
from ...config.provider import MigrationConfig

logger = logging.getLogger(__name__)


class MigrationFactory:
    """Composition root for the migration stack."""

    @staticmethod
    def build(
        migration_config: MigrationConfig,
        http_client: httpx.Client,
        ledger: Optional[MigrationLedger] = None,
    ) -> Optional[TokenExchangeService]:
        """
        Build the token exchange service.

        Args:
            migration_config: Migration configuration
            http_client: Shared HTTP client, owned and closed by the caller
            ledger: Ledger to record migrations in (in-memory if omitted)

        Returns:
            TokenExchangeService, or None if Passage credentials are absent
        """
        if not migration_config.is_configured:
            logger.info(
                "Migration endpoints disabled (set PASSAGE_APP_ID and PASSAGE_API_KEY to enable)"
            )
            return None

        if not migration_config.client_id or not migration_config.client_secret:
            logger.warning("CLIENT_ID/CLIENT_SECRET not set; Auth0 provisioning will fail")

        passage_client = PassageClient(
            migration_config.passage_app_id,
            migration_config.passage_api_key,
            http_client=http_client,
            timeout=migration_config.http_timeout,
        )
        provisioner = Auth0Provisioner(
            domain=migration_config.auth0_domain,
            client_id=migration_config.client_id or "",
            client_secret=migration_config.client_secret or "",
            connection=migration_config.connection,
            http_client=http_client,
            timeout=migration_config.http_timeout,
        )

        return TokenExchangeService(
            validator=PassageValidator(passage_client),
            provisioner=provisioner,
            ledger=ledger or InMemoryMigrationLedger(),
        )
