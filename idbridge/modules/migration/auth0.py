"""
Target provider (Auth0) account provisioning.

Migrated users get an Auth0 account holding the same email or phone as
their Passage account. The account is created with a random password
nobody ever sees; users sign in through Auth0 passwordless flows.

Search and create are two separate calls and are not atomic. Two
concurrent migrations of the same unseen identifier can both miss the
search; the losing create fails with a conflict which is reported as
ACCOUNT_CREATION_FAILED and never retried here.
"""

import logging
import secrets
import string
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from .errors import MigrationError, MigrationErrorCode

logger = logging.getLogger(__name__)

PASSWORD_LENGTH = 32


@dataclass(frozen=True)
class ProvisionedAccount:
    """An Auth0 account found or created for a migrated identifier."""
    user_id: str
    identifier: str
    email_verified: bool = False

    @classmethod
    def from_auth0(cls, user: Dict[str, Any], identifier: str) -> "ProvisionedAccount":
        return cls(
            user_id=user.get("user_id", ""),
            identifier=user.get("email") or identifier,
            email_verified=bool(user.get("email_verified")),
        )


def generate_placeholder_password(length: int = PASSWORD_LENGTH) -> str:
    """
    Random password satisfying common Auth0 password policies.

    Only fills a required field; it is never used to sign in.
    """
    symbols = "!@#$%^&*-_"
    alphabet = string.ascii_letters + string.digits + symbols
    required = [
        secrets.choice(string.ascii_lowercase),
        secrets.choice(string.ascii_uppercase),
        secrets.choice(string.digits),
        secrets.choice(symbols),
    ]
    rest = [secrets.choice(alphabet) for _ in range(length - len(required))]
    chars = required + rest
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


class Auth0Provisioner:
    """Finds or creates Auth0 users through the Management API."""

    def __init__(
        self,
        domain: str,
        client_id: str,
        client_secret: str,
        connection: str,
        http_client: httpx.Client,
        timeout: float = 10.0,
    ):
        """
        Args:
            domain: Auth0 tenant domain
            client_id: Machine-to-machine application client id
            client_secret: Machine-to-machine application client secret
            connection: Database connection new users are created in
            http_client: Shared HTTP client, owned and closed by the caller
            timeout: Per-request timeout in seconds
        """
        self.domain = domain
        self.client_id = client_id
        self.client_secret = client_secret
        self.connection = connection
        self.timeout = timeout
        self.http_client = http_client
        self.base_url = f"https://{domain}"

    def get_management_token(self) -> str:
        """
        Obtain a Management API token via client credentials.

        Raises:
            MigrationError: MANAGEMENT_AUTH_FAILED
        """
        payload = {
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "audience": f"{self.base_url}/api/v2/",
        }
        try:
            response = self.http_client.post(
                f"{self.base_url}/oauth/token", json=payload, timeout=self.timeout
            )
        except httpx.HTTPError as e:
            raise MigrationError(
                MigrationErrorCode.MANAGEMENT_AUTH_FAILED,
                "failed to get auth0 management token", str(e)
            ) from e

        if response.status_code != 200:
            raise MigrationError(
                MigrationErrorCode.MANAGEMENT_AUTH_FAILED,
                "failed to get auth0 management token",
                f"{response.status_code} - {response.text}"
            )

        try:
            token = response.json().get("access_token")
        except (ValueError, AttributeError) as e:
            raise MigrationError(
                MigrationErrorCode.MANAGEMENT_AUTH_FAILED,
                "failed to get auth0 management token", "invalid token response"
            ) from e
        if not token:
            raise MigrationError(
                MigrationErrorCode.MANAGEMENT_AUTH_FAILED,
                "failed to get auth0 management token", "no access_token in response"
            )
        return token

    def find_user(self, mgmt_token: str, identifier: str) -> Optional[ProvisionedAccount]:
        """
        Look up an existing user by email.

        A failed search is logged and treated as not found; the create
        call that follows reports any real problem.
        """
        try:
            response = self.http_client.get(
                f"{self.base_url}/api/v2/users-by-email",
                params={"email": identifier},
                headers=self._headers(mgmt_token),
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.warning(f"Auth0 user search failed: {e}")
            return None

        if response.status_code != 200:
            logger.warning(f"Auth0 user search failed: {response.status_code} - {response.text}")
            return None

        try:
            users = response.json()
        except ValueError:
            logger.warning("Auth0 user search returned invalid JSON")
            return None

        if isinstance(users, list) and users:
            return ProvisionedAccount.from_auth0(users[0], identifier)
        return None

    def create_user(
        self,
        mgmt_token: str,
        identifier: str,
        email_verified: bool,
    ) -> ProvisionedAccount:
        """
        Create a user in the configured connection.

        Raises:
            MigrationError: ACCOUNT_CREATION_FAILED with the response body
        """
        payload = {
            "email": identifier,
            "email_verified": email_verified,
            "password": generate_placeholder_password(),
            "connection": self.connection,
            # Ownership was already proven to the legacy provider
            "verify_email": False,
        }
        try:
            response = self.http_client.post(
                f"{self.base_url}/api/v2/users",
                json=payload,
                headers=self._headers(mgmt_token),
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise MigrationError(
                MigrationErrorCode.ACCOUNT_CREATION_FAILED,
                "failed to create/find auth0 user", str(e)
            ) from e

        if response.status_code != 201:
            raise MigrationError(
                MigrationErrorCode.ACCOUNT_CREATION_FAILED,
                "failed to create/find auth0 user",
                f"{response.status_code} - {response.text}"
            )

        try:
            user = response.json()
        except ValueError as e:
            raise MigrationError(
                MigrationErrorCode.ACCOUNT_CREATION_FAILED,
                "failed to create/find auth0 user", response.text
            ) from e

        account = ProvisionedAccount.from_auth0(user, identifier)
        logger.info(f"Created auth0 user {account.user_id}")
        return account

    def find_or_create(self, identifier: str, email_verified: bool) -> ProvisionedAccount:
        """
        Return the Auth0 account for an identifier, creating it if absent.

        An existing account is returned unchanged.
        """
        mgmt_token = self.get_management_token()

        existing = self.find_user(mgmt_token, identifier)
        if existing is not None:
            logger.debug(f"Found existing auth0 user {existing.user_id}")
            return existing

        return self.create_user(mgmt_token, identifier, email_verified)

    @staticmethod
    def _headers(mgmt_token: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {mgmt_token}",
            "Content-Type": "application/json",
        }
