"""
Legacy provider (Passage) token validation.

Validating a legacy token takes two sequential calls: verify the signed
token to learn the subject id, then load that user's profile. Nothing is
cached between exchanges.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Protocol

import httpx
import jwt

from ..auth.errors import FetchError
from ..auth.jwks import HTTPKeySetFetcher
from .errors import MigrationError, MigrationErrorCode

logger = logging.getLogger(__name__)

PASSAGE_AUTH_URL = "https://auth.passage.id/v1/apps/{app_id}"
PASSAGE_API_URL = "https://api.passage.id/v1/apps/{app_id}"


class PassageError(Exception):
    """A call to the Passage API failed."""


@dataclass(frozen=True)
class LegacyIdentity:
    """Snapshot of a legacy user's identity attributes."""
    user_id: str
    email: str = ""
    phone: str = ""
    email_verified: bool = False
    phone_verified: bool = False


class LegacyProvider(Protocol):
    """The two legacy provider capabilities a migration relies on."""

    def validate_jwt(self, token: str) -> str:
        """Verify a signed token and return its subject id."""
        ...

    def get_user(self, user_id: str) -> Dict[str, Any]:
        """Fetch a user's profile attributes."""
        ...


class PassageClient:
    """Minimal Passage API client."""

    def __init__(
        self,
        app_id: str,
        api_key: str,
        http_client: httpx.Client,
        timeout: float = 10.0,
    ):
        if not app_id:
            raise ValueError("passage app ID is required")

        self.app_id = app_id
        self.api_key = api_key
        self.timeout = timeout
        self.http_client = http_client
        self.issuer = PASSAGE_AUTH_URL.format(app_id=app_id)
        self.api_url = PASSAGE_API_URL.format(app_id=app_id)
        self.key_fetcher = HTTPKeySetFetcher(
            http_client=self.http_client,
            timeout=timeout,
            url_template=self.issuer + "/.well-known/jwks.json",
        )

    def validate_jwt(self, token: str) -> str:
        """
        Verify a Passage-issued token.

        Returns:
            The Passage user id (``sub``)

        Raises:
            PassageError: token invalid or keys unavailable
        """
        try:
            header = jwt.get_unverified_header(token)
            kid = header.get("kid")
            key_set = self.key_fetcher.fetch(self.app_id)
            signing_key = key_set.find(kid) if kid else None
            if signing_key is None:
                raise PassageError("unable to find appropriate key")

            claims = jwt.decode(
                token,
                signing_key.public_key(),
                algorithms=["RS256"],
                issuer=self.issuer,
                options={"verify_aud": False, "require": ["exp", "sub"]},
            )
        except (jwt.InvalidTokenError, FetchError, ValueError) as e:
            raise PassageError(str(e)) from e

        return claims["sub"]

    def get_user(self, user_id: str) -> Dict[str, Any]:
        """
        Load a Passage user by id.

        Raises:
            PassageError: request failed or the response has no user
        """
        url = f"{self.api_url}/users/{user_id}"
        try:
            response = self.http_client.get(
                url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise PassageError(f"request to {url} failed: {e}") from e

        if response.status_code != 200:
            raise PassageError(f"{response.status_code} - {response.text}")

        try:
            user = response.json().get("user")
        except (ValueError, AttributeError) as e:
            raise PassageError("invalid user response") from e
        if not isinstance(user, dict):
            raise PassageError("user not found in response")
        return user


class PassageValidator:
    """Validates legacy tokens and returns the legacy user's identity."""

    def __init__(self, client: LegacyProvider):
        self.client = client

    def validate(self, token: str) -> LegacyIdentity:
        """
        Validate a Passage token and load the user behind it.

        Raises:
            MigrationError: LEGACY_VALIDATION_FAILED with the cause attached
        """
        try:
            user_id = self.client.validate_jwt(token)
        except PassageError as e:
            raise MigrationError(
                MigrationErrorCode.LEGACY_VALIDATION_FAILED, "invalid passage token", str(e)
            ) from e

        try:
            user = self.client.get_user(user_id)
        except PassageError as e:
            raise MigrationError(
                MigrationErrorCode.LEGACY_VALIDATION_FAILED, "failed to get user details", str(e)
            ) from e

        identity = LegacyIdentity(
            user_id=user.get("id") or user_id,
            email=user.get("email") or "",
            phone=user.get("phone") or "",
            email_verified=bool(user.get("email_verified")),
            phone_verified=bool(user.get("phone_verified")),
        )
        logger.debug(f"Validated passage user {identity.user_id}")
        return identity
