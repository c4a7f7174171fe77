"""Authentication interfaces following Black Box Design principles."""
from dataclasses import dataclass
from typing import Protocol

from .jwks import KeySet


@dataclass(frozen=True)
class AuthenticatedIdentity:
    """Identity proven by a verified bearer token, scoped to one request."""
    subject: str
    email: str = ""


class KeySetFetcher(Protocol):
    """Protocol for signing key retrieval - allows swappable implementations."""

    def fetch(self, domain: str) -> KeySet:
        """
        Retrieve the current signing keys published for a domain.

        Args:
            domain: Identity provider domain

        Returns:
            KeySet of published keys

        Raises:
            FetchError: keys could not be retrieved or parsed
        """
        ...


class TokenVerifier(Protocol):
    """Protocol for bearer token verification."""

    def verify(
        self,
        token: str,
        expected_audience: str,
        expected_issuer_domain: str,
    ) -> AuthenticatedIdentity:
        """
        Verify a bearer token.

        Raises:
            AuthError: the token was rejected
        """
        ...
