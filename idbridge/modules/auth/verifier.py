"""
Bearer token verifier.

Validates a JWT against the signing keys published by its issuer. Every
check maps to one AuthErrorCode so operators can tell which step failed,
while callers only learn that the token was rejected.

Verification order:
1. Token structure
2. Signing algorithm (asymmetric allow-list only)
3. Key id in the header
4. Fresh key set from the fetcher
5. Key lookup by kid
6. Signature with that one key
7. Audience, issuer, expiry and subject claims
"""

import logging
import math
import time
from typing import Any, Callable, Dict, Iterable, Optional

import jwt

from .errors import AuthError, AuthErrorCode, FetchError
from .interfaces import AuthenticatedIdentity, KeySetFetcher

logger = logging.getLogger(__name__)

DEFAULT_ALGORITHMS = ("RS256", "RS384", "RS512")


class JWKSTokenVerifier:
    """
    Verifies bearer tokens using keys from a KeySetFetcher.

    Stateless apart from its collaborators, so safe to call concurrently.
    """

    def __init__(
        self,
        fetcher: KeySetFetcher,
        allowed_algorithms: Iterable[str] = DEFAULT_ALGORITHMS,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize verifier with injected key fetcher.

        Args:
            fetcher: Source of the issuer's signing keys
            allowed_algorithms: Accepted asymmetric JWS algorithms
            clock: Returns the current unix time
        """
        self.fetcher = fetcher
        self.allowed_algorithms = tuple(allowed_algorithms)
        self._clock = clock

    def verify(
        self,
        token: str,
        expected_audience: str,
        expected_issuer_domain: str,
    ) -> AuthenticatedIdentity:
        """
        Verify a token and return the identity it proves.

        Args:
            token: Raw JWT (no Bearer prefix)
            expected_audience: Audience the token must be issued for
            expected_issuer_domain: Domain of the issuer and its JWKS

        Returns:
            AuthenticatedIdentity for the token subject

        Raises:
            AuthError: the token was rejected
        """
        try:
            header = jwt.get_unverified_header(token)
        except jwt.DecodeError as e:
            raise AuthError(AuthErrorCode.MALFORMED, str(e)) from e

        algorithm = header.get("alg")
        if algorithm not in self.allowed_algorithms:
            raise AuthError(
                AuthErrorCode.UNSUPPORTED_ALGORITHM,
                f"unexpected signing method: {algorithm}",
            )

        kid = header.get("kid")
        if not isinstance(kid, str) or not kid:
            raise AuthError(AuthErrorCode.MISSING_KEY_ID)

        try:
            key_set = self.fetcher.fetch(expected_issuer_domain)
        except FetchError as e:
            raise AuthError(AuthErrorCode.KEYSET_UNAVAILABLE, str(e)) from e

        signing_key = key_set.find(kid)
        if signing_key is None:
            raise AuthError(AuthErrorCode.KEY_NOT_FOUND, f"no key with kid {kid!r}")

        claims = self._verify_signature(token, signing_key, algorithm)
        self._validate_claims(claims, expected_audience, expected_issuer_domain)

        email = claims.get("email")
        return AuthenticatedIdentity(
            subject=claims["sub"],
            email=email if isinstance(email, str) else "",
        )

    def _verify_signature(self, token: str, signing_key, algorithm: str) -> Dict[str, Any]:
        try:
            public_key = signing_key.public_key()
        except ValueError as e:
            raise AuthError(AuthErrorCode.INVALID_SIGNATURE, f"unusable key: {e}") from e

        try:
            # Claims are checked separately so each failure keeps its own code
            claims = jwt.decode(
                token,
                public_key,
                algorithms=[algorithm],
                options={
                    "verify_signature": True,
                    "verify_aud": False,
                    "verify_iss": False,
                    "verify_exp": False,
                    "verify_nbf": False,
                    "verify_iat": False,
                    "verify_sub": False,
                    "verify_jti": False,
                },
            )
        except jwt.InvalidSignatureError as e:
            raise AuthError(AuthErrorCode.INVALID_SIGNATURE, str(e)) from e
        except jwt.DecodeError as e:
            raise AuthError(AuthErrorCode.MALFORMED, str(e)) from e
        except jwt.InvalidTokenError as e:
            raise AuthError(AuthErrorCode.INVALID_SIGNATURE, str(e)) from e

        if not isinstance(claims, dict):
            raise AuthError(AuthErrorCode.MALFORMED, "claims are not an object")
        return claims

    def _validate_claims(
        self,
        claims: Dict[str, Any],
        expected_audience: str,
        expected_issuer_domain: str,
    ) -> None:
        audience = claims.get("aud")
        if isinstance(audience, str):
            audience_ok = audience == expected_audience
        elif isinstance(audience, list):
            audience_ok = expected_audience in [a for a in audience if isinstance(a, str)]
        else:
            audience_ok = False
        if not audience_ok:
            raise AuthError(
                AuthErrorCode.INVALID_AUDIENCE,
                f"expected {expected_audience!r}, got {audience!r}",
            )

        expected_issuer = f"https://{expected_issuer_domain}/"
        if claims.get("iss") != expected_issuer:
            raise AuthError(
                AuthErrorCode.INVALID_ISSUER,
                f"expected {expected_issuer!r}, got {claims.get('iss')!r}",
            )

        expiry = _numeric(claims.get("exp"))
        if expiry is None:
            raise AuthError(AuthErrorCode.MISSING_EXPIRY)
        # Expired only once the current second is past exp
        now = int(self._clock())
        if now > int(expiry):
            raise AuthError(AuthErrorCode.EXPIRED, f"exp {int(expiry)} < now {now}")

        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise AuthError(AuthErrorCode.MISSING_SUBJECT)


def _numeric(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    # NaN and Infinity survive JSON decoding
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value
