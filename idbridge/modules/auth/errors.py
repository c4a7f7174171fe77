"""Authentication error taxonomy."""

from enum import Enum
from typing import Optional


class AuthErrorCode(str, Enum):
    """Reason a bearer token was rejected."""

    MALFORMED = "malformed"
    UNSUPPORTED_ALGORITHM = "unsupported_algorithm"
    MISSING_KEY_ID = "missing_key_id"
    KEYSET_UNAVAILABLE = "keyset_unavailable"
    KEY_NOT_FOUND = "key_not_found"
    INVALID_SIGNATURE = "invalid_signature"
    INVALID_AUDIENCE = "invalid_audience"
    INVALID_ISSUER = "invalid_issuer"
    EXPIRED = "expired"
    MISSING_EXPIRY = "missing_expiry"
    MISSING_SUBJECT = "missing_subject"


# Short descriptions for operator logs; callers only ever see a generic message.
_DESCRIPTIONS = {
    AuthErrorCode.MALFORMED: "malformed token",
    AuthErrorCode.UNSUPPORTED_ALGORITHM: "unexpected signing method",
    AuthErrorCode.MISSING_KEY_ID: "kid header not found",
    AuthErrorCode.KEYSET_UNAVAILABLE: "signing keys unavailable",
    AuthErrorCode.KEY_NOT_FOUND: "unable to find appropriate key",
    AuthErrorCode.INVALID_SIGNATURE: "invalid signature",
    AuthErrorCode.INVALID_AUDIENCE: "invalid audience",
    AuthErrorCode.INVALID_ISSUER: "invalid issuer",
    AuthErrorCode.EXPIRED: "token expired",
    AuthErrorCode.MISSING_EXPIRY: "expiration claim not found",
    AuthErrorCode.MISSING_SUBJECT: "sub claim not found",
}


class AuthError(Exception):
    """A bearer token failed verification."""

    def __init__(self, code: AuthErrorCode, detail: Optional[str] = None):
        self.code = code
        self.detail = detail
        super().__init__(self.message)

    @property
    def message(self) -> str:
        """Short description of the failed check."""
        return _DESCRIPTIONS[self.code]

    def __repr__(self) -> str:
        return f"AuthError(code={self.code.value!r}, detail={self.detail!r})"


class FetchError(Exception):
    """The signing key set could not be retrieved."""
