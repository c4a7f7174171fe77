"""Migration error taxonomy."""

from enum import Enum
from typing import Optional


class MigrationErrorCode(str, Enum):
    """Reason a token exchange failed."""

    NO_IDENTIFIER = "no_identifier"
    LEGACY_VALIDATION_FAILED = "legacy_validation_failed"
    MANAGEMENT_AUTH_FAILED = "management_auth_failed"
    ACCOUNT_CREATION_FAILED = "account_creation_failed"
    INVALID_REQUEST_BODY = "invalid_request_body"


class MigrationError(Exception):
    """
    A token exchange failed.

    The message carries the underlying provider error text. Migration
    callers have already proven ownership of the source identity, so the
    text is returned to them as-is.
    """

    def __init__(self, code: MigrationErrorCode, message: str, detail: Optional[str] = None):
        self.code = code
        self.detail = detail
        super().__init__(f"{message}: {detail}" if detail else message)

    def __repr__(self) -> str:
        return f"MigrationError(code={self.code.value!r}, message={str(self)!r})"
