"""In-memory store of application accounts, keyed by Auth0 user id."""

from datetime import datetime, timezone
from typing import Dict, List

from pydantic import BaseModel

from ..storage import ReadWriteLock


class Account(BaseModel):
    """Application-level account for an authenticated user."""

    id: str
    user_id: str
    email: str
    created_at: str


class AccountNotFound(KeyError):
    """No account exists for the user id."""


class InMemoryAccountStore:
    """Accounts for the process lifetime, one per user id."""

    def __init__(self):
        self._accounts: Dict[str, Account] = {}
        self._next_id = 1
        self._lock = ReadWriteLock()

    def get_account_by_user_id(self, user_id: str) -> Account:
        """
        Raises:
            AccountNotFound: no account for this user id
        """
        with self._lock.read_lock():
            account = self._accounts.get(user_id)
        if account is None:
            raise AccountNotFound(f"account not found for user ID: {user_id}")
        return account

    def create_account(self, user_id: str, email: str) -> Account:
        """Create an account, returning the existing one if already present."""
        with self._lock.write_lock():
            return self._insert(user_id, email)

    def create_account_if_not_exists(self, user_id: str, email: str) -> Account:
        """Return the user's account, creating it on first access."""
        with self._lock.read_lock():
            existing = self._accounts.get(user_id)
        if existing is not None:
            return existing

        with self._lock.write_lock():
            return self._insert(user_id, email)

    def list_accounts(self) -> List[Account]:
        with self._lock.read_lock():
            return list(self._accounts.values())

    def _insert(self, user_id: str, email: str) -> Account:
        # Caller holds the write lock
        existing = self._accounts.get(user_id)
        if existing is not None:
            return existing

        account = Account(
            id=str(self._next_id),
            user_id=user_id,
            email=email,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        self._accounts[user_id] = account
        self._next_id += 1
        return account
