"""
Accounts Module - Black Box Interface

Purpose: Application account records for authenticated users
Interface: InMemoryAccountStore, create_account_router()
Hidden: Id allocation, locking
"""

from .router import create_account_router
from .store import Account, AccountNotFound, InMemoryAccountStore

__all__ = ["Account", "AccountNotFound", "InMemoryAccountStore", "create_account_router"]
