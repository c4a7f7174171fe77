"""
Migration ledger.

Records which legacy users have been migrated and to which Auth0
account. The ledger holds at most one record per legacy user id; a
record's first-migration time never changes and its last-exchange time
only moves forward.

InMemoryMigrationLedger keeps records for the process lifetime only. A
durable store can implement MigrationLedger without touching the
exchange service.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, List, Optional, Protocol, Tuple

from ..storage import ReadWriteLock


@dataclass
class MigrationRecord:
    """Migration status of one legacy user."""
    legacy_user_id: str
    target_user_id: str
    identifier: str
    migrated_at: datetime
    last_exchange: datetime

    def to_dict(self) -> dict:
        return {
            "passage_user_id": self.legacy_user_id,
            "auth0_user_id": self.target_user_id,
            "email": self.identifier,
            "migrated_at": self.migrated_at.isoformat(),
            "last_exchange": self.last_exchange.isoformat(),
        }


class MigrationLedger(Protocol):
    """Protocol for migration ledgers."""

    def get(self, legacy_user_id: str) -> Optional[MigrationRecord]:
        """Return a copy of the record for a legacy user, if any."""
        ...

    def upsert(
        self,
        legacy_user_id: str,
        target_user_id: str,
        identifier: str,
        now: datetime,
    ) -> Tuple[MigrationRecord, bool]:
        """
        Insert a record if absent, then mark an exchange at ``now``.

        Returns:
            Tuple of (record copy, whether it was created by this call)
        """
        ...

    def count(self) -> int:
        """Number of migrated legacy users."""
        ...


class InMemoryMigrationLedger:
    """Dict-backed ledger guarded by one reader/writer lock."""

    def __init__(self):
        self._records: Dict[str, MigrationRecord] = {}
        self._lock = ReadWriteLock()

    def get(self, legacy_user_id: str) -> Optional[MigrationRecord]:
        with self._lock.read_lock():
            record = self._records.get(legacy_user_id)
            return replace(record) if record else None

    def upsert(
        self,
        legacy_user_id: str,
        target_user_id: str,
        identifier: str,
        now: datetime,
    ) -> Tuple[MigrationRecord, bool]:
        with self._lock.write_lock():
            # Re-check under the write lock; a concurrent exchange may have inserted
            record = self._records.get(legacy_user_id)
            created = record is None
            if created:
                record = MigrationRecord(
                    legacy_user_id=legacy_user_id,
                    target_user_id=target_user_id,
                    identifier=identifier,
                    migrated_at=now,
                    last_exchange=now,
                )
                self._records[legacy_user_id] = record
            elif now > record.last_exchange:
                record.last_exchange = now
            return replace(record), created

    def count(self) -> int:
        with self._lock.read_lock():
            return len(self._records)

    def snapshot(self) -> List[MigrationRecord]:
        """Copies of all records."""
        with self._lock.read_lock():
            return [replace(record) for record in self._records.values()]
