"""Thread-safe in-memory storage for travel records."""
from __future__ import annotations

import threading
from typing import Callable, Dict, List, Optional

from .models import TravelRecord


class TravelRecordNotFound(LookupError):
    """Raised when a record id does not exist for the requesting user."""


class TravelRepository:
    """Stores travel records and serializes every mutation behind one lock."""

    def __init__(self) -> None:
        self._records: Dict[str, TravelRecord] = {}
        self._lock = threading.Lock()

    def create(self, record: TravelRecord) -> TravelRecord:
        with self._lock:
            self._records[record.id] = record
            return record.model_copy()

    def get(self, record_id: str) -> Optional[TravelRecord]:
        with self._lock:
            record = self._records.get(record_id)
            return record.model_copy() if record else None

    def update(self, record_id: str, user_id: str, mutate: Callable[[TravelRecord], TravelRecord]) -> TravelRecord:
        """Run ``mutate`` on the stored record while holding the lock.

        ``mutate`` receives the current snapshot, so route merges of concurrent
        updates to one session are applied one after the other.
        """
        with self._lock:
            record = self._records.get(record_id)
            if record is None or record.user_id != user_id:
                raise TravelRecordNotFound(f"travel record {record_id} not found for user {user_id}")
            updated = mutate(record.model_copy())
            self._records[record_id] = updated
            return updated.model_copy()

    def list(self, *, user_id: Optional[str] = None, month: Optional[int] = None, year: Optional[int] = None) -> List[TravelRecord]:
        with self._lock:
            records = list(self._records.values())
        if user_id is not None:
            records = [record for record in records if record.user_id == user_id]
        if month is not None:
            records = [record for record in records if record.date.month == month]
        if year is not None:
            records = [record for record in records if record.date.year == year]
        records.sort(key=lambda record: (record.date, record.created_at), reverse=True)
        return [record.model_copy() for record in records]

    def executives(self) -> List[Dict[str, object]]:
        """Return users that have at least one record, with their record counts."""
        counts: Dict[str, int] = {}
        with self._lock:
            for record in self._records.values():
                counts[record.user_id] = counts.get(record.user_id, 0) + 1
        return [{"user_id": user_id, "travel_count": count} for user_id, count in sorted(counts.items())]

    def clear(self) -> None:
        with self._lock:
            self._records.clear()


travel_store = TravelRepository()
