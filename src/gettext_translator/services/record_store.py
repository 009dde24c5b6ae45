"""Record store: process-wide keyed tables for translations and changelog entries."""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional

TRANSLATIONS = "translations"
CHANGELOG = "changelog"


class RecordStore:
    """Thread-safe in-memory tables plus the approval counter.

    Pure key/value access; no business logic. Records are immutable, so
    callers replace a record instead of mutating it. Unknown table names
    raise ``KeyError``.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._tables: dict[str, dict[str, Any]] = {TRANSLATIONS: {}, CHANGELOG: {}}
        self._approved = 0

    def _table(self, table: str) -> dict[str, Any]:
        try:
            return self._tables[table]
        except KeyError:
            raise KeyError(f"unknown table: {table}") from None

    # ── Tables ────────────────────────────────────────────────────

    def insert(self, table: str, record_id: str, record: Any) -> None:
        with self._lock:
            self._table(table)[record_id] = record

    def get(self, table: str, record_id: str) -> Optional[Any]:
        """Return the record or None when *record_id* is not in *table*."""
        with self._lock:
            return self._table(table).get(record_id)

    def list(self, table: str) -> list[Any]:
        with self._lock:
            return list(self._table(table).values())

    def reset(self, table: str) -> None:
        with self._lock:
            self._table(table).clear()

    def count_where(self, table: str, predicate: Callable[[Any], bool]) -> int:
        return sum(1 for record in self.list(table) if predicate(record))

    def compare_and_set(self, table: str, record_id: str, expected: Any, new: Any) -> bool:
        """Replace the record only if it is still *expected*."""
        with self._lock:
            rows = self._table(table)
            if rows.get(record_id) != expected:
                return False
            rows[record_id] = new
            return True

    # ── Approval counter ──────────────────────────────────────────

    def increment_approved(self) -> int:
        with self._lock:
            self._approved += 1
            return self._approved

    def approved_count(self) -> int:
        with self._lock:
            return self._approved

    def reset_approved_counter(self) -> int:
        with self._lock:
            self._approved = 0
            return 0
