"""Incremental substring search over image records.

Matching is case and diacritic insensitive ("icon" matches "Ícon-2").
"""

from __future__ import annotations

import threading
import unicodedata
from collections.abc import Sequence

from .base import ImageRecord
from .store import ImageRecordStore


def fold(text: str) -> str:
    """Fold text for comparison: strip combining marks and casefold."""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


def matches(record: ImageRecord, term: str) -> bool:
    """Return True if the record's name contains the term."""
    return fold(term) in fold(record.name)


def apply_filter(records: Sequence[ImageRecord], term: str) -> list[ImageRecord]:
    """Filter records by name, preserving their order.

    Args:
        records: Ordered records to filter
        term: Search term; an empty term keeps every record

    Returns:
        New list holding the matching records in their original order

    """
    if not term:
        return list(records)
    needle = fold(term)
    return [record for record in records if needle in fold(record.name)]


class SearchFilter:
    """Filtered view over a record store, memoised on (store version, term)."""

    def __init__(self, store: ImageRecordStore, term: str = ""):
        self.store = store
        self._term = term
        self._lock = threading.Lock()
        self._cache_key: tuple[int, str] | None = None
        self._cache: list[ImageRecord] = []

    @property
    def term(self) -> str:
        return self._term

    @term.setter
    def term(self, value: str) -> None:
        self._term = value or ""

    def results(self) -> list[ImageRecord]:
        """Return the records matching the current term."""
        version, records = self.store.versioned_snapshot()
        term = self._term
        key = (version, term)
        with self._lock:
            if key != self._cache_key:
                self._cache = apply_filter(records, term)
                self._cache_key = key
            return list(self._cache)

    def __len__(self) -> int:
        return len(self.results())
