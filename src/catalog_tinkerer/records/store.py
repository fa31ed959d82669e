"""Ordered, thread-safe store of decoded image records.

One writer (the active extraction) appends; any number of readers take
snapshots. A snapshot is always "every record up to some append", never a
torn read.
"""

from __future__ import annotations

import threading

from loguru import logger

from .base import ImageRecord


class StoreSealedError(RuntimeError):
    """Raised when appending to a store whose decode has terminated."""


class ImageRecordStore:
    """Append-only record sequence with snapshot-on-read semantics."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: list[ImageRecord] = []
        self._version = 0
        self._sealed = False

    def append(self, record: ImageRecord) -> ImageRecord:
        """Append a record, stamping it with its insertion index.

        Args:
            record: Record emitted by the decoder

        Returns:
            The stored record (a copy carrying the assigned index)

        Raises:
            StoreSealedError: If the store has been handed to read-only consumers

        """
        with self._lock:
            if self._sealed:
                raise StoreSealedError("Record store is read-only after extraction finished")
            stored = record.model_copy(update={"index": len(self._records)})
            self._records.append(stored)
            self._version += 1
        return stored

    def clear(self) -> None:
        """Drop every record. Only the owning extraction may call this."""
        with self._lock:
            if self._sealed:
                raise StoreSealedError("Record store is read-only after extraction finished")
            dropped = len(self._records)
            self._records = []
            self._version += 1
        logger.debug("Cleared {} records from store", dropped)

    def seal(self) -> None:
        """Transfer ownership to read-only consumers."""
        with self._lock:
            self._sealed = True

    def snapshot(self) -> tuple[ImageRecord, ...]:
        """Return every record currently known, in insertion order."""
        with self._lock:
            return tuple(self._records)

    def versioned_snapshot(self) -> tuple[int, tuple[ImageRecord, ...]]:
        """Return the mutation counter together with a consistent snapshot."""
        with self._lock:
            return self._version, tuple(self._records)

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    @property
    def sealed(self) -> bool:
        with self._lock:
            return self._sealed

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
