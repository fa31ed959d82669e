"""Image record package.

Provides the decoded record model, the shared record store and search filtering.
"""

from .base import ImageRecord
from .search import SearchFilter, apply_filter, matches
from .store import ImageRecordStore, StoreSealedError

__all__ = [
    "ImageRecord",
    "ImageRecordStore",
    "StoreSealedError",
    "SearchFilter",
    "apply_filter",
    "matches",
]
