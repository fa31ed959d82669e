"""Catalog Tinkerer.

Extracts image records from compiled asset catalogs and lets you browse,
search and export them, with cancellable progress for every long-running step.

Usage:
    # List images
    catalog-tinkerer list path/to/catalog --search icon

    # Export images to a directory
    catalog-tinkerer export path/to/catalog ./out

    # Stage images for a clipboard handoff
    catalog-tinkerer copy path/to/catalog --search logo
"""

__version__ = "0.1.0"

from .decoding import ExtractionCoordinator, create_decoder
from .export import ExportExecutor
from .progress import OperationState, ProgressHandle
from .records import ImageRecord, ImageRecordStore, SearchFilter
from .session import CatalogSession

__all__ = [
    "CatalogSession",
    "ExtractionCoordinator",
    "ExportExecutor",
    "ImageRecord",
    "ImageRecordStore",
    "OperationState",
    "ProgressHandle",
    "SearchFilter",
    "create_decoder",
]
