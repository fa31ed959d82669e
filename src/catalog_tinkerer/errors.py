"""Exception taxonomy for extraction and export.

Whole-operation failures terminate a progress handle in the failed state;
cancellations are a distinct terminal state and never reported as failures.
"""

from enum import Enum
from pathlib import Path


class CatalogError(Exception):
    """Base class for all catalog-tinkerer errors."""


class OperationCancelled(CatalogError):
    """Raised or reported when a cooperative cancellation was honoured."""


class DecodeErrorCode(str, Enum):
    """Reasons a decoder can give for a whole-catalog failure."""

    COULD_NOT_OPEN_CATALOG = "could_not_open_catalog"
    INCOMPATIBLE_CATALOG = "incompatible_catalog"
    NO_IMAGES_FOUND = "no_images_found"
    DECODER_ERROR = "decoder_error"


class DecodeError(CatalogError):
    """Base class for decode failures."""


class DecodeFailed(DecodeError):
    """The decoder could not produce a record set."""

    def __init__(self, reason: str, code: DecodeErrorCode = DecodeErrorCode.DECODER_ERROR):
        super().__init__(reason)
        self.reason = reason
        self.code = code


class DecodeCancelled(DecodeError, OperationCancelled):
    """The decode stopped because cancellation was requested."""

    def __init__(self, reason: str = "Extraction cancelled"):
        super().__init__(reason)


class ExportError(CatalogError):
    """Base class for export failures."""


class ExportDestinationUnwritable(ExportError):
    """The export destination cannot receive files at all."""

    def __init__(self, path: Path | str, reason: str):
        super().__init__(f"Cannot export to {path}: {reason}")
        self.path = Path(path)
        self.reason = reason


class ExportItemFailed(ExportError):
    """A single record could not be written. Never aborts a batch."""

    def __init__(self, filename: str, reason: str):
        super().__init__(f"Unable to write {filename}: {reason}")
        self.filename = filename
        self.reason = reason


class ExportCancelled(ExportError, OperationCancelled):
    """The export stopped because cancellation was requested."""

    def __init__(self, reason: str = "Export cancelled"):
        super().__init__(reason)
