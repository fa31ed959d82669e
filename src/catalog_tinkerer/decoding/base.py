"""Abstract base class for catalog decoders.

The binary catalog format is handled entirely by a decoder; the rest of the
application only consumes its records and its progress reporting.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path

from pydantic import BaseModel, Field

from ..progress import ProgressHandle
from ..records import ImageRecord

RecordSink = Callable[[ImageRecord], None]
DoneCallback = Callable[[int, BaseException | None], None]


class DecoderOptions(BaseModel):
    """Explicit per-extraction decoder configuration."""

    max_count: int | None = Field(
        default=None, ge=1, description="Stop after this many records (lightweight read)"
    )
    ignore_packed_assets: bool = Field(
        default=True, description="Skip packed texture atlases"
    )
    distinguish_catalogs_from_theme_stores: bool = Field(
        default=False, description="Label records coming from theme stores"
    )


class CatalogDecoder(ABC):
    """Abstract interface for catalog decoders.

    Attributes:
        blocking: True if ``decode`` only returns once ``on_done`` has been
            called. Non-blocking decoders may return at once and report from
            their own thread; the operation then ends only at ``on_done``.

    """

    blocking: bool = False

    @abstractmethod
    def decode(
        self,
        source: Path,
        progress: ProgressHandle,
        on_record: RecordSink,
        on_done: DoneCallback,
        options: DecoderOptions,
    ) -> None:
        """Decode a catalog on the calling (background) thread or a thread of its own.

        The decoder reports work on ``progress``, calls ``on_record`` for each
        record in emission order, checks ``progress.cancelled`` after every
        record, and calls ``on_done`` exactly once: with the record count on
        success, or with a ``DecodeFailed``/``DecodeCancelled`` error.

        Args:
            source: Path to the catalog
            progress: Handle to report on and to poll for cancellation
            on_record: Sink for newly decoded records
            on_done: Terminal callback
            options: Decoder configuration for this extraction

        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the decoder identifier."""
        pass
