"""Catalog decoding package.

Provides a factory function to create the configured decoder and the
coordinator that drives it.
"""

from .base import CatalogDecoder, DecoderOptions, DoneCallback, RecordSink
from .coordinator import ExtractionCoordinator
from .directory import DirectoryDecoder


def create_decoder(decoder_type: str = "directory") -> CatalogDecoder:
    """Create a decoder instance.

    Args:
        decoder_type: Type of decoder ("directory")

    Returns:
        Configured CatalogDecoder instance

    Raises:
        ValueError: If decoder_type is not recognized

    """
    if decoder_type == "directory":
        return DirectoryDecoder()
    else:
        raise ValueError(f"Unknown decoder type: {decoder_type}")


__all__ = [
    "CatalogDecoder",
    "DecoderOptions",
    "DoneCallback",
    "RecordSink",
    "DirectoryDecoder",
    "ExtractionCoordinator",
    "create_decoder",
]
