"""Directory decoder.

Treats a folder of loose image files (for example an exported ``.xcassets``
tree) as a catalog. Every readable image is re-encoded to PNG with Pillow.
"""

from __future__ import annotations

from io import BytesIO
from pathlib import Path

from loguru import logger
from PIL import Image as PILImage
from PIL import UnidentifiedImageError

from ..errors import DecodeCancelled, DecodeErrorCode, DecodeFailed
from ..progress import ProgressHandle
from ..records import ImageRecord
from .base import CatalogDecoder, DecoderOptions, DoneCallback, RecordSink

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif", ".bmp", ".tif", ".tiff", ".webp"}
PACKED_ASSET_PREFIX = "ZZZZPackedAsset"
THEME_STORE_SUFFIX = ".car"


class DirectoryDecoder(CatalogDecoder):
    """Decode loose image files found under a directory."""

    blocking = True

    @property
    def name(self) -> str:
        return "directory"

    def decode(
        self,
        source: Path,
        progress: ProgressHandle,
        on_record: RecordSink,
        on_done: DoneCallback,
        options: DecoderOptions,
    ) -> None:
        if not source.is_dir():
            on_done(
                0,
                DecodeFailed(
                    f"Could not open catalog at {source}",
                    DecodeErrorCode.COULD_NOT_OPEN_CATALOG,
                ),
            )
            return

        paths = self._discover(source, options)
        if options.max_count is not None:
            paths = paths[: options.max_count]
        progress.set_total(len(paths))
        logger.debug("Found {} candidate images under {}", len(paths), source)

        used_filenames: set[str] = set()
        count = 0
        for path in paths:
            if progress.cancelled:
                logger.debug("Cancellation observed after {} records", count)
                on_done(count, DecodeCancelled())
                return

            try:
                pixel_data = self._encode_png(path)
            except (OSError, ValueError, UnidentifiedImageError) as e:
                logger.warning("Skipping unreadable image {}: {}", path, e)
                progress.advance()
                continue

            name = self._record_name(source, path, options)
            on_record(
                ImageRecord(
                    name=name,
                    filename=self._unique_filename(path.stem, used_filenames),
                    pixel_data=pixel_data,
                )
            )
            count += 1
            progress.advance()

        if count == 0:
            on_done(
                0,
                DecodeFailed(f"No images found in {source}", DecodeErrorCode.NO_IMAGES_FOUND),
            )
            return

        on_done(count, None)

    def _discover(self, source: Path, options: DecoderOptions) -> list[Path]:
        paths = []
        for path in sorted(source.rglob("*")):
            if not path.is_file() or path.suffix.lower() not in IMAGE_SUFFIXES:
                continue
            if any(part.startswith(".") for part in path.relative_to(source).parts):
                continue
            if options.ignore_packed_assets and path.name.startswith(PACKED_ASSET_PREFIX):
                continue
            paths.append(path)
        return paths

    def _record_name(self, source: Path, path: Path, options: DecoderOptions) -> str:
        name = path.stem
        if options.distinguish_catalogs_from_theme_stores:
            store = next(
                (p for p in path.relative_to(source).parents if p.suffix == THEME_STORE_SUFFIX),
                None,
            )
            if store is not None:
                name = f"{store.stem}/{name}"
        return name

    def _encode_png(self, path: Path) -> bytes:
        with PILImage.open(path) as img:
            if img.mode not in ("RGB", "RGBA", "L", "LA", "P"):
                img = img.convert("RGBA")
            output = BytesIO()
            img.save(output, format="PNG", optimize=True)
        return output.getvalue()

    @staticmethod
    def _unique_filename(stem: str, used: set[str]) -> str:
        filename = f"{stem}.png"
        suffix = 2
        while filename.lower() in used:
            filename = f"{stem}-{suffix}.png"
            suffix += 1
        used.add(filename.lower())
        return filename
