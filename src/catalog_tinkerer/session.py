"""Catalog session.

The presentation boundary: one open catalog, its filtered records, the active
progress handle and the last terminal error. Front ends read this object;
nothing here depends on a UI toolkit.
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from pathlib import Path

from loguru import logger

from .config import Settings
from .config import settings as default_settings
from .decoding import CatalogDecoder, DecoderOptions, ExtractionCoordinator
from .export import ExportExecutor
from .progress import OperationState, ProgressHandle, ProgressSnapshot
from .records import ImageRecord, ImageRecordStore, SearchFilter

EXTRACTING_STATUS = "Extracting Images..."


class CatalogSession:
    """Ties extraction, search and export together for one catalog."""

    def __init__(
        self,
        decoder: CatalogDecoder,
        executor: ExportExecutor | None = None,
        settings: Settings | None = None,
    ):
        """Initialize the session.

        Args:
            decoder: Decoder used to read the catalog
            executor: Export executor; one is created from settings if omitted
            settings: Configuration; the global settings if omitted

        """
        self.settings = settings or default_settings
        self.decoder = decoder
        self._owns_executor = executor is None
        self.executor = executor or ExportExecutor(
            max_workers=self.settings.export_workers,
            temp_dir_prefix=self.settings.temp_dir_prefix,
        )
        self._lock = threading.Lock()
        self._coordinator: ExtractionCoordinator | None = None
        self._filter = SearchFilter(ImageRecordStore())
        self._progress: ProgressHandle | None = None
        self._exports: list[ProgressHandle] = []
        self._decode_error: BaseException | None = None
        self._export_error: BaseException | None = None

    # --- extraction ---

    def open(self, source: Path | str, options: DecoderOptions | None = None) -> ProgressHandle:
        """Start extracting a catalog.

        Args:
            source: Catalog to read
            options: Decoder options; built from settings if omitted

        Returns:
            The extraction's progress handle

        """
        if self._coordinator is not None and self._coordinator.running:
            raise RuntimeError("A catalog is already being extracted")

        coordinator = ExtractionCoordinator(self.decoder)
        coordinator.on_finished(self._extraction_finished)
        with self._lock:
            self._coordinator = coordinator
            self._filter = SearchFilter(coordinator.store, self._filter.term)
            self._decode_error = None
            self._export_error = None
        progress = coordinator.start(source, options or self.settings.decoder_options())
        with self._lock:
            if not progress.finished:
                self._progress = progress
        return progress

    def _extraction_finished(self, progress: ProgressHandle) -> None:
        with self._lock:
            if self._progress is progress:
                self._progress = None
            coordinator = self._coordinator
            if coordinator is None or coordinator.progress is not progress:
                # A later open() replaced this extraction.
                logger.debug("Ignoring completion of superseded {}", progress.label)
                return
            if progress.state is not OperationState.COMPLETED:
                self._decode_error = progress.error

    def wait(self, timeout: float | None = None) -> bool:
        """Block until extraction ends. For non-interactive callers only."""
        coordinator = self._coordinator
        return coordinator.wait(timeout) if coordinator else True

    # --- presentation state ---

    @property
    def progress(self) -> ProgressHandle | None:
        """Return the active extraction handle, or None once it has ended."""
        with self._lock:
            return self._progress

    @property
    def error(self) -> BaseException | None:
        """Return the decode failure, else the last whole-export failure."""
        with self._lock:
            return self._decode_error or self._export_error

    @property
    def records(self) -> tuple[ImageRecord, ...]:
        return self._filter.store.snapshot()

    @property
    def search_term(self) -> str:
        return self._filter.term

    @search_term.setter
    def search_term(self, term: str) -> None:
        self._filter.term = term

    @property
    def filtered_records(self) -> list[ImageRecord]:
        return self._filter.results()

    @property
    def extracting(self) -> bool:
        coordinator = self._coordinator
        return coordinator is not None and coordinator.running

    @property
    def exporting(self) -> bool:
        with self._lock:
            self._exports = [p for p in self._exports if not p.finished]
            return bool(self._exports)

    @property
    def search_enabled(self) -> bool:
        if self.error is not None or self.extracting or self.exporting:
            return False
        return self._coordinator is not None

    @property
    def status(self) -> str | None:
        """Return the status line a front end should show, if any."""
        error = self.error
        if error is not None:
            return str(error)
        if self.extracting:
            return EXTRACTING_STATUS
        if self._coordinator is not None and self.search_term and not self.filtered_records:
            return f'No images found for "{self.search_term}"'
        return None

    # --- export ---

    def export_all(self, destination: Path | str) -> ProgressHandle | None:
        """Export every record matching the current search term."""
        return self._export(self.filtered_records, destination)

    def export_selected(
        self, indices: Sequence[int], destination: Path | str
    ) -> ProgressHandle | None:
        """Export records at positions of the filtered view."""
        return self._export(self._select(indices), destination)

    def copy(self, indices: Sequence[int]) -> list[Path]:
        """Stage selected records for a clipboard or drag handoff."""
        selected = self._select(indices)
        if not selected:
            return []
        return self.executor.export_ephemeral(selected)

    def _select(self, indices: Sequence[int]) -> list[ImageRecord]:
        filtered = self.filtered_records
        return [filtered[i] for i in sorted(set(indices)) if 0 <= i < len(filtered)]

    def _export(self, records: list[ImageRecord], destination: Path | str) -> ProgressHandle | None:
        if not records:
            logger.debug("Nothing to export")
            return None
        progress = self.executor.export_batch(records, destination)
        progress.subscribe(self._export_changed)
        with self._lock:
            self._exports.append(progress)
        return progress

    def _export_changed(self, snapshot: ProgressSnapshot) -> None:
        if snapshot.state is OperationState.FAILED:
            with self._lock:
                self._export_error = snapshot.error

    def clear_error(self) -> None:
        """Dismiss an export failure. A decode failure stays until the next open."""
        with self._lock:
            self._export_error = None

    # --- teardown ---

    def close(self) -> None:
        """Cancel extraction and exports, then release the executor."""
        if self._coordinator is not None:
            self._coordinator.cancel()
        with self._lock:
            exports = list(self._exports)
        for progress in exports:
            progress.cancel()
        if self._owns_executor:
            self.executor.close()
        logger.debug("Session closed")

    def __enter__(self) -> CatalogSession:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
