"""Extraction coordinator.

Drives one decoder on a background thread, feeds its records into the store,
and delivers exactly one terminal notification per ``start``.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from pathlib import Path

from loguru import logger

from ..errors import DecodeCancelled, DecodeErrorCode, DecodeFailed
from ..logging import log_outcome
from ..progress import ProgressHandle
from ..records import ImageRecord, ImageRecordStore
from .base import CatalogDecoder, DecoderOptions

FinishedCallback = Callable[[ProgressHandle], None]


class ExtractionCoordinator:
    """Owns the decode lifecycle end to end."""

    def __init__(self, decoder: CatalogDecoder, store: ImageRecordStore | None = None):
        """Initialize the coordinator.

        Args:
            decoder: Producer of image records
            store: Store to fill; a fresh one is created if omitted

        """
        self.decoder = decoder
        self.store = store or ImageRecordStore()
        self._lock = threading.Lock()
        self._progress: ProgressHandle | None = None
        self._thread: threading.Thread | None = None
        self._callbacks: list[FinishedCallback] = []
        self._terminal_delivered = False

    @property
    def progress(self) -> ProgressHandle | None:
        return self._progress

    @property
    def error(self) -> BaseException | None:
        return self._progress.error if self._progress else None

    @property
    def record_count(self) -> int:
        return len(self.store)

    @property
    def running(self) -> bool:
        progress = self._progress
        return progress is not None and not progress.finished

    def on_finished(self, callback: FinishedCallback) -> None:
        """Register a callback receiving the handle once decode ends."""
        with self._lock:
            self._callbacks.append(callback)

    def start(self, source: Path | str, options: DecoderOptions | None = None) -> ProgressHandle:
        """Begin decoding on a background thread.

        Args:
            source: Catalog to decode
            options: Decoder configuration; defaults apply if omitted

        Returns:
            The extraction's progress handle, usable before any record arrives

        Raises:
            RuntimeError: If this coordinator already started a decode

        """
        source = Path(source)
        options = options or DecoderOptions()
        with self._lock:
            if self._progress is not None:
                raise RuntimeError("Extraction already started for this coordinator")
            progress = ProgressHandle(label=f"Extraction of {source.name}")
            self._progress = progress

        logger.info("Starting extraction of {} with {} decoder", source, self.decoder.name)
        logger.debug("Decoder options: {}", options.model_dump())

        self._thread = threading.Thread(
            target=self._run,
            args=(source, progress, options),
            name=f"decode-{source.name}",
            daemon=True,
        )
        self._thread.start()
        return progress

    def cancel(self) -> None:
        """Request cancellation of the running decode. No-op when idle or finished."""
        if self._progress is not None:
            self._progress.cancel()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the terminal notification has been delivered."""
        progress = self._progress
        if progress is None:
            return True
        if not progress.wait(timeout):
            return False
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            return not thread.is_alive()
        return True

    def _run(self, source: Path, progress: ProgressHandle, options: DecoderOptions) -> None:
        def on_record(record: ImageRecord) -> None:
            if self._terminal_delivered:
                logger.warning("Decoder emitted {} after completion; dropped", record.name)
                return
            self.store.append(record)

        def on_done(count: int, error: BaseException | None = None) -> None:
            self._deliver(progress, count, error)

        try:
            progress.start()
            if progress.cancelled:
                # Cancelled before the decoder got to run.
                on_done(0, DecodeCancelled())
                return
            self.decoder.decode(source, progress, on_record, on_done, options)
        except Exception as e:
            logger.exception("Decoder {} raised while reading {}", self.decoder.name, source)
            on_done(0, DecodeFailed(str(e), DecodeErrorCode.DECODER_ERROR))
            return

        # Non-blocking decoders report completion from their own thread later.
        if self.decoder.blocking and not self._terminal_delivered:
            on_done(
                0,
                DecodeFailed(
                    "Decoder returned without reporting completion",
                    DecodeErrorCode.DECODER_ERROR,
                ),
            )

    def _deliver(self, progress: ProgressHandle, count: int, error: BaseException | None) -> None:
        with self._lock:
            if self._terminal_delivered:
                logger.warning("Ignoring duplicate completion from {}", self.decoder.name)
                return
            self._terminal_delivered = True
            callbacks = list(self._callbacks)

        if error is None and progress.cancelled:
            error = DecodeCancelled()
        if error is not None and not isinstance(error, (DecodeFailed, DecodeCancelled)):
            error = DecodeFailed(str(error), DecodeErrorCode.DECODER_ERROR)

        if error is not None:
            # Never leave a half-populated result behind.
            self.store.clear()
        elif count != len(self.store):
            logger.debug(
                "Decoder reported {} records, store holds {}", count, len(self.store)
            )
        self.store.seal()

        progress.finish(error, result=len(self.store))
        log_outcome(progress.snapshot())

        for callback in callbacks:
            try:
                callback(progress)
            except Exception as e:
                logger.warning("Extraction finished callback raised: {}", e)
