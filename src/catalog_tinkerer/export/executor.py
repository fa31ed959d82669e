"""Export executor.

Writes record bytes to durable storage off the interactive thread. Batch
jobs run on a thread pool, each with its own progress handle; ephemeral
exports stage files in a process-private temporary directory.

Per-item failures are best-effort: they are logged, collected in the job's
``ExportReport`` and never change the job's terminal state.
"""

from __future__ import annotations

import os
import shutil
import tempfile
import threading
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

from loguru import logger

from ..errors import ExportCancelled, ExportDestinationUnwritable, ExportItemFailed
from ..logging import log_outcome
from ..progress import ProgressHandle
from ..records import ImageRecord
from .base import EPHEMERAL, ExportJob, ExportReport
from .writer import atomic_write_bytes, resolve_target


class ExportExecutor:
    """Runs batch and ephemeral exports."""

    def __init__(
        self,
        max_workers: int = 2,
        temp_dir_prefix: str = "catalog-tinkerer-",
    ):
        """Initialize the executor.

        Args:
            max_workers: Number of batch jobs that may run concurrently
            temp_dir_prefix: Prefix for the ephemeral staging directory

        """
        self.max_workers = max_workers
        self.temp_dir_prefix = temp_dir_prefix
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="export")
        self._lock = threading.Lock()
        self._jobs: dict[ProgressHandle, Future] = {}
        self._temp_dir: Path | None = None
        self._closed = False
        logger.debug("ExportExecutor initialized: workers={}", max_workers)

    # --- batch export ---

    def export_batch(
        self, records: Iterable[ImageRecord], destination: Path | str
    ) -> ProgressHandle:
        """Export records to a directory on a background thread.

        Args:
            records: Records to write (captured as a snapshot now)
            destination: Existing, writable directory

        Returns:
            The job's progress handle; its ``result`` is an ExportReport once finished

        """
        job = ExportJob(
            records=tuple(records),
            destination=Path(destination),
            progress=ProgressHandle(label=f"Export to {destination}"),
        )
        job.progress.set_total(len(job.records))
        with self._lock:
            if self._closed:
                raise RuntimeError("ExportExecutor is closed")
            future = self._pool.submit(self._run_batch, job)
            self._jobs[job.progress] = future
        future.add_done_callback(lambda _: self._forget(job.progress))
        logger.info("Queued export of {} images to {}", len(job.records), destination)
        return job.progress

    def _run_batch(self, job: ExportJob) -> None:
        progress = job.progress
        report = ExportReport()
        destination = job.destination
        progress.start()

        try:
            if progress.cancelled:
                progress.finish(ExportCancelled(), result=report)
                return

            self._check_destination(destination)

            for record in job.records:
                if progress.cancelled:
                    logger.debug("Export cancelled after {} files", report.attempted)
                    progress.finish(ExportCancelled(), result=report)
                    return
                try:
                    target = resolve_target(destination, record.filename)
                    atomic_write_bytes(target, record.pixel_data)
                    report.written.append(target)
                except ExportItemFailed as e:
                    logger.warning("{}", e)
                    report.failures.append(e)
                except OSError as e:
                    failure = ExportItemFailed(record.filename, e.strerror or str(e))
                    logger.warning("{}", failure)
                    report.failures.append(failure)
                progress.advance()

            if report.failures:
                logger.warning(
                    "Export to {} finished with {} of {} files failed",
                    destination,
                    report.failure_count,
                    report.attempted,
                )
            progress.finish(result=report)
        except ExportDestinationUnwritable as e:
            progress.finish(e, result=report)
        except Exception as e:
            logger.exception("Unexpected error exporting to {}", destination)
            progress.finish(e, result=report)
        finally:
            log_outcome(progress.snapshot())

    @staticmethod
    def _check_destination(destination: Path) -> None:
        if not destination.exists():
            raise ExportDestinationUnwritable(destination, "directory does not exist")
        if not destination.is_dir():
            raise ExportDestinationUnwritable(destination, "not a directory")
        if not os.access(destination, os.W_OK | os.X_OK):
            raise ExportDestinationUnwritable(destination, "permission denied")

    # --- ephemeral export ---

    def export_ephemeral(self, records: Iterable[ImageRecord]) -> list[Path]:
        """Stage records in a process-private directory for a one-shot handoff.

        Records that cannot be written are left out of the result.

        Args:
            records: Records to stage

        Returns:
            Paths of the staged files, in record order

        """
        job = ExportJob(records=tuple(records), destination=EPHEMERAL)
        staging = self.temp_dir
        locations = []
        for record in job.records:
            try:
                target = resolve_target(staging, record.filename)
                locations.append(atomic_write_bytes(target, record.pixel_data))
            except (ExportItemFailed, OSError) as e:
                logger.debug("Excluding {} from ephemeral export: {}", record.filename, e)
        logger.debug("Staged {} files in {}", len(locations), staging)
        return locations

    @property
    def temp_dir(self) -> Path:
        """Return the private staging directory, creating it on first use."""
        with self._lock:
            if self._temp_dir is None or not self._temp_dir.exists():
                self._temp_dir = Path(tempfile.mkdtemp(prefix=self.temp_dir_prefix))
                logger.debug("Created ephemeral export directory {}", self._temp_dir)
            return self._temp_dir

    # --- lifecycle ---

    @property
    def active_jobs(self) -> list[ProgressHandle]:
        with self._lock:
            return list(self._jobs)

    def cancel_all(self) -> None:
        """Request cancellation of every running or queued batch job."""
        for progress in self.active_jobs:
            progress.cancel()

    def close(self, cancel: bool = True, keep_temp: bool = False) -> None:
        """Shut down the worker pool and remove the staging directory.

        Args:
            cancel: Cancel outstanding jobs instead of letting them finish
            keep_temp: Leave staged ephemeral files in place

        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
        if cancel:
            self.cancel_all()
        self._pool.shutdown(wait=True)
        with self._lock:
            temp_dir, self._temp_dir = self._temp_dir, None
        if temp_dir is not None and not keep_temp:
            shutil.rmtree(temp_dir, ignore_errors=True)
            logger.debug("Removed ephemeral export directory {}", temp_dir)

    def __enter__(self) -> ExportExecutor:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _forget(self, progress: ProgressHandle) -> None:
        with self._lock:
            self._jobs.pop(progress, None)
