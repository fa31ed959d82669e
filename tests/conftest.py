"""Pytest fixtures and configuration for catalog-tinkerer tests.

This module provides shared fixtures for testing the record store, progress
handles, extraction coordinator, export executor and CLI.
"""

import tempfile
import threading
import time
from collections.abc import Callable, Generator
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

from catalog_tinkerer.decoding.base import CatalogDecoder, DecoderOptions
from catalog_tinkerer.errors import DecodeCancelled, DecodeErrorCode, DecodeFailed
from catalog_tinkerer.export import ExportExecutor
from catalog_tinkerer.progress import ProgressHandle
from catalog_tinkerer.records import ImageRecord

WAIT = 10.0


def make_png(color: str = "red", size: tuple[int, int] = (8, 8)) -> bytes:
    """Encode a solid-colour PNG."""
    img = Image.new("RGBA", size, color=color)
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def make_record(name: str, filename: str | None = None, color: str = "red") -> ImageRecord:
    """Create a record with real PNG bytes."""
    return ImageRecord(name=name, filename=filename or f"{name}.png", pixel_data=make_png(color))


class ScriptedDecoder(CatalogDecoder):
    """Decoder emitting a fixed list of records, for coordinator tests.

    Args:
        records: Records to emit in order
        delay: Seconds to sleep before each record
        fail_with: Error reported through on_done instead of success
        raise_with: Exception raised out of decode
        report_done: Whether to call on_done at all
        done_twice: Call on_done a second time
        pause_at: Index of the record before which decode waits for ``gate``

    """

    blocking = True

    def __init__(
        self,
        records: list[ImageRecord],
        delay: float = 0.0,
        fail_with: BaseException | None = None,
        raise_with: Exception | None = None,
        report_done: bool = True,
        done_twice: bool = False,
        pause_at: int | None = None,
    ):
        self.records = records
        self.delay = delay
        self.fail_with = fail_with
        self.raise_with = raise_with
        self.report_done = report_done
        self.done_twice = done_twice
        self.pause_at = pause_at
        self.gate = threading.Event()
        self.paused = threading.Event()
        self.started = threading.Event()
        self.emitted = 0
        self.options: DecoderOptions | None = None

    @property
    def name(self) -> str:
        return "scripted"

    def decode(self, source, progress, on_record, on_done, options):
        self.options = options
        self.started.set()
        progress.set_total(len(self.records))
        for i, record in enumerate(self.records):
            if i == self.pause_at:
                self.paused.set()
                self.gate.wait(WAIT)
            if progress.cancelled:
                on_done(self.emitted, DecodeCancelled())
                return
            if self.delay:
                time.sleep(self.delay)
            on_record(record)
            self.emitted += 1
            progress.advance()
            if self.raise_with is not None:
                raise self.raise_with
        if not self.report_done:
            return
        on_done(self.emitted, self.fail_with)
        if self.done_twice:
            on_done(self.emitted, DecodeFailed("late", DecodeErrorCode.DECODER_ERROR))


class ThreadedDecoder(CatalogDecoder):
    """Decoder that returns at once and reports from a thread of its own.

    The worker waits for ``gate`` before emitting, so a test can observe the
    coordinator after ``decode`` has returned but before completion.
    """

    def __init__(self, records: list[ImageRecord]):
        self.records = records
        self.gate = threading.Event()
        self.returned = threading.Event()
        self.worker: threading.Thread | None = None

    @property
    def name(self) -> str:
        return "threaded"

    def decode(self, source, progress, on_record, on_done, options):
        def work():
            self.gate.wait(WAIT)
            progress.set_total(len(self.records))
            for count, record in enumerate(self.records):
                if progress.cancelled:
                    on_done(count, DecodeCancelled())
                    return
                on_record(record)
                progress.advance()
            on_done(len(self.records), None)

        self.worker = threading.Thread(target=work, name="threaded-decoder", daemon=True)
        self.worker.start()
        self.returned.set()


# --- Temporary Directory Fixtures ---


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp)


@pytest.fixture
def export_dir(temp_dir: Path) -> Path:
    """Create an empty export destination."""
    path = temp_dir / "export"
    path.mkdir()
    return path


@pytest.fixture
def catalog_dir(temp_dir: Path) -> Path:
    """Create a directory catalog with a few loose images."""
    root = temp_dir / "Assets"
    (root / "Icons").mkdir(parents=True)
    (root / "Brand").mkdir()
    Image.new("RGB", (16, 16), color="blue").save(root / "Icons" / "icon-1.png")
    Image.new("RGB", (16, 16), color="green").save(root / "Icons" / "Icon-2.jpg")
    Image.new("RGBA", (16, 16), color="white").save(root / "Brand" / "logo.png")
    (root / "Brand" / "notes.txt").write_text("not an image")
    return root


# --- Sample Data Fixtures ---


@pytest.fixture
def sample_records() -> list[ImageRecord]:
    """Records used in the search scenarios."""
    return [
        make_record("icon-1", color="red"),
        make_record("Icon-2", color="green"),
        make_record("logo", color="blue"),
    ]


@pytest.fixture
def scripted_decoder() -> Callable[..., ScriptedDecoder]:
    """Factory for scripted decoders."""
    return ScriptedDecoder


@pytest.fixture
def threaded_decoder() -> Callable[..., ThreadedDecoder]:
    """Factory for decoders that report from their own thread."""
    return ThreadedDecoder


# --- Executor Fixtures ---


@pytest.fixture
def executor() -> Generator[ExportExecutor, None, None]:
    """Create an export executor that is closed after the test."""
    ex = ExportExecutor(max_workers=2, temp_dir_prefix="catalog-tinkerer-test-")
    yield ex
    ex.close()


@pytest.fixture
def finished_handle() -> Callable[[ProgressHandle], ProgressHandle]:
    """Wait for a handle to finish, failing the test on timeout."""

    def wait(handle: ProgressHandle) -> ProgressHandle:
        assert handle.wait(WAIT), f"{handle.label} did not finish"
        return handle

    return wait


# --- Settings Override Fixtures ---


@pytest.fixture
def mock_settings(temp_dir: Path, monkeypatch):
    """Override settings with test values."""
    monkeypatch.setenv("CATALOG_TINKERER_EXPORT_DIR", str(temp_dir / "exported"))
    monkeypatch.setenv("CATALOG_TINKERER_EXPORT_WORKERS", "3")
    monkeypatch.setenv("CATALOG_TINKERER_LOG_LEVEL", "DEBUG")

    from catalog_tinkerer.config import Settings

    return Settings()
