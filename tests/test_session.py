"""Tests for the catalog session.

Tests the presentation boundary: filtered records, status, errors and exports.
"""

import threading

import pytest
from loguru import logger

from catalog_tinkerer.config import Settings
from catalog_tinkerer.decoding import DirectoryDecoder
from catalog_tinkerer.errors import DecodeFailed, ExportDestinationUnwritable
from catalog_tinkerer.progress import OperationState
from catalog_tinkerer.session import EXTRACTING_STATUS, CatalogSession

from .conftest import WAIT, make_record


@pytest.fixture
def test_settings():
    """Settings that ignore the environment's decoder options."""
    return Settings(export_workers=1, max_count=None)


@pytest.fixture
def session_factory(executor, test_settings):
    """Create sessions sharing the test executor."""
    sessions = []

    def create(decoder):
        session = CatalogSession(decoder, executor=executor, settings=test_settings)
        sessions.append(session)
        return session

    yield create
    for session in sessions:
        session.close()


class TestExtractionState:
    """Test session state across an extraction."""

    def test_status_while_extracting(self, session_factory, scripted_decoder, tmp_path):
        """Test the session reports extraction in progress."""
        decoder = scripted_decoder([make_record("a")], pause_at=0)
        session = session_factory(decoder)

        progress = session.open(tmp_path)
        assert decoder.paused.wait(WAIT)

        assert session.progress is progress
        assert session.status == EXTRACTING_STATUS
        assert not session.search_enabled

        decoder.gate.set()
        assert session.wait(WAIT)

    def test_completed_extraction(
        self, session_factory, scripted_decoder, sample_records, tmp_path
    ):
        """Test a finished extraction exposes its records and drops the handle."""
        session = session_factory(scripted_decoder(sample_records))

        session.open(tmp_path)
        assert session.wait(WAIT)

        assert session.progress is None
        assert session.error is None
        assert session.status is None
        assert session.search_enabled
        assert [r.name for r in session.filtered_records] == ["icon-1", "Icon-2", "logo"]

    def test_failed_extraction(self, session_factory, scripted_decoder, sample_records, tmp_path):
        """Test a failure clears records and surfaces the reason."""
        decoder = scripted_decoder(sample_records, fail_with=DecodeFailed("Unsupported catalog"))
        session = session_factory(decoder)

        session.open(tmp_path)
        session.wait(WAIT)

        assert session.records == ()
        assert session.filtered_records == []
        assert isinstance(session.error, DecodeFailed)
        assert session.status == "Unsupported catalog"
        assert not session.search_enabled

    def test_cancelled_extraction_displays_like_failure(
        self, session_factory, scripted_decoder, sample_records, tmp_path
    ):
        """Test a cancelled decode shows no records and a status."""
        decoder = scripted_decoder(sample_records, pause_at=1)
        session = session_factory(decoder)

        progress = session.open(tmp_path)
        assert decoder.paused.wait(WAIT)
        session.close()
        decoder.gate.set()
        session.wait(WAIT)

        assert progress.state is OperationState.CANCELLED
        assert session.records == ()
        assert session.status == "Extraction cancelled"

    def test_reopen_uses_fresh_store(
        self, session_factory, scripted_decoder, sample_records, tmp_path
    ):
        """Test opening again replaces the previous records."""
        session = session_factory(scripted_decoder(sample_records))
        session.open(tmp_path)
        session.wait(WAIT)
        session.decoder = scripted_decoder([make_record("other")])

        session.open(tmp_path)
        session.wait(WAIT)

        assert [r.name for r in session.records] == ["other"]

    def test_open_while_running_rejected(self, session_factory, scripted_decoder, tmp_path):
        """Test a second open during extraction is refused."""
        decoder = scripted_decoder([make_record("a")], pause_at=0)
        session = session_factory(decoder)
        session.open(tmp_path)
        assert decoder.paused.wait(WAIT)

        with pytest.raises(RuntimeError):
            session.open(tmp_path)

        decoder.gate.set()
        session.wait(WAIT)

    def test_late_completion_of_replaced_extraction_ignored(
        self, session_factory, scripted_decoder, tmp_path
    ):
        """Test a failed decode finishing after a reopen leaves the new catalog alone."""
        released = threading.Event()
        logging_failure = threading.Event()

        def hold_failure_log(message):
            if not logging_failure.is_set():
                logging_failure.set()
                released.wait(WAIT)

        sink_id = logger.add(hold_failure_log, level="ERROR")
        try:
            session = session_factory(
                scripted_decoder([make_record("old")], fail_with=DecodeFailed("old catalog"))
            )
            old_progress = session.open(tmp_path)
            old_coordinator = session._coordinator
            # The old decode is finished but its callbacks have not run yet.
            assert logging_failure.wait(WAIT)
            assert old_progress.finished

            session.decoder = scripted_decoder([make_record("icon")])
            new_progress = session.open(tmp_path)
            assert session.wait(WAIT)
            assert new_progress.state is OperationState.COMPLETED

            released.set()
            assert old_coordinator.wait(WAIT)
        finally:
            released.set()
            logger.remove(sink_id)

        assert session.error is None
        assert session.status is None
        assert session.search_enabled
        assert [r.name for r in session.records] == ["icon"]

    def test_options_come_from_settings(
        self, executor, scripted_decoder, sample_records, tmp_path
    ):
        """Test configured decoder options are passed explicitly."""
        decoder = scripted_decoder(sample_records)
        session = CatalogSession(
            decoder, executor=executor, settings=Settings(max_count=7, ignore_packed_assets=False)
        )

        session.open(tmp_path)
        session.wait(WAIT)

        assert decoder.options.max_count == 7
        assert decoder.options.ignore_packed_assets is False


class TestSearch:
    """Test searching through the session."""

    @pytest.fixture
    def session(self, session_factory, scripted_decoder, sample_records, tmp_path):
        session = session_factory(scripted_decoder(sample_records))
        session.open(tmp_path)
        session.wait(WAIT)
        return session

    def test_search_term_filters(self, session):
        """Test the filtered view follows the term."""
        session.search_term = "icon"

        assert [r.name for r in session.filtered_records] == ["icon-1", "Icon-2"]
        assert session.status is None

    def test_no_results_status(self, session):
        """Test an unmatched term reports no images found."""
        session.search_term = "button"

        assert session.filtered_records == []
        assert session.status == 'No images found for "button"'

    def test_term_survives_reopen(self, session, scripted_decoder, tmp_path):
        """Test the search term carries over to the next catalog."""
        session.search_term = "logo"
        session.decoder = scripted_decoder([make_record("logo-2"), make_record("x")])

        session.open(tmp_path)
        session.wait(WAIT)

        assert [r.name for r in session.filtered_records] == ["logo-2"]


class TestExport:
    """Test exporting through the session."""

    @pytest.fixture
    def session(self, session_factory, scripted_decoder, sample_records, tmp_path):
        session = session_factory(scripted_decoder(sample_records))
        session.open(tmp_path / "catalog")
        session.wait(WAIT)
        return session

    def test_export_all_uses_filtered_records(self, session, export_dir, finished_handle):
        """Test export all writes the currently filtered records."""
        session.search_term = "icon"

        progress = finished_handle(session.export_all(export_dir))

        assert progress.state is OperationState.COMPLETED
        assert sorted(p.name for p in export_dir.iterdir()) == ["Icon-2.png", "icon-1.png"]

    def test_export_selected(self, session, export_dir, finished_handle):
        """Test selection indices refer to the filtered view."""
        session.search_term = "icon"

        finished_handle(session.export_selected([1, 1, 9], export_dir))

        assert [p.name for p in export_dir.iterdir()] == ["Icon-2.png"]

    def test_export_nothing_is_noop(self, session, export_dir):
        """Test exporting an empty selection starts no job."""
        session.search_term = "button"

        assert session.export_all(export_dir) is None
        assert session.export_selected([], export_dir) is None

    def test_export_failure_surfaces_error(self, session, temp_dir, finished_handle):
        """Test a whole-export failure is exposed and can be dismissed."""
        finished_handle(session.export_all(temp_dir / "missing"))

        assert isinstance(session.error, ExportDestinationUnwritable)
        assert not session.exporting

        session.clear_error()

        assert session.error is None
        assert session.search_enabled

    def test_copy_stages_selection(self, session, executor):
        """Test copy stages selected records in the private directory."""
        paths = session.copy([0, 2])

        assert [p.name for p in paths] == ["icon-1.png", "logo.png"]
        assert all(p.parent == executor.temp_dir for p in paths)

    def test_copy_nothing(self, session):
        """Test copying an empty selection stages nothing."""
        assert session.copy([]) == []


class TestLifecycle:
    """Test session teardown."""

    def test_close_cancels_exports(self, scripted_decoder, tmp_path, export_dir):
        """Test closing cancels running work and releases an owned executor."""
        records = [make_record(f"r{i}") for i in range(200)]
        session = CatalogSession(scripted_decoder(records), settings=Settings(export_workers=1))
        session.open(tmp_path)
        session.wait(WAIT)
        progress = session.export_all(export_dir)

        session.close()

        assert progress.finished
        assert progress.state in (OperationState.CANCELLED, OperationState.COMPLETED)
        with pytest.raises(RuntimeError):
            session.executor.export_batch(records, export_dir)

    def test_context_manager(self, catalog_dir, test_settings):
        """Test the session works end to end with the directory decoder."""
        with CatalogSession(DirectoryDecoder(), settings=test_settings) as session:
            session.open(catalog_dir)
            assert session.wait(WAIT)
            assert len(session.records) == 3
        with pytest.raises(RuntimeError):
            session.executor.export_batch(session.records, catalog_dir)
