"""Tests for background processing of documents."""

import threading
from collections.abc import Callable, Iterator
from unittest.mock import MagicMock

import pytest

from src.documents.models import DocumentRecord, OCRStatus
from src.documents.store import DocumentStore
from src.errors import ExtractionFailed, NotFoundOrForbidden
from src.extraction.orchestrator import ExtractionResult
from src.worker.coordinator import ProcessingCoordinator

MakeRecord = Callable[..., DocumentRecord]


def _result(text: str = "Hello World", confidence: int = 85) -> ExtractionResult:
    return ExtractionResult(text, confidence, len(text), len(text.split()), 1, 1, 1)


@pytest.fixture
def orchestrator() -> MagicMock:
    mock = MagicMock()
    mock.extract.return_value = _result()
    return mock


@pytest.fixture
def coordinator(store: DocumentStore, orchestrator: MagicMock) -> Iterator[ProcessingCoordinator]:
    coordinator = ProcessingCoordinator(store, orchestrator, max_workers=2)
    yield coordinator
    coordinator.shutdown()


class TestSubmit:
    """Tests for claiming and running documents."""

    def test_happy_path(
        self,
        coordinator: ProcessingCoordinator,
        store: DocumentStore,
        orchestrator: MagicMock,
        make_record: MakeRecord,
    ) -> None:
        record = make_record(language="spa")

        future = coordinator.submit(record.id)
        assert future is not None
        future.result(timeout=10)

        done = store.get(record.id, "user-1")
        assert done.ocr_status == OCRStatus.COMPLETED
        assert done.extracted_text == "Hello World"
        assert done.confidence == 85
        assert done.is_processed is True
        orchestrator.extract.assert_called_once_with(record.file_path, language="spa")

    def test_record_reads_processing_after_submit(
        self, store: DocumentStore, orchestrator: MagicMock, make_record: MakeRecord
    ) -> None:
        record = make_record()
        coordinator = ProcessingCoordinator(store, orchestrator, executor=MagicMock())

        coordinator.submit(record.id)

        assert store.get_internal(record.id).ocr_status == OCRStatus.PROCESSING

    def test_extraction_failure_recorded(
        self,
        coordinator: ProcessingCoordinator,
        store: DocumentStore,
        orchestrator: MagicMock,
        make_record: MakeRecord,
    ) -> None:
        orchestrator.extract.side_effect = ExtractionFailed("OCR failed: unreadable")
        record = make_record()

        coordinator.submit(record.id).result(timeout=10)

        failed = store.get(record.id, "user-1")
        assert failed.ocr_status == OCRStatus.FAILED
        assert failed.ocr_error_message == "OCR failed: unreadable"
        assert failed.extracted_text == ""
        assert failed.confidence == 0

    def test_unexpected_error_recorded(
        self,
        coordinator: ProcessingCoordinator,
        store: DocumentStore,
        orchestrator: MagicMock,
        make_record: MakeRecord,
    ) -> None:
        orchestrator.extract.side_effect = KeyError("boom")
        record = make_record()

        coordinator.submit(record.id).result(timeout=10)

        assert store.get_internal(record.id).ocr_status == OCRStatus.FAILED

    def test_in_flight_submit_is_noop(
        self, store: DocumentStore, orchestrator: MagicMock, make_record: MakeRecord
    ) -> None:
        executor = MagicMock()
        coordinator = ProcessingCoordinator(store, orchestrator, executor=executor)
        record = make_record()

        assert coordinator.submit(record.id) is not None
        assert coordinator.submit(record.id) is None
        assert executor.submit.call_count == 1

    def test_missing_record_raises(self, coordinator: ProcessingCoordinator) -> None:
        with pytest.raises(NotFoundOrForbidden):
            coordinator.submit("missing")

    def test_pool_shutdown_marks_failed(
        self, store: DocumentStore, orchestrator: MagicMock, make_record: MakeRecord
    ) -> None:
        executor = MagicMock()
        executor.submit.side_effect = RuntimeError("cannot schedule new futures")
        coordinator = ProcessingCoordinator(store, orchestrator, executor=executor)
        record = make_record()

        assert coordinator.submit(record.id) is None
        failed = store.get_internal(record.id)
        assert failed.ocr_status == OCRStatus.FAILED
        assert "cannot schedule" in failed.ocr_error_message

    def test_deleted_while_processing(
        self,
        coordinator: ProcessingCoordinator,
        store: DocumentStore,
        orchestrator: MagicMock,
        make_record: MakeRecord,
    ) -> None:
        record = make_record()
        started = threading.Event()
        release = threading.Event()

        def slow_extract(*args: object, **kwargs: object) -> ExtractionResult:
            started.set()
            release.wait(timeout=10)
            return _result()

        orchestrator.extract.side_effect = slow_extract
        future = coordinator.submit(record.id)
        assert started.wait(timeout=10)
        store.delete(record.id, "user-1")
        release.set()
        future.result(timeout=10)

        with pytest.raises(NotFoundOrForbidden):
            store.get_internal(record.id)


class TestReprocess:
    """Tests for resubmitting failed documents."""

    def test_reprocess_failed(
        self,
        coordinator: ProcessingCoordinator,
        store: DocumentStore,
        orchestrator: MagicMock,
        make_record: MakeRecord,
    ) -> None:
        failed = make_record()
        ok = make_record()
        store.mark_processing(failed.id)
        store.mark_failed(failed.id, "first run failed")
        store.mark_processing(ok.id)
        store.update_processing_result(ok.id, "fine", 90)

        scheduled = coordinator.reprocess_failed("user-1")
        coordinator.shutdown(wait=True)

        assert scheduled == [failed.id]
        again = store.get_internal(failed.id)
        assert again.ocr_status == OCRStatus.COMPLETED
        assert again.ocr_error_message is None
        assert store.get_internal(ok.id).extracted_text == "fine"

    def test_reprocess_completed_document(
        self,
        coordinator: ProcessingCoordinator,
        store: DocumentStore,
        orchestrator: MagicMock,
        make_record: MakeRecord,
    ) -> None:
        record = make_record()
        store.mark_processing(record.id)
        store.update_processing_result(record.id, "old", 40)
        orchestrator.extract.return_value = _result("new", 95)

        coordinator.submit(record.id).result(timeout=10)

        fresh = store.get_internal(record.id)
        assert fresh.extracted_text == "new"
        assert fresh.confidence == 95


class TestStats:
    """Tests for worker statistics."""

    def test_idle_stats(self, coordinator: ProcessingCoordinator) -> None:
        assert coordinator.stats() == {
            "active_workers": 0,
            "max_workers": 2,
            "supported_languages": 13,
        }

    def test_active_worker_counted(
        self,
        coordinator: ProcessingCoordinator,
        orchestrator: MagicMock,
        make_record: MakeRecord,
    ) -> None:
        started = threading.Event()
        release = threading.Event()

        def slow_extract(*args: object, **kwargs: object) -> ExtractionResult:
            started.set()
            release.wait(timeout=10)
            return _result()

        orchestrator.extract.side_effect = slow_extract
        future = coordinator.submit(make_record().id)
        assert started.wait(timeout=10)
        assert coordinator.stats()["active_workers"] == 1
        release.set()
        future.result(timeout=10)
        assert coordinator.stats()["active_workers"] == 0
