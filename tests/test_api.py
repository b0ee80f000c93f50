"""Tests for the FastAPI REST endpoints."""

from collections.abc import Callable, Iterator
from concurrent.futures import Future
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from src.api.app import app
from src.container import Services
from src.documents.service import DocumentService
from src.documents.storage import LocalFileStore
from src.documents.store import DocumentStore
from src.errors import ExtractionFailed
from src.extraction.orchestrator import ExtractionResult
from src.utils.config import AppConfig
from src.worker.coordinator import ProcessingCoordinator

USER = {"X-User-Id": "user-1"}
OTHER = {"X-User-Id": "user-2"}


class _InlineExecutor:
    """Executor that runs jobs on the submitting thread."""

    def __init__(self) -> None:
        self.enabled = True

    def submit(self, fn: Callable, *args: object) -> Future:
        future: Future = Future()
        if self.enabled:
            fn(*args)
        future.set_result(None)
        return future


@pytest.fixture
def orchestrator() -> MagicMock:
    mock = MagicMock()
    mock.extract.return_value = ExtractionResult("Hello World", 85, 10, 2, 1, 1, 1)
    return mock


@pytest.fixture
def executor() -> _InlineExecutor:
    return _InlineExecutor()


@pytest.fixture
def services(
    store: DocumentStore, orchestrator: MagicMock, executor: _InlineExecutor, tmp_path: Path
) -> Services:
    coordinator = ProcessingCoordinator(store, orchestrator, executor=executor)
    documents = DocumentService(store, coordinator, LocalFileStore(tmp_path / "uploads"))
    return Services(
        config=AppConfig(), store=store, coordinator=coordinator, documents=documents
    )


@pytest.fixture
def client(services: Services) -> Iterator[TestClient]:
    """Create a FastAPI test client over in-memory services."""
    with patch("src.api.app._get_services", return_value=services):
        yield TestClient(app)


def _upload(client: TestClient, png_bytes: bytes, headers: dict = USER, **data: str):
    return client.post(
        "/documents/upload",
        files={"document": ("lease.png", png_bytes, "image/png")},
        data=data,
        headers=headers,
    )


class TestHealthEndpoint:
    """Tests for the /health endpoint."""

    def test_health_returns_ok(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert isinstance(data["tesseract_available"], bool)


class TestLanguagesEndpoint:
    """Tests for the /documents/languages endpoint."""

    def test_lists_languages(self, client: TestClient) -> None:
        response = client.get("/documents/languages")
        assert response.status_code == 200
        data = response.json()
        assert data["default"] == "eng"
        codes = {lang["code"] for lang in data["languages"]}
        assert len(codes) == 13
        assert {"eng", "chi_sim", "hin"} <= codes


class TestUploadEndpoint:
    """Tests for the upload flow end to end."""

    def test_upload_then_read_text(self, client: TestClient, png_bytes: bytes) -> None:
        response = _upload(client, png_bytes, language="eng")
        assert response.status_code == 201
        created = response.json()
        assert created["ocr_status"] == "pending"
        assert created["original_filename"] == "lease.png"
        assert "file_path" not in created
        document_id = created["id"]

        status = client.get(f"/documents/{document_id}/status", headers=USER).json()
        assert status["status"] == "completed"
        assert status["confidence"] == 85
        assert status["is_processed"] is True

        text = client.get(f"/documents/{document_id}/text", headers=USER)
        assert text.status_code == 200
        assert text.json()["extracted_text"] == "Hello World"
        assert text.json()["word_count"] == 2
        assert text.json()["character_count"] == 11

    def test_missing_owner_is_unauthorized(self, client: TestClient, png_bytes: bytes) -> None:
        response = _upload(client, png_bytes, headers={})
        assert response.status_code == 401

    def test_missing_file(self, client: TestClient) -> None:
        response = client.post("/documents/upload", data={"language": "eng"}, headers=USER)
        assert response.status_code == 400

    def test_unsupported_language(
        self, client: TestClient, services: Services, png_bytes: bytes
    ) -> None:
        response = _upload(client, png_bytes, language="xyz")
        assert response.status_code == 400
        assert "xyz" in response.json()["detail"]
        assert services.store.stats().total_documents == 0

    def test_disallowed_type(self, client: TestClient) -> None:
        response = client.post(
            "/documents/upload",
            files={"document": ("notes.txt", b"plain text", "text/plain")},
            headers=USER,
        )
        assert response.status_code == 400


class TestDocumentEndpoints:
    """Tests for reading, listing, and searching documents."""

    def test_other_owner_gets_404(self, client: TestClient, png_bytes: bytes) -> None:
        document_id = _upload(client, png_bytes).json()["id"]
        assert client.get(f"/documents/{document_id}", headers=OTHER).status_code == 404
        assert client.get("/documents/unknown", headers=USER).status_code == 404

    def test_text_while_processing(
        self, client: TestClient, executor: _InlineExecutor, png_bytes: bytes
    ) -> None:
        executor.enabled = False
        document_id = _upload(client, png_bytes).json()["id"]

        response = client.get(f"/documents/{document_id}/text", headers=USER)

        assert response.status_code == 202
        assert response.json()["status"] == "processing"

    def test_text_after_failure(
        self, client: TestClient, orchestrator: MagicMock, png_bytes: bytes
    ) -> None:
        orchestrator.extract.side_effect = ExtractionFailed("OCR failed: unreadable")
        document_id = _upload(client, png_bytes).json()["id"]

        response = client.get(f"/documents/{document_id}/text", headers=USER)

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["status"] == "failed"
        assert detail["error_message"] == "OCR failed: unreadable"

    def test_list_and_paginate(self, client: TestClient, png_bytes: bytes) -> None:
        for _ in range(3):
            _upload(client, png_bytes)

        response = client.get("/documents", params={"limit": 2}, headers=USER)

        assert response.status_code == 200
        data = response.json()
        assert len(data["documents"]) == 2
        assert data["pagination"]["total_documents"] == 3
        assert data["pagination"]["has_next"] is True

    def test_list_invalid_sort(self, client: TestClient) -> None:
        response = client.get("/documents", params={"sort_by": "file_path"}, headers=USER)
        assert response.status_code == 400

    def test_search(self, client: TestClient, png_bytes: bytes) -> None:
        _upload(client, png_bytes)
        hit = client.get("/documents/search", params={"q": "hello"}, headers=USER).json()
        miss = client.get("/documents/search", params={"q": "lease"}, headers=USER).json()
        assert len(hit["documents"]) == 1
        assert miss["documents"] == []

    def test_stats(self, client: TestClient, png_bytes: bytes) -> None:
        _upload(client, png_bytes)
        data = client.get("/documents/stats", headers=USER).json()
        assert data["total_documents"] == 1
        assert data["status_breakdown"][0]["status"] == "completed"
        assert data["worker"]["supported_languages"] == 13


class TestReprocessAndDelete:
    """Tests for reprocessing and deletion endpoints."""

    def test_reprocess(
        self, client: TestClient, orchestrator: MagicMock, png_bytes: bytes
    ) -> None:
        document_id = _upload(client, png_bytes).json()["id"]
        orchestrator.extract.return_value = ExtractionResult("Second pass", 92, 10, 2, 1, 1, 1)

        response = client.post(f"/documents/{document_id}/reprocess", headers=USER)

        assert response.status_code == 202
        assert response.json()["scheduled"] is True
        text = client.get(f"/documents/{document_id}/text", headers=USER).json()
        assert text["extracted_text"] == "Second pass"

    def test_reprocess_failed(
        self, client: TestClient, orchestrator: MagicMock, png_bytes: bytes
    ) -> None:
        orchestrator.extract.side_effect = ExtractionFailed("boom")
        document_id = _upload(client, png_bytes).json()["id"]
        orchestrator.extract.side_effect = None

        response = client.post("/documents/reprocess-failed", headers=USER)

        assert response.status_code == 202
        assert response.json() == {"document_ids": [document_id], "count": 1}

    def test_delete_then_404(self, client: TestClient, png_bytes: bytes) -> None:
        document_id = _upload(client, png_bytes).json()["id"]

        response = client.delete(f"/documents/{document_id}", headers=USER)

        assert response.status_code == 200
        assert response.json() == {"document_id": document_id, "deleted": True}
        assert client.get(f"/documents/{document_id}", headers=USER).status_code == 404
        assert client.delete(f"/documents/{document_id}", headers=USER).status_code == 404
