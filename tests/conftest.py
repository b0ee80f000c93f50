"""Shared test fixtures for the document OCR test suite."""

import io
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import Any

import numpy as np
import pytest
from PIL import Image
from sqlalchemy.orm import Session, sessionmaker

from src.documents.database import create_db_engine, init_db
from src.documents.models import DocumentRecord
from src.documents.storage import StoredFile
from src.documents.store import DocumentMeta, DocumentStore
from src.utils.config import DatabaseConfig


@pytest.fixture
def sample_image() -> np.ndarray:
    """Create a simple synthetic grayscale test image."""
    image = np.zeros((200, 300), dtype=np.uint8)
    image[50:150, 50:250] = 255
    return image


@pytest.fixture
def sample_color_image() -> np.ndarray:
    """Create a simple synthetic BGR test image."""
    image = np.zeros((200, 300, 3), dtype=np.uint8)
    image[50:150, 50:250] = (255, 255, 255)
    return image


def make_png_bytes(height: int = 100, width: int = 200) -> bytes:
    """Encode a gray-on-white PNG of the given size."""
    array = np.full((height, width, 3), 240, dtype=np.uint8)
    array[height // 4 : height // 2, width // 4 : width // 2] = 30
    buf = io.BytesIO()
    Image.fromarray(array).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    """A small PNG image as bytes."""
    return make_png_bytes()


@pytest.fixture
def image_file(tmp_path: Path, png_bytes: bytes) -> Path:
    """A small PNG image written to disk."""
    path = tmp_path / "scan.png"
    path.write_bytes(png_bytes)
    return path


@pytest.fixture
def session_factory() -> sessionmaker[Session]:
    """Session factory bound to a fresh in-memory database."""
    return init_db(create_db_engine(DatabaseConfig(url="sqlite://")))


@pytest.fixture
def store(session_factory: sessionmaker[Session]) -> DocumentStore:
    """Document store over the in-memory database."""
    return DocumentStore(session_factory)


def make_stored_file(
    name: str = "scan.png", path: str | None = None, size: int = 1024
) -> StoredFile:
    """Build a StoredFile with a unique generated filename."""
    filename = f"document-{uuid.uuid4().hex}.png"
    return StoredFile(
        original_filename=name,
        filename=filename,
        path=path or f"/tmp/uploads/{filename}",
        mime_type="image/png",
        size=size,
    )


@pytest.fixture
def make_record(store: DocumentStore) -> Callable[..., DocumentRecord]:
    """Factory inserting pending records through the store."""

    def _make(
        owner_id: str = "user-1",
        document_type: str = "legal_document",
        language: str = "eng",
        **file_kwargs: Any,
    ) -> DocumentRecord:
        return store.create(
            DocumentMeta(document_type=document_type, language=language),
            make_stored_file(**file_kwargs),
            owner_id,
        )

    return _make
