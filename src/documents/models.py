"""ORM model for uploaded documents and their OCR processing state."""

import uuid
from datetime import datetime, timezone
from enum import StrEnum

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_document_id() -> str:
    return uuid.uuid4().hex


class Base(DeclarativeBase):
    """Declarative base for all tables."""


class OCRStatus(StrEnum):
    """Processing state of a document."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class DocumentType(StrEnum):
    """Classification of an uploaded document."""

    LEGAL_DOCUMENT = "legal_document"
    CONTRACT = "contract"
    CERTIFICATE = "certificate"
    IDENTIFICATION = "identification"
    OTHER = "other"


class DocumentRecord(Base):
    """One uploaded file and the state of its text extraction.

    Attributes:
        id: Hex UUID primary key.
        owner_id: Identifier of the uploading user.
        original_filename: Filename as supplied by the client.
        filename: Generated, globally unique storage filename.
        file_path: Local path of the stored file.
        remote_url: Public URL once mirrored to remote storage.
        remote_public_id: Remote storage identifier used for deletion.
        ocr_status: One of ``OCRStatus``.
        confidence: OCR confidence 0-100; 0 unless completed.
        extracted_text: Cleaned OCR text; empty unless completed.
        ocr_error_message: Failure reason; set only when failed.
        is_processed: True exactly when ``ocr_status`` is completed.
    """

    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_owner_created", "owner_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_document_id)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    original_filename: Mapped[str] = mapped_column(String(255), nullable=False)
    filename: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    file_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    remote_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    remote_public_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)

    document_type: Mapped[str] = mapped_column(
        String(32), nullable=False, default=DocumentType.LEGAL_DOCUMENT.value
    )
    language: Mapped[str] = mapped_column(String(16), nullable=False, default="eng")

    ocr_status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=OCRStatus.PENDING.value, index=True
    )
    confidence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    extracted_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    ocr_error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_processed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, index=True
    )
    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        return f"<DocumentRecord id={self.id} status={self.ocr_status}>"
