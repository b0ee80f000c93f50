"""Pydantic request/response schemas for the FastAPI endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class DocumentResponse(BaseModel):
    """Public view of a document record (storage path omitted)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    original_filename: str
    filename: str
    remote_url: str | None = None
    mime_type: str
    file_size: int
    document_type: str
    language: str
    ocr_status: str
    confidence: int
    extracted_text: str
    ocr_error_message: str | None = None
    is_processed: bool
    processed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class PaginationResponse(BaseModel):
    """Pagination metadata for list endpoints."""

    current_page: int
    total_pages: int
    total_documents: int
    has_next: bool
    has_prev: bool


class DocumentListResponse(BaseModel):
    """A page of documents."""

    documents: list[DocumentResponse]
    pagination: PaginationResponse


class SearchResponse(BaseModel):
    """Documents whose extracted text matched a search term."""

    query: str
    documents: list[DocumentResponse]


class StatusResponse(BaseModel):
    """Processing status of a single document."""

    document_id: str
    status: str
    confidence: int
    is_processed: bool
    processed_at: datetime | None = None
    error_message: str | None = None


class TextResponse(BaseModel):
    """Extracted text of a completed document."""

    document_id: str
    extracted_text: str
    confidence: int
    word_count: int
    character_count: int


class ReprocessResponse(BaseModel):
    """Acknowledgement of a reprocess request."""

    document_id: str
    status: str
    scheduled: bool


class ReprocessFailedResponse(BaseModel):
    """Documents rescheduled by a bulk reprocess request."""

    document_ids: list[str]
    count: int


class DeleteResponse(BaseModel):
    """Acknowledgement of a deletion."""

    document_id: str
    deleted: bool


class StatusBreakdownResponse(BaseModel):
    """Per-status aggregate."""

    status: str
    count: int
    avg_confidence: float


class WorkerStatsResponse(BaseModel):
    """Background worker usage."""

    active_workers: int
    max_workers: int
    supported_languages: int


class StatsResponse(BaseModel):
    """Aggregate processing statistics."""

    total_documents: int
    status_breakdown: list[StatusBreakdownResponse]
    worker: WorkerStatsResponse


class LanguageInfo(BaseModel):
    """A supported OCR language."""

    code: str
    name: str


class LanguagesResponse(BaseModel):
    """Supported OCR languages and the default."""

    languages: list[LanguageInfo]
    default: str


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
