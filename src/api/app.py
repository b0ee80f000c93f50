"""FastAPI application for the legal-aid document OCR API.

Uploads are stored and queued for background OCR; every other endpoint
reads the document record and returns immediately.
"""

import shutil
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import FastAPI, File, Form, Header, HTTPException, Query, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.container import Services, build_services
from src.documents.models import OCRStatus
from src.errors import NotFoundOrForbidden
from src.ocr.languages import DEFAULT_LANGUAGE, SUPPORTED_LANGUAGES
from src.utils.config import load_config
from src.utils.logger import get_logger

from .schemas import (
    DeleteResponse,
    DocumentListResponse,
    DocumentResponse,
    HealthResponse,
    LanguageInfo,
    LanguagesResponse,
    PaginationResponse,
    ReprocessFailedResponse,
    ReprocessResponse,
    SearchResponse,
    StatsResponse,
    StatusBreakdownResponse,
    StatusResponse,
    TextResponse,
    WorkerStatsResponse,
)

logger = get_logger(__name__)

API_VERSION = "1.0.0"

_services: Services | None = None


def _get_services() -> Services:
    """Return the process-wide service container, building it on first use."""
    global _services  # noqa: PLW0603
    if _services is None:
        _services = build_services(load_config())
    return _services


@asynccontextmanager
async def _lifespan(_: FastAPI) -> AsyncIterator[None]:
    yield
    if _services is not None:
        logger.info("Shutting down OCR worker pool")
        _services.coordinator.shutdown(wait=False)


app = FastAPI(
    title="Legal Aid Document OCR API",
    description="Upload legal documents and retrieve their extracted text",
    version=API_VERSION,
    lifespan=_lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(NotFoundOrForbidden)
async def _not_found(_: Request, exc: NotFoundOrForbidden) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValueError)
async def _bad_request(_: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def _owner(x_user_id: str | None) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id


OwnerHeader = Annotated[str | None, Header()]


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    return HealthResponse(
        status="healthy",
        version=API_VERSION,
        tesseract_available=shutil.which("tesseract") is not None,
    )


@app.get("/documents/languages", response_model=LanguagesResponse)
async def list_languages() -> LanguagesResponse:
    """List supported OCR languages."""
    return LanguagesResponse(
        languages=[LanguageInfo(code=c, name=n) for c, n in SUPPORTED_LANGUAGES.items()],
        default=DEFAULT_LANGUAGE,
    )


@app.post("/documents/upload", response_model=DocumentResponse, status_code=201)
async def upload_document(
    x_user_id: OwnerHeader = None,
    document: Annotated[UploadFile | None, File()] = None,
    document_type: Annotated[str | None, Form()] = None,
    language: Annotated[str | None, Form()] = None,
    category: Annotated[str | None, Form()] = None,
) -> DocumentResponse:
    """Store an uploaded document and queue it for OCR.

    Args:
        x_user_id: Owner of the document.
        document: Uploaded image file.
        document_type: Explicit document type.
        language: OCR language code (default ``eng``).
        category: Client category, used when no document type is given.

    Returns:
        The created record in its initial ``pending`` state.
    """
    owner_id = _owner(x_user_id)
    if document is None:
        raise HTTPException(status_code=400, detail="No file uploaded")

    content = await document.read()
    record = await run_in_threadpool(
        _get_services().documents.upload,
        content,
        document.filename,
        document.content_type,
        owner_id,
        document_type,
        language,
        category,
    )
    return DocumentResponse.model_validate(record)


@app.get("/documents", response_model=DocumentListResponse)
def list_documents(
    x_user_id: OwnerHeader = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
    document_type: Annotated[str | None, Query()] = None,
    ocr_status: Annotated[str | None, Query()] = None,
    sort_by: Annotated[str, Query()] = "created_at",
    sort_order: Annotated[str, Query()] = "desc",
) -> DocumentListResponse:
    """List the caller's documents with filters and pagination."""
    result = _get_services().store.list_documents(
        _owner(x_user_id),
        page=page,
        page_size=limit,
        document_type=document_type,
        ocr_status=ocr_status,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return DocumentListResponse(
        documents=[DocumentResponse.model_validate(d) for d in result.documents],
        pagination=PaginationResponse(**vars(result.pagination)),
    )


@app.get("/documents/search", response_model=SearchResponse)
def search_documents(
    q: Annotated[str, Query(min_length=1)],
    x_user_id: OwnerHeader = None,
    document_type: Annotated[str | None, Query()] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> SearchResponse:
    """Search the caller's processed documents by extracted text."""
    documents = _get_services().store.search_by_text(
        _owner(x_user_id), q, document_type=document_type, page=page, page_size=limit
    )
    return SearchResponse(
        query=q, documents=[DocumentResponse.model_validate(d) for d in documents]
    )


@app.get("/documents/stats", response_model=StatsResponse)
def processing_stats(x_user_id: OwnerHeader = None) -> StatsResponse:
    """Aggregate processing statistics for the caller's documents."""
    services = _get_services()
    stats = services.store.stats(_owner(x_user_id))
    return StatsResponse(
        total_documents=stats.total_documents,
        status_breakdown=[
            StatusBreakdownResponse(**vars(b)) for b in stats.status_breakdown
        ],
        worker=WorkerStatsResponse(**services.coordinator.stats()),
    )


@app.post("/documents/reprocess-failed", response_model=ReprocessFailedResponse, status_code=202)
def reprocess_failed(x_user_id: OwnerHeader = None) -> ReprocessFailedResponse:
    """Requeue all of the caller's failed documents."""
    ids = _get_services().documents.reprocess_failed(_owner(x_user_id))
    return ReprocessFailedResponse(document_ids=ids, count=len(ids))


@app.get("/documents/{document_id}", response_model=DocumentResponse)
def get_document(document_id: str, x_user_id: OwnerHeader = None) -> DocumentResponse:
    """Fetch a single document."""
    record = _get_services().store.get(document_id, _owner(x_user_id))
    return DocumentResponse.model_validate(record)


@app.get("/documents/{document_id}/status", response_model=StatusResponse)
def get_status(document_id: str, x_user_id: OwnerHeader = None) -> StatusResponse:
    """Report the processing status of a document."""
    record = _get_services().store.get(document_id, _owner(x_user_id))
    return StatusResponse(
        document_id=record.id,
        status=record.ocr_status,
        confidence=record.confidence,
        is_processed=record.is_processed,
        processed_at=record.processed_at,
        error_message=record.ocr_error_message,
    )


@app.get(
    "/documents/{document_id}/text",
    response_model=TextResponse,
    responses={202: {"description": "Still processing"}, 422: {"description": "OCR failed"}},
)
def get_text(document_id: str, x_user_id: OwnerHeader = None) -> TextResponse | JSONResponse:
    """Return extracted text, or signal that processing is unfinished or failed."""
    record = _get_services().store.get(document_id, _owner(x_user_id))

    if record.ocr_status == OCRStatus.FAILED:
        raise HTTPException(
            status_code=422,
            detail={
                "document_id": record.id,
                "status": record.ocr_status,
                "error_message": record.ocr_error_message,
            },
        )
    if record.ocr_status != OCRStatus.COMPLETED:
        return JSONResponse(
            status_code=202,
            content={
                "document_id": record.id,
                "status": record.ocr_status,
                "message": "Document is still being processed",
            },
        )

    text = record.extracted_text
    return TextResponse(
        document_id=record.id,
        extracted_text=text,
        confidence=record.confidence,
        word_count=len(text.split()),
        character_count=len(text),
    )


@app.post("/documents/{document_id}/reprocess", response_model=ReprocessResponse, status_code=202)
def reprocess_document(document_id: str, x_user_id: OwnerHeader = None) -> ReprocessResponse:
    """Start a fresh OCR run; a run already in flight is left alone."""
    scheduled = _get_services().documents.reprocess(document_id, _owner(x_user_id))
    return ReprocessResponse(
        document_id=document_id, status=OCRStatus.PROCESSING.value, scheduled=scheduled
    )


@app.delete("/documents/{document_id}", response_model=DeleteResponse)
def delete_document(document_id: str, x_user_id: OwnerHeader = None) -> DeleteResponse:
    """Delete a document and its stored file."""
    _get_services().documents.delete(document_id, _owner(x_user_id))
    return DeleteResponse(document_id=document_id, deleted=True)
