"""Persistence and queries for document records.

User-facing reads are always scoped by owner. Processing state changes are
single conditional UPDATE statements keyed by id, so concurrent writers can
never interleave a read-modify-write on the same record.
"""

import math
from collections.abc import Callable
from dataclasses import dataclass, field

from sqlalchemy import Select, func, select, update
from sqlalchemy.orm import Session, defer

from src.errors import ConcurrentModification, NotFoundOrForbidden
from src.ocr.languages import DEFAULT_LANGUAGE, validate_language
from src.utils.logger import get_logger

from .models import DocumentRecord, DocumentType, OCRStatus, utcnow
from .storage import StoredFile

logger = get_logger(__name__)

SORTABLE_FIELDS = frozenset(
    {
        "created_at",
        "updated_at",
        "processed_at",
        "original_filename",
        "file_size",
        "confidence",
        "document_type",
        "ocr_status",
    }
)
MAX_PAGE_SIZE = 100


@dataclass
class DocumentMeta:
    """Client-supplied classification for a new document."""

    document_type: str = DocumentType.LEGAL_DOCUMENT.value
    language: str = DEFAULT_LANGUAGE


@dataclass
class Pagination:
    """Pagination metadata for a page of records."""

    current_page: int
    total_pages: int
    total_documents: int
    has_next: bool
    has_prev: bool


@dataclass
class DocumentPage:
    """A page of records without their storage paths."""

    documents: list[DocumentRecord]
    pagination: Pagination


@dataclass
class StatusBreakdown:
    """Count and mean confidence for one processing status."""

    status: str
    count: int
    avg_confidence: float


@dataclass
class ProcessingStats:
    """Aggregate processing statistics."""

    total_documents: int
    status_breakdown: list[StatusBreakdown] = field(default_factory=list)


def _check_paging(page: int, page_size: int) -> None:
    if page < 1:
        raise ValueError("page must be >= 1")
    if not 1 <= page_size <= MAX_PAGE_SIZE:
        raise ValueError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class DocumentStore:
    """CRUD, queries, and atomic state transitions over ``DocumentRecord``.

    Args:
        session_factory: Factory producing SQLAlchemy sessions.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def create(
        self, meta: DocumentMeta, file_info: StoredFile, owner_id: str
    ) -> DocumentRecord:
        """Insert a pending record for a stored upload.

        Raises:
            UnsupportedLanguage: If ``meta.language`` is not supported.
            ValueError: If ``meta.document_type`` is not a known type.
        """
        language = validate_language(meta.language or DEFAULT_LANGUAGE)
        document_type = DocumentType(meta.document_type or DocumentType.LEGAL_DOCUMENT)

        record = DocumentRecord(
            owner_id=owner_id,
            original_filename=file_info.original_filename,
            filename=file_info.filename,
            file_path=file_info.path,
            mime_type=file_info.mime_type,
            file_size=file_info.size,
            document_type=document_type.value,
            language=language,
            ocr_status=OCRStatus.PENDING.value,
            confidence=0,
            extracted_text="",
            is_processed=False,
        )
        with self._session_factory() as session, session.begin():
            session.add(record)
        logger.info("Created document %s for owner %s", record.id, owner_id)
        return record

    def get(self, document_id: str, owner_id: str) -> DocumentRecord:
        """Fetch a record owned by ``owner_id``.

        Raises:
            NotFoundOrForbidden: If the record is absent or owned by someone else.
        """
        with self._session_factory() as session:
            record = session.scalar(
                select(DocumentRecord).where(
                    DocumentRecord.id == document_id,
                    DocumentRecord.owner_id == owner_id,
                )
            )
        if record is None:
            raise NotFoundOrForbidden(document_id)
        return record

    def get_internal(self, document_id: str) -> DocumentRecord:
        """Fetch a record by id alone, for trusted processing code."""
        with self._session_factory() as session:
            record = session.get(DocumentRecord, document_id)
        if record is None:
            raise NotFoundOrForbidden(document_id)
        return record

    def list_documents(
        self,
        owner_id: str,
        page: int = 1,
        page_size: int = 10,
        document_type: str | None = None,
        ocr_status: str | None = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> DocumentPage:
        """List an owner's records with optional filters.

        Args:
            owner_id: Owning user.
            page: 1-based page number.
            page_size: Records per page (1-100).
            document_type: Only records of this type.
            ocr_status: Only records in this processing state.
            sort_by: One of ``SORTABLE_FIELDS``.
            sort_order: ``"asc"`` or ``"desc"``.

        Returns:
            The requested page and pagination metadata.

        Raises:
            ValueError: On invalid paging, sort, or filter arguments.
        """
        _check_paging(page, page_size)
        if sort_by not in SORTABLE_FIELDS:
            raise ValueError(f"Cannot sort by {sort_by!r}")
        if sort_order not in ("asc", "desc"):
            raise ValueError("sort_order must be 'asc' or 'desc'")

        conditions = [DocumentRecord.owner_id == owner_id]
        if document_type:
            conditions.append(DocumentRecord.document_type == DocumentType(document_type).value)
        if ocr_status:
            conditions.append(DocumentRecord.ocr_status == OCRStatus(ocr_status).value)

        column = getattr(DocumentRecord, sort_by)
        ordering = column.desc() if sort_order == "desc" else column.asc()
        stmt = self._without_path(select(DocumentRecord).where(*conditions))
        stmt = stmt.order_by(ordering, DocumentRecord.id.asc())
        stmt = stmt.offset((page - 1) * page_size).limit(page_size)

        with self._session_factory() as session:
            documents = list(session.scalars(stmt))
            total = session.scalar(
                select(func.count()).select_from(DocumentRecord).where(*conditions)
            ) or 0

        offset = (page - 1) * page_size
        return DocumentPage(
            documents=documents,
            pagination=Pagination(
                current_page=page,
                total_pages=math.ceil(total / page_size),
                total_documents=total,
                has_next=offset + len(documents) < total,
                has_prev=page > 1,
            ),
        )

    def search_by_text(
        self,
        owner_id: str,
        term: str,
        document_type: str | None = None,
        page: int = 1,
        page_size: int = 10,
    ) -> list[DocumentRecord]:
        """Find processed records whose text contains ``term`` (case-insensitive).

        Raises:
            ValueError: If ``term`` is blank or paging is invalid.
        """
        _check_paging(page, page_size)
        term = term.strip()
        if not term:
            raise ValueError("Search term must not be empty")

        conditions = [
            DocumentRecord.owner_id == owner_id,
            DocumentRecord.is_processed.is_(True),
            DocumentRecord.extracted_text.ilike(f"%{_escape_like(term)}%", escape="\\"),
        ]
        if document_type:
            conditions.append(DocumentRecord.document_type == DocumentType(document_type).value)

        stmt = (
            self._without_path(select(DocumentRecord).where(*conditions))
            .order_by(DocumentRecord.created_at.desc(), DocumentRecord.id.asc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        with self._session_factory() as session:
            return list(session.scalars(stmt))

    def mark_processing(self, document_id: str) -> None:
        """Claim a record for a processing run.

        Succeeds from pending, completed, or failed, and clears any previous
        result so the record invariants hold while the run is in flight.

        Raises:
            ConcurrentModification: If a run is already processing the record.
            NotFoundOrForbidden: If the record does not exist.
        """
        stmt = (
            update(DocumentRecord)
            .where(
                DocumentRecord.id == document_id,
                DocumentRecord.ocr_status != OCRStatus.PROCESSING.value,
            )
            .values(
                ocr_status=OCRStatus.PROCESSING.value,
                is_processed=False,
                extracted_text="",
                confidence=0,
                ocr_error_message=None,
                processed_at=None,
                updated_at=utcnow(),
            )
        )
        with self._session_factory() as session, session.begin():
            claimed = self._execute(session, stmt)
            exists = claimed or session.get(DocumentRecord, document_id) is not None

        if claimed:
            logger.info("Document %s claimed for processing", document_id)
            return
        if not exists:
            raise NotFoundOrForbidden(document_id)
        raise ConcurrentModification(document_id)

    def update_processing_result(
        self, document_id: str, extracted_text: str, confidence: int
    ) -> bool:
        """Complete a processing run.

        Returns:
            ``False`` if the record is no longer processing (e.g. deleted).
        """
        now = utcnow()
        stmt = (
            update(DocumentRecord)
            .where(
                DocumentRecord.id == document_id,
                DocumentRecord.ocr_status == OCRStatus.PROCESSING.value,
            )
            .values(
                ocr_status=OCRStatus.COMPLETED.value,
                extracted_text=extracted_text,
                confidence=max(0, min(100, int(confidence))),
                is_processed=True,
                processed_at=now,
                ocr_error_message=None,
                updated_at=now,
            )
        )
        with self._session_factory() as session, session.begin():
            updated = self._execute(session, stmt)
        if not updated:
            logger.warning("Document %s was not processing; result discarded", document_id)
        return updated

    def mark_failed(self, document_id: str, error_message: str) -> bool:
        """Fail a processing run with an error message.

        Returns:
            ``False`` if the record is no longer processing.
        """
        stmt = (
            update(DocumentRecord)
            .where(
                DocumentRecord.id == document_id,
                DocumentRecord.ocr_status == OCRStatus.PROCESSING.value,
            )
            .values(
                ocr_status=OCRStatus.FAILED.value,
                ocr_error_message=error_message or "OCR processing failed",
                updated_at=utcnow(),
            )
        )
        with self._session_factory() as session, session.begin():
            updated = self._execute(session, stmt)
        if not updated:
            logger.warning("Document %s was not processing; failure discarded", document_id)
        return updated

    def attach_remote(self, document_id: str, remote_url: str, remote_public_id: str) -> bool:
        """Record where the file was mirrored in remote storage."""
        stmt = (
            update(DocumentRecord)
            .where(DocumentRecord.id == document_id)
            .values(
                remote_url=remote_url,
                remote_public_id=remote_public_id,
                updated_at=utcnow(),
            )
        )
        with self._session_factory() as session, session.begin():
            return self._execute(session, stmt)

    def delete(self, document_id: str, owner_id: str) -> DocumentRecord:
        """Delete an owner's record.

        The caller releases the stored file and any remote object using the
        returned record.

        Raises:
            NotFoundOrForbidden: If the record is absent or owned by someone else.
        """
        with self._session_factory() as session, session.begin():
            record = session.scalar(
                select(DocumentRecord).where(
                    DocumentRecord.id == document_id,
                    DocumentRecord.owner_id == owner_id,
                )
            )
            if record is None:
                raise NotFoundOrForbidden(document_id)
            session.delete(record)
        logger.info("Deleted document %s", document_id)
        return record

    def list_failed_ids(self, owner_id: str) -> list[str]:
        """Ids of an owner's failed records, oldest first."""
        stmt = (
            select(DocumentRecord.id)
            .where(
                DocumentRecord.owner_id == owner_id,
                DocumentRecord.ocr_status == OCRStatus.FAILED.value,
            )
            .order_by(DocumentRecord.created_at.asc())
        )
        with self._session_factory() as session:
            return list(session.scalars(stmt))

    def stats(self, owner_id: str | None = None) -> ProcessingStats:
        """Count records and average confidence per processing status."""
        stmt = select(
            DocumentRecord.ocr_status,
            func.count(DocumentRecord.id),
            func.avg(DocumentRecord.confidence),
        ).group_by(DocumentRecord.ocr_status)
        if owner_id is not None:
            stmt = stmt.where(DocumentRecord.owner_id == owner_id)

        with self._session_factory() as session:
            rows = session.execute(stmt).all()

        breakdown = [
            StatusBreakdown(
                status=status,
                count=count,
                avg_confidence=round(float(avg or 0.0), 2),
            )
            for status, count, avg in sorted(rows, key=lambda r: r[0])
        ]
        return ProcessingStats(
            total_documents=sum(b.count for b in breakdown),
            status_breakdown=breakdown,
        )

    @staticmethod
    def _without_path(stmt: Select) -> Select:
        return stmt.options(defer(DocumentRecord.file_path, raiseload=True))

    @staticmethod
    def _execute(session: Session, stmt) -> bool:
        result = session.execute(stmt, execution_options={"synchronize_session": False})
        return result.rowcount == 1
