"""Upload, reprocess, and delete flows that span store, storage, and worker."""

from src.errors import InvalidUpload
from src.ocr.languages import DEFAULT_LANGUAGE, validate_language
from src.utils.config import StorageConfig
from src.utils.logger import get_logger
from src.worker.coordinator import ProcessingCoordinator

from .models import DocumentRecord, DocumentType
from .storage import LocalFileStore, RemoteStorage
from .store import DocumentMeta, DocumentStore

logger = get_logger(__name__)

# Categories offered by the mobile client, mapped onto stored document types.
CATEGORY_TO_TYPE: dict[str, DocumentType] = {
    "Legal": DocumentType.LEGAL_DOCUMENT,
    "Contract": DocumentType.CONTRACT,
    "Certificate": DocumentType.CERTIFICATE,
    "ID": DocumentType.IDENTIFICATION,
    "Personal": DocumentType.OTHER,
    "Business": DocumentType.CONTRACT,
    "Medical": DocumentType.OTHER,
    "Education": DocumentType.CERTIFICATE,
    "General": DocumentType.OTHER,
}


def resolve_document_type(document_type: str | None, category: str | None = None) -> DocumentType:
    """Pick the document type from an explicit value or a client category.

    Raises:
        InvalidUpload: If ``document_type`` is given but unknown.
    """
    if document_type:
        try:
            return DocumentType(document_type)
        except ValueError as exc:
            raise InvalidUpload(f"Unknown document type: {document_type}") from exc
    return CATEGORY_TO_TYPE.get(category or "", DocumentType.LEGAL_DOCUMENT)


class DocumentService:
    """Entry points used by the HTTP layer and CLI.

    Args:
        store: Document record store.
        coordinator: Background processing coordinator.
        file_store: Local file storage for uploads.
        storage_config: Upload limits.
        remote: Optional remote storage mirror.
    """

    def __init__(
        self,
        store: DocumentStore,
        coordinator: ProcessingCoordinator,
        file_store: LocalFileStore,
        storage_config: StorageConfig | None = None,
        remote: RemoteStorage | None = None,
    ) -> None:
        self.store = store
        self.coordinator = coordinator
        self.file_store = file_store
        self.storage_config = storage_config or StorageConfig()
        self.remote = remote

    def upload(
        self,
        content: bytes,
        original_filename: str | None,
        mime_type: str | None,
        owner_id: str,
        document_type: str | None = None,
        language: str | None = None,
        category: str | None = None,
    ) -> DocumentRecord:
        """Validate and store an upload, create its record, and schedule OCR.

        Validation happens before anything is written, so a rejected upload
        leaves neither a file nor a record behind.

        Returns:
            The new record as created (status ``pending``).

        Raises:
            InvalidUpload: If the file is missing, too large, or of a
                disallowed type, or the document type is unknown.
            UnsupportedLanguage: If the OCR language is not supported.
        """
        if not content:
            raise InvalidUpload("No file uploaded")
        if not original_filename:
            raise InvalidUpload("File must have an original name")
        if not mime_type or mime_type not in self.storage_config.allowed_mime_types:
            raise InvalidUpload(f"Unsupported file type: {mime_type}")
        if len(content) > self.storage_config.max_upload_bytes:
            raise InvalidUpload(
                f"File exceeds the {self.storage_config.max_upload_bytes} byte limit"
            )
        meta = DocumentMeta(
            document_type=resolve_document_type(document_type, category).value,
            language=validate_language(language or DEFAULT_LANGUAGE),
        )

        stored = self.file_store.save(content, original_filename, mime_type)
        try:
            record = self.store.create(meta, stored, owner_id)
        except Exception:
            self._remove_local(stored.path)
            raise

        self._mirror(record)
        self.coordinator.submit(record.id)
        return record

    def reprocess(self, document_id: str, owner_id: str) -> bool:
        """Start a fresh processing run for an owner's document.

        Returns:
            ``True`` if a run was scheduled, ``False`` if one was already
            in flight.

        Raises:
            NotFoundOrForbidden: If the document is absent or not owned.
        """
        self.store.get(document_id, owner_id)
        return self.coordinator.submit(document_id) is not None

    def reprocess_failed(self, owner_id: str) -> list[str]:
        """Resubmit all of an owner's failed documents."""
        return self.coordinator.reprocess_failed(owner_id)

    def delete(self, document_id: str, owner_id: str) -> DocumentRecord:
        """Delete a document record and release its stored files.

        Cleanup errors are logged; the record deletion alone decides success.

        Raises:
            NotFoundOrForbidden: If the document is absent or not owned.
        """
        record = self.store.delete(document_id, owner_id)

        if record.remote_public_id and self.remote is not None:
            try:
                self.remote.delete(record.remote_public_id)
            except Exception as exc:
                logger.error(
                    "Error deleting remote object %s for document %s: %s",
                    record.remote_public_id,
                    document_id,
                    exc,
                )

        self._remove_local(record.file_path)
        return record

    def _mirror(self, record: DocumentRecord) -> None:
        if self.remote is None:
            return
        try:
            remote = self.remote.upload(record.file_path)
        except Exception as exc:
            logger.warning("Remote upload failed for document %s: %s", record.id, exc)
            return
        self.store.attach_remote(record.id, remote.url, remote.public_id)
        record.remote_url = remote.url
        record.remote_public_id = remote.public_id

    def _remove_local(self, path: str) -> None:
        try:
            self.file_store.unlink(path)
        except OSError as exc:
            logger.warning("Error deleting local file %s: %s", path, exc)
