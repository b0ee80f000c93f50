"""Exception types shared by the OCR pipeline, record store, and API."""


class DocumentOCRError(Exception):
    """Base class for all service errors."""


class PreprocessingFailed(DocumentOCRError):
    """An image could not be read, decoded, transformed, or encoded."""


class UnsupportedLanguage(DocumentOCRError, ValueError):
    """The requested OCR language is not in the supported set."""

    def __init__(self, language: str) -> None:
        super().__init__(f"Unsupported OCR language: {language}")
        self.language = language


class ExtractionFailed(DocumentOCRError):
    """The OCR backend failed, timed out, or all attempts were exhausted."""


class NotFoundOrForbidden(DocumentOCRError, LookupError):
    """The document does not exist or is not owned by the caller."""

    def __init__(self, document_id: str) -> None:
        super().__init__("Document not found or access denied")
        self.document_id = document_id


class ConcurrentModification(DocumentOCRError):
    """A processing run is already active for the document."""

    def __init__(self, document_id: str) -> None:
        super().__init__(f"Document {document_id} is already being processed")
        self.document_id = document_id


class InvalidUpload(DocumentOCRError, ValueError):
    """An uploaded file failed synchronous validation."""
