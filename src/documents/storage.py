"""File storage collaborators for uploaded documents.

Local disk holds the file that OCR reads; a remote store (for example an
image CDN) may mirror it. Both are released when a document is deleted.
"""

import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from src.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class StoredFile:
    """A persisted upload as seen by the record store."""

    original_filename: str
    filename: str
    path: str
    mime_type: str
    size: int


@dataclass(frozen=True)
class RemoteObject:
    """Location of a file mirrored to remote storage."""

    url: str
    public_id: str


class RemoteStorage(Protocol):
    """Remote object storage used to publish uploaded documents."""

    def upload(self, local_path: str) -> RemoteObject:
        """Upload a local file and return its public location."""
        ...

    def delete(self, public_id: str) -> None:
        """Delete a previously uploaded object."""
        ...


class LocalFileStore:
    """Stores uploads under a single directory with generated names.

    Args:
        upload_dir: Directory for stored files. Created on first use.
    """

    def __init__(self, upload_dir: Path | str) -> None:
        self.upload_dir = Path(upload_dir)

    @staticmethod
    def generate_filename(original_filename: str) -> str:
        """Build a unique storage name keeping the original extension."""
        suffix = Path(original_filename).suffix.lower()
        return f"document-{uuid.uuid4().hex}{suffix}"

    def save(self, content: bytes, original_filename: str, mime_type: str) -> StoredFile:
        """Write upload content to disk.

        Args:
            content: Raw file bytes.
            original_filename: Client-supplied filename.
            mime_type: Client-declared MIME type.

        Returns:
            Description of the stored file.
        """
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        filename = self.generate_filename(original_filename)
        path = self.upload_dir / filename
        path.write_bytes(content)
        logger.info("Stored upload %s as %s (%d bytes)", original_filename, filename, len(content))
        return StoredFile(
            original_filename=original_filename,
            filename=filename,
            path=str(path),
            mime_type=mime_type,
            size=len(content),
        )

    def unlink(self, path: Path | str) -> None:
        """Remove a stored file.

        Raises:
            OSError: If the file cannot be removed.
        """
        Path(path).unlink()
        logger.info("Removed stored file %s", path)
