"""Background processing of uploaded documents.

Requests claim a record synchronously and hand the OCR run to a bounded
thread pool; the outcome is only observable through the stored record.
"""

import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor

from src.documents.store import DocumentStore
from src.errors import ConcurrentModification
from src.extraction.orchestrator import ExtractionOrchestrator
from src.ocr.languages import SUPPORTED_LANGUAGES
from src.utils.logger import get_logger

logger = get_logger(__name__)


class ProcessingCoordinator:
    """Drive documents through pending -> processing -> completed/failed.

    Args:
        store: Document record store.
        orchestrator: Extraction orchestrator run for each document.
        executor: Pool that runs jobs. When omitted, a thread pool with
            ``max_workers`` threads is created and owned by the coordinator.
        max_workers: Concurrency ceiling for the default pool.
    """

    def __init__(
        self,
        store: DocumentStore,
        orchestrator: ExtractionOrchestrator,
        executor: Executor | None = None,
        max_workers: int = 2,
    ) -> None:
        self.store = store
        self.orchestrator = orchestrator
        self.max_workers = max_workers
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="ocr-worker"
        )
        self._active: set[str] = set()
        self._lock = threading.Lock()

    def submit(self, document_id: str) -> Future | None:
        """Claim a document and schedule its processing run.

        The claim happens on the caller's thread, so the record reads as
        ``processing`` by the time this returns.

        Args:
            document_id: Record to process.

        Returns:
            Future of the job, or ``None`` if a run is already in flight
            or the pool no longer accepts work.

        Raises:
            NotFoundOrForbidden: If the record does not exist.
        """
        try:
            self.store.mark_processing(document_id)
        except ConcurrentModification:
            logger.info("Document %s already processing, request ignored", document_id)
            return None

        try:
            future = self._executor.submit(self.process, document_id)
        except RuntimeError as exc:
            logger.error("Could not schedule document %s: %s", document_id, exc)
            self.store.mark_failed(document_id, f"Could not schedule processing: {exc}")
            return None

        logger.info("Scheduled OCR for document %s", document_id)
        return future

    def process(self, document_id: str) -> None:
        """Run OCR for a claimed document and store the outcome.

        Never raises; failures are recorded on the document.
        """
        with self._lock:
            self._active.add(document_id)
        try:
            self._run(document_id)
        finally:
            with self._lock:
                self._active.discard(document_id)

    def _run(self, document_id: str) -> None:
        try:
            record = self.store.get_internal(document_id)
            result = self.orchestrator.extract(record.file_path, language=record.language)
        except Exception as exc:
            logger.error("OCR processing failed for document %s: %s", document_id, exc)
            self._record(self.store.mark_failed, document_id, str(exc))
            return

        logger.info(
            "OCR completed for document %s (confidence %d, %d attempts)",
            document_id,
            result.confidence,
            result.attempts,
        )
        self._record(
            self.store.update_processing_result, document_id, result.text, result.confidence
        )

    @staticmethod
    def _record(update, document_id: str, *args: object) -> None:
        try:
            update(document_id, *args)
        except Exception:
            logger.exception(
                "Failed to store outcome for document %s; it stays processing", document_id
            )

    def reprocess_failed(self, owner_id: str) -> list[str]:
        """Resubmit every failed document of an owner.

        Returns:
            Ids that were scheduled.
        """
        scheduled = []
        for document_id in self.store.list_failed_ids(owner_id):
            if self.submit(document_id) is not None:
                scheduled.append(document_id)
        logger.info("Rescheduled %d failed documents for owner %s", len(scheduled), owner_id)
        return scheduled

    def stats(self) -> dict[str, int]:
        """Current worker usage."""
        with self._lock:
            active = len(self._active)
        return {
            "active_workers": active,
            "max_workers": self.max_workers,
            "supported_languages": len(SUPPORTED_LANGUAGES),
        }

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work, optionally waiting for running jobs."""
        if self._owns_executor:
            self._executor.shutdown(wait=wait)
