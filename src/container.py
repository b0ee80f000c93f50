"""Wiring of configured components shared by the API, CLI, and entry point."""

from dataclasses import dataclass
from pathlib import Path

from src.documents.database import create_db_engine, init_db
from src.documents.service import DocumentService
from src.documents.storage import LocalFileStore
from src.documents.store import DocumentStore
from src.extraction.orchestrator import ExtractionOrchestrator
from src.ocr.tesseract_engine import TesseractEngine
from src.preprocessing.pipeline import ImageNormalizer
from src.utils.config import AppConfig
from src.worker.coordinator import ProcessingCoordinator


@dataclass
class Services:
    """Long-lived components of a running service."""

    config: AppConfig
    store: DocumentStore
    coordinator: ProcessingCoordinator
    documents: DocumentService


def build_orchestrator(config: AppConfig) -> ExtractionOrchestrator:
    """Create the normalizer -> engine -> cleaner orchestrator."""
    engine = TesseractEngine(
        tesseract_cmd=config.ocr.tesseract_cmd,
        default_lang=config.ocr.default_lang,
        timeout=config.ocr.timeout_seconds,
    )
    return ExtractionOrchestrator(
        normalizer=ImageNormalizer(config.normalizer),
        engine=engine,
        retry=config.retry,
        ocr=config.ocr,
    )


def build_services(config: AppConfig) -> Services:
    """Create the database, store, worker pool, and document service."""
    session_factory = init_db(create_db_engine(config.database))
    store = DocumentStore(session_factory)
    coordinator = ProcessingCoordinator(
        store,
        build_orchestrator(config),
        max_workers=config.worker.max_workers,
    )
    documents = DocumentService(
        store,
        coordinator,
        LocalFileStore(Path(config.storage.upload_dir)),
        storage_config=config.storage,
    )
    return Services(config=config, store=store, coordinator=coordinator, documents=documents)
