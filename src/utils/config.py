"""Configuration management for the document OCR service.

Loads and validates YAML configuration with sensible defaults for image
normalization, OCR, retry policy, storage, persistence, the worker pool,
and the HTTP server.
"""

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "LEGAL_OCR_CONFIG"


class NormalizerConfig(BaseModel):
    """Configuration for the image normalization pipeline."""

    target_height: int = 2000
    sharpen_sigma: float = 1.0
    threshold: int = 128
    output_format: str = ".png"


class OCRConfig(BaseModel):
    """Configuration for Tesseract OCR engine."""

    tesseract_cmd: str | None = None
    default_lang: str = "eng"
    psm: int = 6
    oem: int = 3
    timeout_seconds: float = 120.0


class RetryConfig(BaseModel):
    """Retry and acceptance policy for extraction attempts."""

    max_retries: int = Field(default=2, ge=0)
    min_confidence: int = 30
    backoff_seconds: float = 1.0


class StorageConfig(BaseModel):
    """Configuration for uploaded file storage."""

    upload_dir: str = "uploads/documents"
    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_mime_types: list[str] = Field(
        default_factory=lambda: [
            "image/jpeg",
            "image/png",
            "image/jpg",
            "image/tiff",
            "image/bmp",
        ]
    )


class DatabaseConfig(BaseModel):
    """Configuration for the document record database."""

    url: str = "sqlite:///documents.db"
    echo: bool = False


class WorkerConfig(BaseModel):
    """Configuration for the background processing pool."""

    max_workers: int = Field(default=2, ge=1)


class ServerConfig(BaseModel):
    """Bind address for the HTTP API."""

    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)


class AppConfig(BaseModel):
    """Top-level application configuration."""

    normalizer: NormalizerConfig = Field(default_factory=NormalizerConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    worker: WorkerConfig = Field(default_factory=WorkerConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file. Defaults to the
            ``LEGAL_OCR_CONFIG`` environment variable, then
            configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path(os.environ.get(CONFIG_ENV_VAR, "configs/config.yaml"))

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
