"""Application entry point for the legal-aid document OCR API server."""

import uvicorn

from src.api.app import app
from src.utils.config import AppConfig, load_config
from src.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def serve(config: AppConfig, host: str | None = None, port: int | None = None) -> None:
    """Run the API with uvicorn.

    Args:
        config: Loaded application configuration.
        host: Bind address, overriding ``config.server.host``.
        port: Port, overriding ``config.server.port``.
    """
    host = host or config.server.host
    port = port or config.server.port
    logger.info("Starting document OCR API on %s:%d", host, port)
    uvicorn.run(app, host=host, port=port, log_level=config.log_level.lower())


def main() -> None:
    """Start the FastAPI application server."""
    config = load_config()
    setup_logging(config.log_level)
    serve(config)


if __name__ == "__main__":
    main()
