"""Engine and session factory for the document database."""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.utils.config import DatabaseConfig
from src.utils.logger import get_logger

from .models import Base

logger = get_logger(__name__)


def create_db_engine(config: DatabaseConfig) -> Engine:
    """Create a SQLAlchemy engine for the configured database URL.

    SQLite connections are shared across worker threads; in-memory SQLite
    uses a single static connection so every session sees the same data.

    Args:
        config: Database configuration.

    Returns:
        Configured engine.
    """
    kwargs: dict[str, object] = {"echo": config.echo}
    if config.url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in config.url or config.url == "sqlite://":
            kwargs["poolclass"] = StaticPool

    engine = create_engine(config.url, **kwargs)
    logger.info("Database engine created for %s", engine.url.render_as_string())
    return engine


def init_db(engine: Engine) -> sessionmaker[Session]:
    """Create tables if needed and return a session factory.

    Args:
        engine: Engine to bind sessions to.

    Returns:
        Session factory with ``expire_on_commit`` disabled, so records stay
        readable after their session closes.
    """
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
