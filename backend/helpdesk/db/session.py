"""Engine and session factory configuration."""

from collections.abc import Generator
import logging
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.exc import DisconnectionError, OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from helpdesk.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def engine_options(database_url: str) -> dict[str, Any]:
    """Pick pool settings for the configured backend.

    SQLite (local runs, tests) shares one connection across threads; PostgreSQL
    gets a pre-pinged pool with keepalives for long-running worker tasks.
    """
    if database_url.startswith("sqlite"):
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    return {
        "poolclass": QueuePool,
        "pool_pre_ping": True,  # Test connections before using
        "pool_recycle": 1800,  # Recycle connections after 30 minutes
        "pool_size": 5,
        "max_overflow": 10,
        "connect_args": {
            "connect_timeout": 10,
            "keepalives": 1,
            "keepalives_idle": 30,
            "keepalives_interval": 10,
            "keepalives_count": 5,
        },
    }


engine = create_engine(
    settings.database_url,
    echo=False,
    future=True,
    **engine_options(settings.database_url),
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_fresh_session() -> Session:
    """Get a fresh database session, handling connection errors.

    Used by the worker, where a job can outlive an idle pooled connection.
    """
    try:
        return SessionLocal()
    except (OperationalError, DisconnectionError) as e:
        logger.warning(f"Connection error creating session: {e}, retrying...")
        # Force pool to reconnect
        engine.dispose()
        return SessionLocal()


def get_db() -> Generator[Session, None, None]:
    """Yield a transactional session for request/worker lifecycles."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
