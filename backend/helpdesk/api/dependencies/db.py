"""Database session dependency."""

from collections.abc import Generator

from sqlalchemy.orm import Session

from helpdesk.db.session import get_db


def get_session() -> Generator[Session, None, None]:
    """FastAPI dependency that yields a managed SQLAlchemy session.

    Tests override this to point routers at an in-memory database.
    """
    yield from get_db()
