"""User lookup and password checks backing the login endpoint."""

from __future__ import annotations

import logging

import bcrypt
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from helpdesk.core.errors import InvalidRequest, StorageError
from helpdesk.db.models.user import User

logger = logging.getLogger(__name__)

ROLES = ("admin", "user")


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


def get_user_by_email(session: Session, email: str) -> User | None:
    try:
        return session.scalar(select(User).where(User.email == email.strip().lower()))
    except SQLAlchemyError as exc:
        logger.error(f"Database error loading user {email}: {exc}", exc_info=True)
        raise StorageError("Failed to load user") from exc


def authenticate(session: Session, email: str, password: str) -> User | None:
    """Return the user when the credentials match, otherwise None."""
    user = get_user_by_email(session, email)
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


def create_user(session: Session, email: str, password: str, role: str = "user") -> User:
    """Add a user to the session; the caller commits."""
    if role not in ROLES:
        raise InvalidRequest(f"role must be one of: {', '.join(ROLES)}")
    user = User(email=email.strip().lower(), password_hash=hash_password(password), role=role)
    session.add(user)
    session.flush()
    return user
