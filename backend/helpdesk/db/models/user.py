"""SQLAlchemy model for API users."""

from sqlalchemy import Column, Integer, String
from sqlalchemy.types import DateTime

from helpdesk.db.base import Base
from helpdesk.db.models.job import utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(16), nullable=False, default="user")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
