"""Append-only per-item outcomes of a bulk job."""

import enum

from sqlalchemy import Column, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.types import DateTime

from helpdesk.db.base import Base
from helpdesk.db.models.job import utcnow


class ItemOutcome(str, enum.Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class JobItem(Base):
    __tablename__ = "job_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(Integer, nullable=False)
    outcome = Column(String(16), nullable=False)
    error = Column(Text)
    recorded_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("job_id", "item_id", name="uq_job_items_job_item"),
    )
