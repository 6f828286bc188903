"""Bulk job records: identity, lifecycle status and progress counters."""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import DateTime

from helpdesk.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobType(str, enum.Enum):
    BULK_DELETE = "bulk_delete"


class JobStatus(str, enum.Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.CANCELED}
)
CANCELABLE_STATUSES = frozenset({JobStatus.QUEUED, JobStatus.RUNNING})


class Job(Base):
    __tablename__ = "jobs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    type = Column(String(32), nullable=False, default=JobType.BULK_DELETE.value)
    status = Column(String(32), nullable=False, default=JobStatus.QUEUED.value, index=True)
    progress = Column(Integer, nullable=False, default=0)
    total_items = Column(Integer, nullable=False, default=0)
    processed_items = Column(Integer, nullable=False, default=0)
    submitter_id = Column(Integer, nullable=False, index=True)
    idempotency_key = Column(String(512))
    payload = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False)
    error = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    completed_at = Column(DateTime(timezone=True))

    # NULL keys never collide, so submissions without a key are not deduplicated.
    __table_args__ = (
        UniqueConstraint("submitter_id", "idempotency_key", name="uq_jobs_submitter_idempotency_key"),
    )

    @property
    def job_status(self) -> JobStatus:
        return JobStatus(self.status)
