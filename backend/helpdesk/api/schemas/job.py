"""Bulk job request and response payloads."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from helpdesk.db.models.job import Job


class JobCreate(BaseModel):
    ticket_ids: list[int] = Field(..., description="Ordered ticket ids to soft-delete")
    idempotency_key: str | None = Field(
        None, max_length=512, description="Repeat-safe token, scoped to the caller"
    )


class JobRead(BaseModel):
    id: str
    type: str = Field(..., description="Currently always bulk_delete")
    status: str = Field(..., description="queued|running|succeeded|failed|canceled")
    progress: int = Field(..., description="0-100 percentage for UI progress bars")
    total_items: int
    processed_items: int
    submitter_id: int
    error: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None

    model_config = {"from_attributes": True}


class JobItemRead(BaseModel):
    id: int
    job_id: str
    item_id: int
    outcome: str = Field(..., description="succeeded|failed")
    error: str | None = None
    recorded_at: datetime | None = None

    model_config = {"from_attributes": True}


class JobDetail(JobRead):
    items: list[JobItemRead] = Field(default_factory=list)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class JobListResponse(BaseModel):
    jobs: list[JobRead]
    pagination: Pagination


class JobProgressEvent(BaseModel):
    job_id: str
    progress: int = Field(..., ge=0, le=100)
    processed_items: int = Field(..., ge=0)


class JobItemEvent(BaseModel):
    job_id: str
    item_id: int
    outcome: str
    error: str | None = None


class JobCompletedEvent(BaseModel):
    job_id: str
    job: dict[str, Any] | None = None


class JobFailedEvent(BaseModel):
    job_id: str
    error: str


def snapshot_job(job: Job) -> dict[str, Any]:
    """JSON-safe copy of a job record for event payloads."""
    return JobRead.model_validate(job).model_dump(mode="json")
