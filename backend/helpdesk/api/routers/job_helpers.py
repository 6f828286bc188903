"""Shared helpers for shaping job responses."""
from __future__ import annotations

from collections.abc import Sequence

from fastapi import HTTPException, status

from helpdesk.api.dependencies.auth import CurrentUser
from helpdesk.api.schemas.job import JobDetail, JobItemRead, JobRead
from helpdesk.core.errors import (
    Conflict,
    ConfigurationError,
    HelpdeskError,
    InvalidRequest,
    NotFound,
    StorageError,
)
from helpdesk.db.models.job import Job
from helpdesk.db.models.job_item import JobItem

ERROR_STATUS: dict[type[HelpdeskError], int] = {
    InvalidRequest: status.HTTP_400_BAD_REQUEST,
    NotFound: status.HTTP_404_NOT_FOUND,
    Conflict: status.HTTP_409_CONFLICT,
    StorageError: status.HTTP_503_SERVICE_UNAVAILABLE,
    ConfigurationError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def to_http_error(exc: HelpdeskError) -> HTTPException:
    """Map a service error onto the matching HTTP status."""
    for error_type, status_code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An unexpected error occurred",
    )


def ensure_can_view(job: Job, user: CurrentUser) -> None:
    """Admins see everything; everyone else only their own submissions."""
    if not user.is_admin and job.submitter_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")


def serialize_job_detail(job: Job, items: Sequence[JobItem]) -> JobDetail:
    """Job record plus its outcome log, in recording order."""
    base = JobRead.model_validate(job).model_dump()
    return JobDetail(**base, items=[JobItemRead.model_validate(item) for item in items])
