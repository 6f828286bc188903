"""Job record persistence and guarded lifecycle transitions.

Every status write is a conditional UPDATE whose WHERE clause names the legal
source states, so concurrent writers (the worker, cancel requests) can never
move a job out of a terminal state. Nothing here commits; callers own the
transaction.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from helpdesk.core.errors import StorageError
from helpdesk.db.models.job import (
    CANCELABLE_STATUSES,
    TERMINAL_STATUSES,
    Job,
    JobStatus,
    JobType,
    utcnow,
)
from helpdesk.services.job_payloads import BulkDeletePayload

logger = logging.getLogger(__name__)

ALLOWED_SOURCES: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.RUNNING: frozenset({JobStatus.QUEUED}),
    JobStatus.SUCCEEDED: frozenset({JobStatus.RUNNING}),
    JobStatus.FAILED: frozenset({JobStatus.QUEUED, JobStatus.RUNNING}),
    JobStatus.CANCELED: CANCELABLE_STATUSES,
}


def compute_progress(processed_items: int, total_items: int) -> int:
    """Whole percentage, rounded half up, clamped to 0-100."""
    if total_items <= 0:
        return 0
    percent = math.floor(processed_items * 100 / total_items + 0.5)
    return max(0, min(percent, 100))


def create_bulk_delete_job(
    session: Session,
    *,
    submitter_id: int,
    payload: BulkDeletePayload,
    idempotency_key: str | None = None,
) -> Job:
    """Add a queued job for the payload and flush it to obtain its id."""
    job = Job(
        type=JobType.BULK_DELETE.value,
        status=JobStatus.QUEUED.value,
        progress=0,
        total_items=len(payload.items),
        processed_items=0,
        submitter_id=submitter_id,
        idempotency_key=idempotency_key,
        payload=payload.model_dump(),
    )
    session.add(job)
    session.flush()
    return job


def get_job(session: Session, job_id: str, *, refresh: bool = False) -> Job | None:
    """Load a job; refresh=True bypasses the identity map to see other writers."""
    try:
        return session.get(Job, job_id, populate_existing=refresh)
    except SQLAlchemyError as exc:
        logger.error(f"Database error loading job {job_id}: {exc}", exc_info=True)
        raise StorageError(f"Failed to load job {job_id}") from exc


def find_by_idempotency_key(session: Session, submitter_id: int, key: str) -> Job | None:
    try:
        return session.scalar(
            select(Job).where(
                Job.submitter_id == submitter_id,
                Job.idempotency_key == key,
            )
        )
    except SQLAlchemyError as exc:
        logger.error(f"Database error resolving idempotency key: {exc}", exc_info=True)
        raise StorageError("Failed to resolve idempotency key") from exc


def list_jobs(
    session: Session,
    *,
    job_type: JobType | None = None,
    status: JobStatus | None = None,
    submitter_id: int | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[Sequence[Job], int]:
    """Return one page of jobs (newest first) and the total matching count."""
    conditions = []
    if job_type is not None:
        conditions.append(Job.type == job_type.value)
    if status is not None:
        conditions.append(Job.status == status.value)
    if submitter_id is not None:
        conditions.append(Job.submitter_id == submitter_id)

    try:
        total = session.scalar(select(func.count(Job.id)).where(*conditions)) or 0
        jobs = session.scalars(
            select(Job)
            .where(*conditions)
            .order_by(Job.created_at.desc(), Job.id)
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()
    except SQLAlchemyError as exc:
        logger.error(f"Database error listing jobs: {exc}", exc_info=True)
        raise StorageError("Failed to list jobs") from exc
    return jobs, total


def transition(
    session: Session,
    job_id: str,
    target: JobStatus,
    *,
    error: str | None = None,
) -> bool:
    """Move a job to target if its current status allows it.

    Returns False when the job is missing or in a state the transition may not
    leave; the record is left untouched in that case.
    """
    sources = ALLOWED_SOURCES[target]
    values: dict = {"status": target.value, "updated_at": utcnow()}
    if target in TERMINAL_STATUSES:
        values["completed_at"] = utcnow()
    if target is JobStatus.FAILED:
        values["error"] = error

    stmt = (
        update(Job)
        .where(Job.id == job_id, Job.status.in_([s.value for s in sources]))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    try:
        result = session.execute(stmt)
    except SQLAlchemyError as exc:
        logger.error(
            f"Database error moving job {job_id} to {target.value}: {exc}",
            exc_info=True,
        )
        raise StorageError(f"Failed to update job {job_id}") from exc

    moved = result.rowcount == 1
    if not moved:
        logger.info(f"Job {job_id} not moved to {target.value}: not in {sorted(s.value for s in sources)}")
    return moved


def update_progress(session: Session, job_id: str, processed_items: int, total_items: int) -> int:
    """Persist processed_items and the derived percentage.

    The guard keeps processed_items non-decreasing and leaves succeeded/failed
    jobs alone; a canceled job still records the chunk that was in flight.
    """
    progress = compute_progress(processed_items, total_items)
    stmt = (
        update(Job)
        .where(
            Job.id == job_id,
            Job.processed_items <= processed_items,
            Job.status.notin_([JobStatus.SUCCEEDED.value, JobStatus.FAILED.value]),
        )
        .values(
            processed_items=min(processed_items, total_items),
            progress=progress,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    try:
        session.execute(stmt)
    except SQLAlchemyError as exc:
        logger.error(f"Database error updating progress for job {job_id}: {exc}", exc_info=True)
        raise StorageError(f"Failed to update progress for job {job_id}") from exc
    return progress
