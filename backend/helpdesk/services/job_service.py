"""Submission, cancellation and lookup of bulk jobs."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from helpdesk.core.errors import Conflict, InvalidRequest, NotFound, StorageError
from helpdesk.db.models.job import Job, JobStatus, JobType
from helpdesk.db.models.job_item import JobItem
from helpdesk.services import idempotency, job_store, outcome_log
from helpdesk.services.events import EventEmitter
from helpdesk.services.job_payloads import build_payload
from helpdesk.services.job_queue import enqueue_bulk_delete

logger = logging.getLogger(__name__)

Enqueue = Callable[[str, list[int]], object]


@dataclass
class Submission:
    job: Job
    created: bool


def submit_bulk_delete(
    session: Session,
    submitter_id: int,
    ticket_ids: list[int],
    idempotency_key: str | None = None,
    *,
    emitter: EventEmitter | None = None,
    enqueue: Enqueue = enqueue_bulk_delete,
) -> Submission:
    """Create and enqueue a bulk delete job, or return the one already submitted under the key.

    Raises:
        InvalidRequest: ticket_ids is empty or malformed; nothing is written.
        StorageError: the job could not be persisted or handed to the queue.
    """
    if not ticket_ids:
        raise InvalidRequest("ticket_ids must be a non-empty array")
    payload = build_payload(JobType.BULK_DELETE, ticket_ids=ticket_ids)
    idempotency_key = idempotency_key or None

    existing = idempotency.resolve(session, submitter_id, idempotency_key)
    if existing is not None:
        logger.info(
            f"Returning existing job {existing.id} for user {submitter_id} "
            f"with idempotency key: {idempotency_key}"
        )
        return Submission(existing, created=False)

    try:
        job = job_store.create_bulk_delete_job(
            session,
            submitter_id=submitter_id,
            payload=payload,
            idempotency_key=idempotency_key,
        )
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        # Lost a race against a concurrent submission with the same key.
        winner = idempotency.resolve(session, submitter_id, idempotency_key)
        if winner is None:
            logger.error(f"Integrity error creating job: {exc}", exc_info=True)
            raise StorageError("Failed to create job") from exc
        logger.info(f"Concurrent submission resolved to job {winner.id} for user {submitter_id}")
        return Submission(winner, created=False)
    except (SQLAlchemyError, StorageError) as exc:
        session.rollback()
        logger.error(f"Database error creating job: {exc}", exc_info=True)
        raise StorageError("Failed to create job") from exc

    try:
        enqueue(job.id, payload.items)
    except Exception as exc:
        logger.error(f"Failed to enqueue job {job.id}: {exc}", exc_info=True)
        job_store.transition(session, job.id, JobStatus.FAILED, error=f"Failed to enqueue job: {exc}")
        session.commit()
        raise StorageError(f"Failed to enqueue job {job.id}") from exc

    logger.info(f"Created bulk delete job {job.id} for user {submitter_id} with {job.total_items} tickets")
    if emitter is not None:
        emitter.job_created(job)
    return Submission(job, created=True)


def get_job(session: Session, job_id: str) -> Job:
    job = job_store.get_job(session, job_id)
    if job is None:
        raise NotFound(f"Job {job_id} not found")
    return job


def get_job_items(session: Session, job_id: str) -> Sequence[JobItem]:
    return outcome_log.list_outcomes(session, job_id)


def list_jobs(
    session: Session,
    *,
    job_type: str | None = None,
    status: str | None = None,
    submitter_id: int | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[Sequence[Job], int, int]:
    """Return (jobs, total, total_pages). Unknown type/status filters are ignored."""
    type_filter = JobType(job_type) if job_type in {t.value for t in JobType} else None
    status_filter = JobStatus(status) if status in {s.value for s in JobStatus} else None
    jobs, total = job_store.list_jobs(
        session,
        job_type=type_filter,
        status=status_filter,
        submitter_id=submitter_id,
        page=page,
        limit=limit,
    )
    return jobs, total, math.ceil(total / limit) if limit else 0


def cancel_job(session: Session, job_id: str) -> Job:
    """Cancel a queued or running job.

    Raises:
        NotFound: no such job.
        Conflict: the job already reached a terminal status.
    """
    get_job(session, job_id)
    if not job_store.transition(session, job_id, JobStatus.CANCELED):
        session.rollback()
        raise Conflict("Job cannot be canceled")
    session.commit()
    logger.info(f"Canceled job {job_id}")
    return job_store.get_job(session, job_id, refresh=True)
