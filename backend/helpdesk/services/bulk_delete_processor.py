"""Chunked execution of bulk soft-delete jobs.

A job is driven chunk by chunk in input order. Cancellation is cooperative:
the job record is re-read before each chunk and nowhere else, so a cancel
request takes effect within one chunk. Errors raised by the ticket mutation
are contained per chunk and recorded as failed items; anything else, including
the worker's soft time limit, fails the attempt and is re-raised for the
queue's retry policy.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from celery.exceptions import SoftTimeLimitExceeded
from sqlalchemy.orm import Session

from helpdesk.api.schemas.job import snapshot_job
from helpdesk.core.config import get_settings
from helpdesk.core.errors import ItemFailure, ProcessorFailure
from helpdesk.db.models.job import JobStatus
from helpdesk.db.models.job_item import ItemOutcome
from helpdesk.services import job_store, outcome_log, ticket_service
from helpdesk.services.event_bridge import JobEventReporter
from helpdesk.utils.batching import chunked

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    job_id: str
    status: str
    processed_items: int
    succeeded: int = 0
    failed: int = 0


@dataclass(frozen=True)
class _Outcome:
    item_id: int
    outcome: ItemOutcome
    error: str | None = None


def process_bulk_delete(
    session: Session,
    job_id: str,
    ticket_ids: list[int],
    reporter: JobEventReporter,
    *,
    chunk_size: int | None = None,
    final_attempt: bool = True,
) -> ProcessResult:
    """Run (or resume) a bulk delete job.

    Args:
        session: Session owned by the caller; committed once per chunk.
        job_id: Job record to drive.
        ticket_ids: Ordered ticket ids from the queued unit.
        reporter: Receives progress, item, completed and failed events.
        chunk_size: Tickets per chunk, defaults to BULK_DELETE_CHUNK_SIZE.
        final_attempt: False when the queue will redeliver on failure; the job
            then stays running so the next attempt can resume it.

    Raises:
        ProcessorFailure: the job is missing or an error escaped the chunk
            boundary.
    """
    chunk_size = chunk_size or get_settings().bulk_delete_chunk_size
    ticket_ids = list(dict.fromkeys(ticket_ids))
    logger.info(f"Processing bulk delete job {job_id} with {len(ticket_ids)} tickets")

    try:
        return _run(session, job_id, ticket_ids, reporter, chunk_size)
    except Exception as exc:
        session.rollback()
        message = str(exc) or exc.__class__.__name__
        if final_attempt:
            logger.error(f"Job {job_id} failed: {message}", exc_info=True)
            _mark_failed(session, job_id, message, reporter)
        else:
            logger.warning(f"Job {job_id} attempt failed, awaiting redelivery: {message}", exc_info=True)
        if isinstance(exc, ProcessorFailure):
            raise
        raise ProcessorFailure(message) from exc


def _run(
    session: Session,
    job_id: str,
    ticket_ids: list[int],
    reporter: JobEventReporter,
    chunk_size: int,
) -> ProcessResult:
    job = job_store.get_job(session, job_id, refresh=True)
    if job is None:
        raise ProcessorFailure(f"Job {job_id} not found")

    status = job.job_status
    if status is JobStatus.CANCELED:
        logger.info(f"Job {job_id} was canceled before processing")
        return ProcessResult(job_id, status.value, job.processed_items)
    if status.is_terminal:
        logger.info(f"Job {job_id} is already {status.value}, ignoring redelivery")
        return ProcessResult(job_id, status.value, job.processed_items)

    if status is JobStatus.QUEUED:
        if not job_store.transition(session, job_id, JobStatus.RUNNING):
            # Canceled between the load and the transition.
            session.rollback()
            current = job_store.get_job(session, job_id, refresh=True)
            if current is None:
                raise ProcessorFailure(f"Job {job_id} disappeared before processing")
            return ProcessResult(job_id, current.status, job.processed_items)
        session.commit()
    else:
        logger.info(f"Resuming job {job_id} after redelivery")

    total = job.total_items
    done = outcome_log.recorded_item_ids(session, job_id) & set(ticket_ids)
    processed = len(done)
    succeeded = failed = 0
    _report(reporter.progress, job_id, job_store.compute_progress(processed, total), processed)

    for chunk in chunked(ticket_ids, chunk_size):
        current = job_store.get_job(session, job_id, refresh=True)
        if current is None:
            raise ProcessorFailure(f"Job {job_id} disappeared during processing")
        if current.job_status is JobStatus.CANCELED:
            # The cancel request already wrote the status and completed_at.
            logger.info(f"Job {job_id} was canceled during processing at {processed}/{total}")
            _report(reporter.progress, job_id, job_store.compute_progress(processed, total), processed)
            return ProcessResult(job_id, JobStatus.CANCELED.value, processed, succeeded, failed)

        pending = [ticket_id for ticket_id in chunk if ticket_id not in done]
        if not pending:
            continue

        recorded = [
            result
            for result in _execute_chunk(session, job_id, pending)
            if outcome_log.record_outcome(session, job_id, result.item_id, result.outcome, result.error)
        ]
        processed += len(recorded)
        progress = job_store.update_progress(session, job_id, processed, total)
        session.commit()
        done.update(pending)

        for result in recorded:
            if result.outcome is ItemOutcome.SUCCEEDED:
                succeeded += 1
            else:
                failed += 1
            _report(reporter.item, job_id, result.item_id, result.outcome.value, result.error)
        _report(reporter.progress, job_id, progress, processed)
        logger.debug(f"Job {job_id}: processed {processed}/{total} tickets ({progress}%)")

    if not job_store.transition(session, job_id, JobStatus.SUCCEEDED):
        session.rollback()
        current = job_store.get_job(session, job_id, refresh=True)
        if current is not None and current.job_status is JobStatus.CANCELED:
            logger.info(f"Job {job_id} was canceled as it finished")
            _report(reporter.progress, job_id, job_store.compute_progress(processed, total), processed)
            return ProcessResult(job_id, JobStatus.CANCELED.value, processed, succeeded, failed)
        raise ProcessorFailure(
            f"Job {job_id} could not be completed from status "
            f"{current.status if current else 'missing'}"
        )
    session.commit()

    final = job_store.get_job(session, job_id, refresh=True)
    _report(reporter.completed, job_id, snapshot_job(final))
    if failed:
        logger.info(f"Job {job_id} completed with {failed} failed item(s)")
    else:
        logger.info(f"Job {job_id} completed successfully")
    return ProcessResult(job_id, JobStatus.SUCCEEDED.value, processed, succeeded, failed)


def _execute_chunk(session: Session, job_id: str, chunk: list[int]) -> list[_Outcome]:
    """Soft-delete one chunk; succeeded ids first, then failures with reasons."""
    try:
        changed = ticket_service.bulk_soft_delete(session, chunk)
        changed_ids = set(changed)
        failures = [
            ItemFailure(ticket_id, ticket_service.describe_unchanged(session, ticket_id))
            for ticket_id in chunk
            if ticket_id not in changed_ids
        ]
    except SoftTimeLimitExceeded:
        raise
    except Exception as exc:
        session.rollback()
        message = str(exc) or exc.__class__.__name__
        logger.error(f"Error processing chunk for job {job_id}: {message}", exc_info=True)
        failures = [ItemFailure(ticket_id, message) for ticket_id in chunk]
        changed = []

    return [_Outcome(ticket_id, ItemOutcome.SUCCEEDED) for ticket_id in changed] + [
        _Outcome(failure.item_id, ItemOutcome.FAILED, failure.reason) for failure in failures
    ]


def _report(send: Callable[..., None], job_id: str, *args: Any) -> None:
    """Deliver one event; delivery problems never change the job's outcome."""
    try:
        send(job_id, *args)
    except SoftTimeLimitExceeded:
        raise
    except Exception as exc:
        logger.warning(f"Could not report {send.__name__} event for job {job_id}: {exc}", exc_info=True)


def _mark_failed(session: Session, job_id: str, message: str, reporter: JobEventReporter) -> None:
    try:
        moved = job_store.transition(session, job_id, JobStatus.FAILED, error=message)
        session.commit()
    except Exception as exc:
        session.rollback()
        logger.error(f"Could not mark job {job_id} as failed: {exc}", exc_info=True)
        return
    if moved:
        _report(reporter.failed, job_id, message)
