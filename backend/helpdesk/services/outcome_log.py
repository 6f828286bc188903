"""Append-only log of per-item outcomes within a job."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from helpdesk.core.errors import StorageError
from helpdesk.db.models.job_item import ItemOutcome, JobItem

logger = logging.getLogger(__name__)


def record_outcome(
    session: Session,
    job_id: str,
    item_id: int,
    outcome: ItemOutcome,
    error: str | None = None,
) -> bool:
    """Append an outcome unless one already exists for (job_id, item_id).

    Returns False for a duplicate, which happens when a redelivered job races
    an earlier attempt. Nothing is committed here.
    """
    try:
        existing = session.scalar(
            select(JobItem.id).where(JobItem.job_id == job_id, JobItem.item_id == item_id)
        )
        if existing is not None:
            logger.warning(f"Outcome for item {item_id} of job {job_id} already recorded, skipping")
            return False
        session.add(
            JobItem(
                job_id=job_id,
                item_id=item_id,
                outcome=outcome.value,
                error=error if outcome is ItemOutcome.FAILED else None,
            )
        )
        session.flush()
    except SQLAlchemyError as exc:
        logger.error(f"Database error recording outcome for job {job_id}: {exc}", exc_info=True)
        raise StorageError(f"Failed to record outcome for job {job_id}") from exc
    return True


def recorded_item_ids(session: Session, job_id: str) -> set[int]:
    try:
        return set(session.scalars(select(JobItem.item_id).where(JobItem.job_id == job_id)))
    except SQLAlchemyError as exc:
        logger.error(f"Database error reading outcomes for job {job_id}: {exc}", exc_info=True)
        raise StorageError(f"Failed to read outcomes for job {job_id}") from exc


def list_outcomes(session: Session, job_id: str) -> Sequence[JobItem]:
    """All outcomes of a job in recording order."""
    try:
        return session.scalars(
            select(JobItem)
            .where(JobItem.job_id == job_id)
            .order_by(JobItem.recorded_at, JobItem.id)
        ).all()
    except SQLAlchemyError as exc:
        logger.error(f"Database error listing outcomes for job {job_id}: {exc}", exc_info=True)
        raise StorageError(f"Failed to list outcomes for job {job_id}") from exc
