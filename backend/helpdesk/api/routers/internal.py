"""Worker-to-API bridge: the worker reports job events, the API pushes them to subscribers."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from helpdesk.api.dependencies.auth import verify_internal_token
from helpdesk.api.dependencies.db import get_session
from helpdesk.api.dependencies.events import get_event_emitter
from helpdesk.api.schemas.job import (
    JobCompletedEvent,
    JobFailedEvent,
    JobItemEvent,
    JobProgressEvent,
    snapshot_job,
)
from helpdesk.db.models.job import Job
from helpdesk.services import job_store
from helpdesk.services.events import EventEmitter

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_internal_token)])


def _load_job(db: Session, job_id: str) -> Job:
    job = job_store.get_job(db, job_id)
    if job is None:
        logger.warning(f"Event reported for unknown job {job_id}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return job


@router.post("/jobs/progress", summary="Relay a progress event")
async def report_progress(
    event: JobProgressEvent,
    db: Session = Depends(get_session),
    emitter: EventEmitter = Depends(get_event_emitter),
) -> dict[str, bool]:
    job = _load_job(db, event.job_id)
    emitter.job_progress(job.id, job.submitter_id, event.progress, event.processed_items)
    return {"ok": True}


@router.post("/jobs/item", summary="Relay a per-ticket outcome event")
async def report_item(
    event: JobItemEvent,
    db: Session = Depends(get_session),
    emitter: EventEmitter = Depends(get_event_emitter),
) -> dict[str, bool]:
    job = _load_job(db, event.job_id)
    emitter.job_item(job.id, job.submitter_id, event.item_id, event.outcome, event.error)
    return {"ok": True}


@router.post("/jobs/completed", summary="Relay a completion event")
async def report_completed(
    event: JobCompletedEvent,
    db: Session = Depends(get_session),
    emitter: EventEmitter = Depends(get_event_emitter),
) -> dict[str, bool]:
    job = _load_job(db, event.job_id)
    emitter.job_completed(job.id, job.submitter_id, event.job or snapshot_job(job))
    return {"ok": True}


@router.post("/jobs/failed", summary="Relay a failure event")
async def report_failed(
    event: JobFailedEvent,
    db: Session = Depends(get_session),
    emitter: EventEmitter = Depends(get_event_emitter),
) -> dict[str, bool]:
    job = _load_job(db, event.job_id)
    emitter.job_failed(job.id, job.submitter_id, event.error)
    return {"ok": True}
