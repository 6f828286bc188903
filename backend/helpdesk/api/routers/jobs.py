"""Bulk job endpoints: submit, list, inspect, cancel and live event stream."""
from __future__ import annotations

import json
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.responses import StreamingResponse
from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from helpdesk.api.dependencies.auth import CurrentUser, get_current_user, require_admin
from helpdesk.api.dependencies.db import get_session
from helpdesk.api.dependencies.events import get_event_emitter
from helpdesk.api.routers.job_helpers import ensure_can_view, serialize_job_detail, to_http_error
from helpdesk.api.schemas.job import JobCreate, JobDetail, JobListResponse, JobRead, Pagination
from helpdesk.core.config import get_settings
from helpdesk.core.errors import HelpdeskError
from helpdesk.services import job_service
from helpdesk.services.events import ADMIN_CHANNEL, EventEmitter, user_channel
from helpdesk.utils.redis_client import create_async_redis_client

logger = logging.getLogger(__name__)

router = APIRouter()

KEEPALIVE_SECONDS = 15.0


def format_sse_frame(raw: str) -> str | None:
    """Turn a published envelope into an SSE frame; None if it is not one."""
    try:
        envelope = json.loads(raw)
        return f"event: {envelope['event']}\ndata: {json.dumps(envelope['data'])}\n\n"
    except (ValueError, KeyError, TypeError):
        return None


@router.post(
    "/",
    summary="Submit a bulk ticket delete",
    status_code=status.HTTP_201_CREATED,
    response_model=JobRead,
)
async def create_job(
    payload: JobCreate,
    response: Response,
    user: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_session),
    emitter: EventEmitter = Depends(get_event_emitter),
) -> JobRead:
    """Queue a soft delete of the given tickets.

    Replaying the same idempotency key returns the first job with 200.
    """
    try:
        submission = job_service.submit_bulk_delete(
            db,
            user.id,
            payload.ticket_ids,
            payload.idempotency_key,
            emitter=emitter,
        )
    except HelpdeskError as e:
        logger.error(f"Failed to submit bulk delete for user {user.id}: {e}")
        raise to_http_error(e) from e
    except Exception as e:
        logger.error(f"Unexpected error submitting bulk delete: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred",
        ) from e

    if not submission.created:
        response.status_code = status.HTTP_200_OK
    return JobRead.model_validate(submission.job)


@router.get(
    "/",
    summary="List jobs with filters and pagination",
    response_model=JobListResponse,
)
async def list_jobs(
    job_type: str | None = Query(None, alias="type", description="Filter by job type"),
    status_filter: str | None = Query(None, alias="status", description="Filter by job status"),
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(10, ge=1, le=100, description="Jobs per page"),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> JobListResponse:
    """Newest first. Non-admins only see jobs they submitted."""
    try:
        jobs, total, total_pages = job_service.list_jobs(
            db,
            job_type=job_type,
            status=status_filter,
            submitter_id=None if user.is_admin else user.id,
            page=page,
            limit=limit,
        )
    except HelpdeskError as e:
        logger.error(f"Failed to list jobs: {e}")
        raise to_http_error(e) from e

    return JobListResponse(
        jobs=[JobRead.model_validate(job) for job in jobs],
        pagination=Pagination(page=page, limit=limit, total=total, total_pages=total_pages),
    )


@router.get(
    "/events/stream",
    summary="Server-Sent Events stream of job events",
)
async def stream_job_events(
    request: Request,
    user: CurrentUser = Depends(get_current_user),
) -> StreamingResponse:
    """Relay the caller's event channel to the browser.

    Admins receive the admin channel, which mirrors every job event.

    Example client usage:
    ```javascript
    const source = new EventSource('/api/jobs/events/stream?access_token=...');
    source.addEventListener('jobs:progress', (e) => {
      const data = JSON.parse(e.data);
      console.log('Progress:', data.progress);
    });
    ```
    """
    settings = get_settings()
    channel = ADMIN_CHANNEL if user.is_admin else user_channel(user.id)
    channel_key = f"{settings.event_channel_prefix}{channel}"

    async def event_generator() -> AsyncGenerator[str, None]:
        client = create_async_redis_client(settings.redis_url, decode_responses=True)
        pubsub = client.pubsub()
        try:
            await pubsub.subscribe(channel_key)
            yield "event: ready\ndata: {}\n\n"
            while not await request.is_disconnected():
                message = await pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=KEEPALIVE_SECONDS
                )
                if message is None:
                    yield ": keep-alive\n\n"
                    continue
                frame = format_sse_frame(message["data"])
                if frame is None:
                    logger.warning(f"Skipping malformed event on {channel_key}: {message['data']!r:.200}")
                    continue
                yield frame
        except RedisError as e:
            logger.error(f"Event stream for user {user.id} lost Redis: {e}", exc_info=True)
            yield "event: error\ndata: {\"error\": \"Event stream unavailable\"}\n\n"
        finally:
            await pubsub.unsubscribe(channel_key)
            await pubsub.aclose()
            await client.aclose()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )


@router.get(
    "/{job_id}",
    summary="Fetch a job with its per-ticket outcomes",
    response_model=JobDetail,
)
async def get_job(
    job_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> JobDetail:
    try:
        job = job_service.get_job(db, job_id)
        ensure_can_view(job, user)
        items = job_service.get_job_items(db, job_id)
    except HelpdeskError as e:
        raise to_http_error(e) from e
    return serialize_job_detail(job, items)


@router.post(
    "/{job_id}/cancel",
    summary="Cancel a queued or running job",
    response_model=JobRead,
)
async def cancel_job(
    job_id: str,
    user: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_session),
) -> JobRead:
    """The worker notices between chunks; tickets already deleted stay deleted."""
    try:
        job = job_service.cancel_job(db, job_id)
    except HelpdeskError as e:
        logger.info(f"Cancel of job {job_id} by user {user.id} rejected: {e}")
        raise to_http_error(e) from e
    return JobRead.model_validate(job)
