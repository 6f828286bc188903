"""Celery task that runs bulk ticket soft-delete jobs."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any

from helpdesk.core.config import get_settings
from helpdesk.core.errors import ProcessorFailure
from helpdesk.db.session import get_fresh_session
from helpdesk.services.bulk_delete_processor import process_bulk_delete
from helpdesk.services.event_bridge import HttpEventBridge
from helpdesk.workers.celery_app import celery_app

logger = logging.getLogger(__name__)
settings = get_settings()


@celery_app.task(
    bind=True,
    name="helpdesk.workers.tasks.bulk_delete",
    autoretry_for=(ProcessorFailure,),
    max_retries=settings.job_max_attempts - 1,
    retry_backoff=settings.job_retry_backoff_seconds,
    retry_backoff_max=settings.job_retry_backoff_max,
    retry_jitter=False,
)
def bulk_delete_task(self, job_id: str, ticket_ids: list[int]) -> dict[str, Any]:
    """Soft-delete ticket_ids for job_id chunk by chunk, reporting progress to the API.

    Each delivery re-enters the processor from the top; the job record and the
    recorded outcomes decide what is left to do.
    """
    attempt = self.request.retries + 1
    final_attempt = self.request.retries >= self.max_retries
    logger.info(f"Bulk delete job {job_id}: attempt {attempt}/{self.max_retries + 1}")

    session = get_fresh_session()
    bridge = HttpEventBridge.from_settings(settings)
    try:
        result = process_bulk_delete(
            session,
            job_id,
            ticket_ids,
            bridge,
            chunk_size=settings.bulk_delete_chunk_size,
            final_attempt=final_attempt,
        )
        return asdict(result)
    finally:
        bridge.close()
        session.close()
