"""Hand jobs to the durable queue."""

from __future__ import annotations

import logging

from helpdesk.core.config import get_settings
from helpdesk.workers.tasks.bulk_delete import bulk_delete_task

logger = logging.getLogger(__name__)


def enqueue_bulk_delete(job_id: str, ticket_ids: list[int]) -> str:
    """Publish a bulk delete unit and return the broker task id."""
    result = bulk_delete_task.apply_async(
        args=[job_id, ticket_ids],
        queue=get_settings().jobs_queue,
    )
    logger.info(f"Enqueued bulk delete job {job_id} with {len(ticket_ids)} tickets (task {result.id})")
    return result.id
