"""Fan-out of job lifecycle events to real-time subscribers.

Every event goes to the submitter's channel and to the admin channel. Delivery
is best effort: a failing sink is logged and never affects job state.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

from redis import Redis

from helpdesk.api.schemas.job import snapshot_job
from helpdesk.core.config import Settings, get_settings
from helpdesk.core.errors import ConfigurationError
from helpdesk.db.models.job import Job
from helpdesk.utils.redis_client import create_redis_client

logger = logging.getLogger(__name__)

ADMIN_CHANNEL = "admin"

JOB_CREATED = "jobs:created"
JOB_PROGRESS = "jobs:progress"
JOB_ITEM = "jobs:item"
JOB_COMPLETED = "jobs:completed"
JOB_FAILED = "jobs:failed"


def user_channel(user_id: int) -> str:
    return f"user:{user_id}"


class EventSink(Protocol):
    """Transport that pushes one event onto one channel."""

    def publish(self, channel: str, event: str, data: dict[str, Any]) -> None: ...


class RedisEventSink:
    """Publish events on Redis pub/sub; the SSE relay subscribes to the same channels."""

    def __init__(self, client: Redis, prefix: str) -> None:
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "RedisEventSink":
        settings = settings or get_settings()
        client = create_redis_client(
            settings.redis_url, decode_responses=True, socket_connect_timeout=2
        )
        return cls(client, settings.event_channel_prefix)

    def channel_key(self, channel: str) -> str:
        return f"{self._prefix}{channel}"

    def publish(self, channel: str, event: str, data: dict[str, Any]) -> None:
        message = json.dumps({"event": event, "data": data}, default=str)
        self._client.publish(self.channel_key(channel), message)


class EventEmitter:
    """Lifecycle event API used by the submission side and the internal bridge."""

    def __init__(self, sink: EventSink | None) -> None:
        if sink is None:
            raise ConfigurationError("EventEmitter requires an event sink")
        self._sink = sink

    def emit(self, submitter_id: int, event: str, data: dict[str, Any]) -> None:
        for channel in (user_channel(submitter_id), ADMIN_CHANNEL):
            try:
                self._sink.publish(channel, event, data)
            except Exception as exc:
                logger.error(
                    f"Failed to deliver {event} for job {data.get('job_id')} to {channel}: {exc}",
                    exc_info=True,
                )
        logger.debug(f"Emitted {event} for job {data.get('job_id')} to user {submitter_id}")

    def job_created(self, job: Job) -> None:
        self.emit(job.submitter_id, JOB_CREATED, {"job_id": job.id, "job": snapshot_job(job)})

    def job_progress(self, job_id: str, submitter_id: int, progress: int, processed_items: int) -> None:
        self.emit(
            submitter_id,
            JOB_PROGRESS,
            {"job_id": job_id, "progress": progress, "processed_items": processed_items},
        )

    def job_item(
        self,
        job_id: str,
        submitter_id: int,
        item_id: int,
        outcome: str,
        error: str | None = None,
    ) -> None:
        self.emit(
            submitter_id,
            JOB_ITEM,
            {"job_id": job_id, "item_id": item_id, "outcome": outcome, "error": error},
        )

    def job_completed(self, job_id: str, submitter_id: int, job: dict[str, Any]) -> None:
        self.emit(submitter_id, JOB_COMPLETED, {"job_id": job_id, "job": job})

    def job_failed(self, job_id: str, submitter_id: int, error: str) -> None:
        self.emit(submitter_id, JOB_FAILED, {"job_id": job_id, "error": error})
