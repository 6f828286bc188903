"""Forward worker-side job events to the API process over HTTP.

The worker cannot reach subscribers directly; it posts each event to the
API's /internal/jobs endpoints, which resolve the submitter and push it out.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from helpdesk.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

INTERNAL_TOKEN_HEADER = "X-Internal-Token"


class JobEventReporter(Protocol):
    """Events the bulk processor reports while it works, keyed by job id."""

    def progress(self, job_id: str, progress: int, processed_items: int) -> None: ...

    def item(self, job_id: str, item_id: int, outcome: str, error: str | None = None) -> None: ...

    def completed(self, job_id: str, job: dict[str, Any]) -> None: ...

    def failed(self, job_id: str, error: str) -> None: ...


class HttpEventBridge:
    """Fire-and-forget JobEventReporter backed by httpx."""

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 5.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._client = client or httpx.Client(
            base_url=base_url,
            timeout=timeout,
            headers={
                "Content-Type": "application/json",
                "User-Agent": "Helpdesk-Worker/1.0",
                INTERNAL_TOKEN_HEADER: token,
            },
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "HttpEventBridge":
        settings = settings or get_settings()
        return cls(
            settings.internal_api_url,
            settings.internal_api_token,
            timeout=settings.event_bridge_timeout,
        )

    def _post(self, path: str, body: dict[str, Any]) -> bool:
        try:
            response = self._client.post(path, json=body)
        except httpx.TimeoutException as e:
            logger.warning(f"Timed out forwarding {path} for job {body.get('job_id')}: {e}")
            return False
        except httpx.RequestError as e:
            logger.error(f"Failed to forward {path} for job {body.get('job_id')}: {e}", exc_info=True)
            return False

        if not 200 <= response.status_code < 300:
            logger.warning(
                f"API rejected {path} for job {body.get('job_id')}: "
                f"HTTP {response.status_code}: {response.text[:200]}"
            )
            return False
        return True

    def progress(self, job_id: str, progress: int, processed_items: int) -> None:
        self._post(
            "/internal/jobs/progress",
            {"job_id": job_id, "progress": progress, "processed_items": processed_items},
        )

    def item(self, job_id: str, item_id: int, outcome: str, error: str | None = None) -> None:
        self._post(
            "/internal/jobs/item",
            {"job_id": job_id, "item_id": item_id, "outcome": outcome, "error": error},
        )

    def completed(self, job_id: str, job: dict[str, Any]) -> None:
        self._post("/internal/jobs/completed", {"job_id": job_id, "job": job})

    def failed(self, job_id: str, error: str) -> None:
        self._post("/internal/jobs/failed", {"job_id": job_id, "error": error})

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HttpEventBridge":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
