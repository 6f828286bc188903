"""Map (submitter, idempotency key) to a previously submitted job."""

from __future__ import annotations

from sqlalchemy.orm import Session

from helpdesk.db.models.job import Job
from helpdesk.services import job_store


def resolve(session: Session, submitter_id: int, key: str | None) -> Job | None:
    """Return the submitter's job for key, or None.

    Pure lookup. Keys are scoped per submitter, and a missing key never matches
    anything.
    """
    if not key:
        return None
    return job_store.find_by_idempotency_key(session, submitter_id, key)
