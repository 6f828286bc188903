"""Typed job inputs, keyed by job type."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, PositiveInt, ValidationError, field_validator

from helpdesk.core.errors import InvalidRequest
from helpdesk.db.models.job import JobType


class BulkDeletePayload(BaseModel):
    """Ordered ticket ids to soft-delete. Duplicates are collapsed, first wins."""

    type: Literal["bulk_delete"] = JobType.BULK_DELETE.value
    ticket_ids: list[PositiveInt] = Field(..., min_length=1)

    @field_validator("ticket_ids")
    @classmethod
    def drop_duplicates(cls, v: list[int]) -> list[int]:
        return list(dict.fromkeys(v))

    @property
    def items(self) -> list[int]:
        return self.ticket_ids


PAYLOAD_TYPES: dict[JobType, type[BaseModel]] = {
    JobType.BULK_DELETE: BulkDeletePayload,
}


def build_payload(job_type: JobType, **fields: Any) -> BaseModel:
    """Validate input for a job type, raising InvalidRequest on bad data."""
    model = PAYLOAD_TYPES.get(job_type)
    if model is None:
        raise InvalidRequest(f"Unsupported job type: {job_type}")
    try:
        return model(**fields)
    except ValidationError as exc:
        raise InvalidRequest(_describe(exc)) from exc


def _describe(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
