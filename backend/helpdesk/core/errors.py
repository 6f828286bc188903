"""Error taxonomy shared by the API, the job pipeline and the worker."""

from __future__ import annotations

from dataclasses import dataclass


class HelpdeskError(Exception):
    """Base class for errors raised by helpdesk services."""


class InvalidRequest(HelpdeskError):
    """Bad input rejected before any state is touched."""


class NotFound(HelpdeskError):
    """Unknown job or record."""


class Conflict(HelpdeskError):
    """Operation not allowed in the record's current state."""


class StorageError(HelpdeskError):
    """The durable store (or the queue hand-off) is unavailable."""


class ProcessorFailure(HelpdeskError):
    """Unexpected job-level failure; fatal to the current attempt."""


class ConfigurationError(HelpdeskError):
    """A required collaborator was not wired up."""


@dataclass(frozen=True)
class ItemFailure:
    """Expected per-item failure. Recorded as an outcome, never raised."""

    item_id: int
    reason: str
