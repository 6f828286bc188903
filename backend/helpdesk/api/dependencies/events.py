"""Event emitter dependency."""

from fastapi import Request

from helpdesk.core.errors import ConfigurationError
from helpdesk.services.events import EventEmitter


def get_event_emitter(request: Request) -> EventEmitter:
    """Return the emitter installed on the app at startup."""
    emitter = getattr(request.app.state, "event_emitter", None)
    if emitter is None:
        raise ConfigurationError("Event emitter is not configured on this application")
    return emitter
