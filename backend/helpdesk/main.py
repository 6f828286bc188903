"""FastAPI application bootstrap and router wiring."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from helpdesk.api.routers import auth, health, internal, jobs, tickets
from helpdesk.core.config import get_settings
from helpdesk.core.logging_config import configure_logging
from helpdesk.db.init_db import create_schema
from helpdesk.db.session import engine
from helpdesk.services.events import EventEmitter, RedisEventSink

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Instantiate the FastAPI app and include top-level routers."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title=settings.app_name, version="0.1.0")

    cors_origins = settings.cors_origins
    logger.info(f"[CORS] Parsed allowed origins: {cors_origins}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings.create_schema_on_startup:
        create_schema(engine)

    # One emitter per process; routers reach it through app.state.
    app.state.event_emitter = EventEmitter(RedisEventSink.from_settings(settings))

    app.include_router(health.router)
    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(tickets.router, prefix="/api/tickets", tags=["tickets"])
    app.include_router(jobs.router, prefix="/api/jobs", tags=["jobs"])
    app.include_router(internal.router, prefix="/internal", tags=["internal"])

    return app


app = create_app()
