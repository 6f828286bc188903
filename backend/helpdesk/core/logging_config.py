"""Process-wide logging setup for the API and the Celery worker."""

import logging

from helpdesk.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Apply LOG_LEVEL to the root logger.

    Celery runs with worker_hijack_root_logger=False, so the worker relies on
    this too.
    """
    level_name = (level or get_settings().log_level).upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)
    logging.getLogger().setLevel(getattr(logging, level_name, logging.INFO))
