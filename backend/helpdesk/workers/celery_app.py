"""Celery application factory for async processing."""

import ssl

from celery import Celery
from celery.signals import after_setup_logger, worker_process_init

from helpdesk.core.config import get_settings
from helpdesk.core.logging_config import configure_logging

settings = get_settings()

# Get broker and backend URLs
broker_url = settings.broker_url
backend_url = settings.result_backend_url

# Convert redis:// to rediss:// for Upstash domains to enable SSL
if ".upstash.io" in broker_url and broker_url.startswith("redis://"):
    broker_url = broker_url.replace("redis://", "rediss://", 1)
if ".upstash.io" in backend_url and backend_url.startswith("redis://"):
    backend_url = backend_url.replace("redis://", "rediss://", 1)
is_ssl = broker_url.startswith("rediss://") or backend_url.startswith("rediss://")

# The Redis result backend reads ssl_cert_reqs from the URL during init
if is_ssl:
    ssl_param = "ssl_cert_reqs=none"
    if "ssl_cert_reqs" not in broker_url:
        separator = "&" if "?" in broker_url else "?"
        broker_url = f"{broker_url}{separator}{ssl_param}"
    if "ssl_cert_reqs" not in backend_url:
        separator = "&" if "?" in backend_url else "?"
        backend_url = f"{backend_url}{separator}{ssl_param}"

celery_app = Celery(
    "helpdesk",
    broker=broker_url,
    backend=backend_url,
)

# Task routing by queue
celery_app.conf.task_routes = {
    "helpdesk.workers.tasks.bulk_delete": {"queue": settings.jobs_queue},
}
celery_app.conf.task_default_queue = settings.jobs_queue

celery_config = {
    "task_serializer": "json",
    "accept_content": ["json"],
    "result_serializer": "json",
    "timezone": "UTC",
    "enable_utc": True,
    "task_acks_late": True,  # Acknowledge after task completion
    "task_reject_on_worker_lost": True,  # Re-queue if worker dies
    "worker_prefetch_multiplier": 1,  # Fair task distribution
    "worker_concurrency": settings.worker_concurrency,
    "task_time_limit": 3600,  # 1 hour hard limit
    "task_soft_time_limit": 3300,  # 55 min soft limit
    "result_expires": 3600,
    "broker_connection_retry_on_startup": True,
    "worker_hijack_root_logger": False,
    "result_backend_always_retry": True,
    "result_backend_max_retries": 3,
}

if is_ssl:
    ssl_dict = {"ssl_cert_reqs": ssl.CERT_NONE}
    celery_config["broker_use_ssl"] = ssl_dict
    celery_config["redis_backend_use_ssl"] = ssl_dict

celery_app.conf.update(celery_config)


@after_setup_logger.connect
def _setup_logger(logger=None, loglevel=None, **kwargs):
    configure_logging()


@worker_process_init.connect
def _setup_child_logging(**kwargs):
    configure_logging()


# Register tasks with celery_app (they use the @celery_app.task decorator)
from helpdesk.workers.tasks import bulk_delete  # noqa: E402,F401
