#!/usr/bin/env python3
"""Start the bulk job worker with suppressed security warnings for containerized environments."""

import sys
import warnings

# Suppress the superuser privilege warning
warnings.filterwarnings('ignore', category=UserWarning, message='.*superuser privileges.*')
warnings.filterwarnings('ignore', category=RuntimeWarning, message='.*superuser privileges.*')

from helpdesk.core.config import get_settings  # noqa: E402
from helpdesk.workers.celery_app import celery_app  # noqa: E402

if __name__ == '__main__':
    settings = get_settings()

    # Each pool process runs one job end-to-end; chunks within a job stay sequential.
    celery_app.worker_main(argv=[
        'worker',
        f'--loglevel={settings.log_level.lower()}',
        f'--queues={settings.jobs_queue}',
        f'--concurrency={settings.worker_concurrency}',
        '--pool=prefork',
        '--without-mingle',
        '--without-gossip',
    ] + sys.argv[1:])
