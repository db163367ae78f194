"""
Celery app for background draining of the offline submission queue.

Usage:
    celery -A app.tasks.celery_app worker --loglevel=INFO
    celery -A app.tasks.celery_app beat --loglevel=INFO   # when SYNC_INTERVAL_SECONDS > 0
"""
from __future__ import annotations

import os

from celery import Celery


def make_celery() -> Celery:
    """
    Create and configure the Celery app with a Redis broker.

    Environment variables:
        REDIS_URL: Redis connection URL (default: redis://localhost:6379/0)
        CELERY_RESULT_BACKEND: Optional separate result backend
        SYNC_INTERVAL_SECONDS: Period of the scheduled drain; 0 disables it
    """
    redis_url = os.getenv("REDIS_URL", "") or "redis://localhost:6379/0"
    result_backend = os.getenv("CELERY_RESULT_BACKEND", redis_url)

    app = Celery(
        "safety_orientation",
        broker=redis_url,
        backend=result_backend,
        include=["app.tasks.sync_task"],
    )

    app.conf.update(
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        enable_utc=True,
        result_expires=86400,
        # A drain that dies mid-way is safe to rerun.
        task_acks_late=True,
        task_reject_on_worker_lost=True,
        worker_prefetch_multiplier=1,
        worker_concurrency=int(os.getenv("CELERY_CONCURRENCY", "2")),
    )

    try:
        interval = int(os.getenv("SYNC_INTERVAL_SECONDS", "0") or "0")
    except ValueError:
        interval = 0
    if interval > 0:
        app.conf.beat_schedule = {
            "drain-pending-submissions": {
                "task": "sync.drain_pending_submissions",
                "schedule": float(interval),
            }
        }

    return app


celery_app = make_celery()
