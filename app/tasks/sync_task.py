"""
Celery task that drains the offline submission queue.
"""
from __future__ import annotations

import logging

from actions.sync import run_drain
from app.config import get_config
from app.tasks import celery_app
from db import get_engine, init_engine

log = logging.getLogger("sync")


def _ensure_engine(cfg) -> None:
    if get_engine() is None:
        init_engine(cfg.DATABASE_URL)


@celery_app.task(name="sync.drain_pending_submissions", bind=True)
def drain_pending_submissions(self):
    """
    Deliver every queued submission once.

    Returns the drain summary (delivered/failed ids, skipped flag). Failed
    entries stay queued for the next run rather than retrying the task.
    """
    cfg = get_config()
    _ensure_engine(cfg)
    result = run_drain(cfg)
    log.info(
        "task_id=%s delivered=%s failed=%s skipped=%s",
        self.request.id,
        result.get("deliveredCount"),
        result.get("failedCount"),
        result.get("skipped"),
    )
    return result
