from __future__ import annotations

import logging
from typing import Any

from db import SessionLocal
from services.offline_queue import OfflineQueue
from services.submission_client import is_online, make_sender
from utils import ApiError, ClientContext, redact_for_audit

log = logging.getLogger("sync")


def queue_submission(db, cfg, kind: str, payload: Any) -> dict[str, Any]:
    """
    Store a submission in the offline queue and, when inline delivery is on,
    try to send it within the current request.

    A failed inline attempt leaves the entry queued for the next drain.
    """
    queue = OfflineQueue(db)
    sid = queue.enqueue(kind, payload)
    delivered = False
    if bool(getattr(cfg, "SUBMISSION_SYNC_INLINE", False)) and is_online(cfg):
        item = queue.get(sid)
        if item is not None:
            delivered = queue.attempt(item, make_sender(cfg)).ok
    return {"submissionId": sid, "delivered": delivered, "queued": not delivered}


def run_drain(cfg) -> dict[str, Any]:
    """Drain the queue in a session of its own; each entry commits separately."""
    if not is_online(cfg):
        log.info("drain skipped: submission endpoint not configured")
        return {"delivered": [], "failed": [], "deliveredCount": 0, "failedCount": 0, "skipped": True, "offline": True}

    db = SessionLocal()
    try:
        out = OfflineQueue(db).drain(make_sender(cfg)).to_dict()
        out["offline"] = False
        out["remaining"] = OfflineQueue(db).count()
        return out
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def sync_pending_list(data, ctx: ClientContext | None, db, cfg):
    if not ctx or not ctx.isAdmin:
        raise ApiError("FORBIDDEN", "Admin access required", http_status=403)
    items = OfflineQueue(db).list_pending()
    return {"items": [redact_for_audit(i.to_dict()) for i in items], "total": len(items), "online": is_online(cfg)}


def sync_drain(data, ctx: ClientContext | None, db, cfg):
    return run_drain(cfg)
