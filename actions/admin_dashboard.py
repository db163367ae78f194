from __future__ import annotations

from typing import Any

from sqlalchemy import func, or_, select

from cache_layer import cache_get_or_set, make_cache_key
from models import OrientationCompletion
from services.orientation_state import WORKER_STATUS_LABELS, WorkerStatus
from utils import ApiError, ClientContext

STATUS_FILTERS = {"all", "completed", "in_progress"}


def _parse_filters(data: dict[str, Any]) -> dict[str, Any]:
    status = str(data.get("status") or "all").strip().lower()
    if status not in STATUS_FILTERS:
        raise ApiError("BAD_REQUEST", f"Unknown status filter: {status}")
    try:
        limit = int(data.get("limit") or 200)
    except (TypeError, ValueError):
        raise ApiError("BAD_REQUEST", "limit must be an integer")
    return {"q": str(data.get("q") or "").strip(), "status": status, "limit": max(1, min(1000, limit))}


def _status_label(value: str) -> str:
    try:
        return WORKER_STATUS_LABELS[WorkerStatus(value)]
    except ValueError:
        return value


def _serialize(row: OrientationCompletion) -> dict[str, Any]:
    return {
        "sessionId": str(row.sessionId or ""),
        "workerName": str(row.workerName or ""),
        "hireDate": str(row.hireDate or ""),
        "supervisor": str(row.supervisor or ""),
        "site": str(row.site or ""),
        "statusType": str(row.statusType or ""),
        "statusTypeLabel": _status_label(str(row.statusType or "")),
        "quizAttempts": int(row.quizAttempts or 0),
        "status": str(row.status or ""),
        "startedAt": str(row.startedAt or ""),
        "completedAt": str(row.completedAt or ""),
    }


def _query_completions(db, filters: dict[str, Any]) -> dict[str, Any]:
    base = select(OrientationCompletion)
    q = filters["q"]
    if q:
        like = f"%{q}%"
        base = base.where(
            or_(
                OrientationCompletion.workerName.ilike(like),
                OrientationCompletion.supervisor.ilike(like),
                OrientationCompletion.site.ilike(like),
            )
        )

    # Totals follow the search but not the status filter.
    counts = _status_counts(db, base)

    if filters["status"] != "all":
        base = base.where(OrientationCompletion.status == filters["status"])

    rows = (
        db.execute(base.order_by(OrientationCompletion.startedAt.desc()).limit(filters["limit"]))
        .scalars()
        .all()
    )
    completed = int(counts.get("completed", 0))
    in_progress = int(counts.get("in_progress", 0))
    return {
        "items": [_serialize(r) for r in rows],
        "totals": {"total": completed + in_progress, "completed": completed, "inProgress": in_progress},
        "filters": dict(filters),
    }


def _status_counts(db, base) -> dict[str, int]:
    sub = base.subquery()
    rows = db.execute(select(sub.c.status, func.count()).group_by(sub.c.status)).all()
    return {str(status or ""): int(n or 0) for status, n in rows}


def admin_completions_list(data, ctx: ClientContext | None, db, cfg):
    if not ctx or not ctx.isAdmin:
        raise ApiError("FORBIDDEN", "Admin access required", http_status=403)

    filters = _parse_filters(data or {})
    key = make_cache_key("ADMIN_COMPLETIONS", params=filters)
    return cache_get_or_set(key, lambda: _query_completions(db, filters))
