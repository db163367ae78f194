from __future__ import annotations

from typing import Any

from models import OrientationLog
from services.orientation_session import OrientationSession
from utils import ApiError, ClientContext, iso_utc_now, redact_for_audit, safe_json_string


def append_log(
    db,
    *,
    action: str,
    ctx: ClientContext | None,
    sessionId: str = "",
    remarks: str = "",
    meta: dict[str, Any] | None = None,
    at: str | None = None,
) -> None:
    db.add(
        OrientationLog(
            timestamp=at or iso_utc_now(),
            sessionId=str(sessionId or ""),
            deviceId=str(ctx.deviceId if ctx else ""),
            action=str(action or "").upper(),
            remarks=str(remarks or ""),
            correlationId=str(ctx.requestId if ctx else ""),
            metaJson=safe_json_string(redact_for_audit(meta or {}), "{}"),
        )
    )


def open_session(db, ctx: ClientContext | None) -> OrientationSession:
    if not ctx or not str(ctx.deviceId or "").strip():
        raise ApiError("BAD_REQUEST", "Missing device id")
    return OrientationSession.open(db, ctx.deviceId)


def require_session_id(state) -> str:
    sid = str(state.sessionId or "").strip()
    if not sid:
        raise ApiError("PRECONDITION_FAILED", "Orientation has not been started", http_status=409)
    return sid


def as_float(value: Any, name: str) -> float:
    if isinstance(value, bool):
        raise ApiError("BAD_REQUEST", f"{name} must be a number")
    try:
        out = float(value)
    except (TypeError, ValueError):
        raise ApiError("BAD_REQUEST", f"{name} must be a number")
    if out != out or out in (float("inf"), float("-inf")):
        raise ApiError("BAD_REQUEST", f"{name} must be a number")
    return out
