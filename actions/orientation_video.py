"""
Orientation video watch tracking.

- Signed, expiring video tokens bound to the orientation session
- Heartbeats that refuse skipping ahead before the first full watch
- Completion only once the furthest watched position reaches the end
"""
from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time
from dataclasses import dataclass

from actions.helpers import append_log, as_float, open_session, require_session_id
from models import VideoWatch
from services.orientation_state import Step
from services.step_guard import guard_step
from utils import ApiError, ClientContext, iso_utc_now

DEFAULT_VIDEO_URL = "/videos/orientation.mp4"


def _now() -> float:
    return time.time()


def _get_video_secret(cfg) -> str:
    secret = str(getattr(cfg, "SECRET_KEY", "") or "").strip()
    if not secret:
        raise ApiError("INTERNAL", "SECRET_KEY is not configured", http_status=500)
    return secret


def sign_video_token(payload: dict, secret: str) -> str:
    payload_json = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    payload_b64 = base64.urlsafe_b64encode(payload_json.encode("utf-8")).decode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), payload_b64.encode("utf-8"), hashlib.sha256).hexdigest()
    return f"{payload_b64}.{signature}"


def verify_video_token(token: str, secret: str, now: float | None = None) -> dict | None:
    """Decode a token, or None if it is malformed, tampered with, or expired."""
    parts = str(token or "").split(".")
    if len(parts) != 2:
        return None
    payload_b64, signature = parts
    expected_sig = hmac.new(secret.encode("utf-8"), payload_b64.encode("utf-8"), hashlib.sha256).hexdigest()
    if not hmac.compare_digest(signature, expected_sig):
        return None
    try:
        payload = json.loads(base64.urlsafe_b64decode(payload_b64.encode("utf-8")).decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None
    if not isinstance(payload, dict):
        return None
    if (now if now is not None else _now()) > float(payload.get("exp", 0) or 0):
        return None
    return payload


@dataclass(frozen=True)
class WatchUpdate:
    seekAllowed: bool
    maxTime: float
    resumeAt: float | None


def advance_watch(
    max_time: float,
    last_heartbeat_ts: float | None,
    current_time: float,
    now: float,
    *,
    unrestricted: bool,
    tolerance: float,
) -> WatchUpdate:
    """
    Decide whether a reported position is a legitimate continuation.

    Before the first full watch a position is accepted only if it is no
    further than the watched maximum plus the wall time elapsed since the
    last heartbeat plus ``tolerance`` seconds.
    """
    if unrestricted:
        return WatchUpdate(True, max(max_time, current_time), None)
    elapsed = max(0.0, now - last_heartbeat_ts) if last_heartbeat_ts is not None else 0.0
    if current_time > max_time + elapsed + tolerance:
        return WatchUpdate(False, max_time, max_time)
    return WatchUpdate(True, max(max_time, current_time), None)


def settle_duration(stored: float, reported: float, configured: float, tolerance: float) -> float:
    """
    Length of the video used for progress and the completion check.

    A configured length always wins. Otherwise the first positive length a
    player reports is kept, and a later report shorter than that (beyond
    ``tolerance``) is refused.
    """
    if configured > 0:
        return configured
    if stored > 0:
        if 0 < reported < stored - tolerance:
            raise ApiError("CONFLICT", "Reported video duration does not match this video", http_status=409)
        return stored
    return reported


def _resolve_token(data, cfg, session_id: str) -> dict:
    token = str((data or {}).get("videoToken") or (data or {}).get("video_token") or "").strip()
    if not token:
        raise ApiError("BAD_REQUEST", "Missing videoToken")
    payload = verify_video_token(token, _get_video_secret(cfg))
    if not payload:
        raise ApiError("TOKEN_EXPIRED", "Video token expired or invalid")
    if str(payload.get("sid") or "") != session_id:
        raise ApiError("FORBIDDEN", "Video token belongs to another orientation session", http_status=403)
    return payload


def _require_video_step(state) -> str:
    if guard_step(Step.VIDEO, state) is not None:
        raise ApiError("PRECONDITION_FAILED", "Worker information must be entered before the video", http_status=409)
    return require_session_id(state)


def _get_watch(db, session_id: str) -> VideoWatch:
    row = db.get(VideoWatch, session_id)
    if row is None:
        row = VideoWatch(sessionId=session_id, maxTime=0.0, duration=0.0, lastHeartbeatTs=None, completed=False, completedAt="")
        db.add(row)
    return row


def issue_video_token(db, ctx: ClientContext, cfg, session_id: str, already_completed: bool) -> dict:
    now = _now()
    expiry = int(getattr(cfg, "VIDEO_TOKEN_EXPIRY_SECONDS", 3600) or 3600)
    token = sign_video_token(
        {"sid": session_id, "dev": ctx.deviceId, "iat": int(now), "exp": int(now) + expiry},
        _get_video_secret(cfg),
    )

    watch = _get_watch(db, session_id)
    # Elapsed wall time is measured from here until the first heartbeat.
    watch.lastHeartbeatTs = now
    db.flush()

    completed = bool(watch.completed) or already_completed
    return {
        "videoToken": token,
        "expiresIn": expiry,
        "videoUrl": str(getattr(cfg, "VIDEO_URL", "") or "") or DEFAULT_VIDEO_URL,
        "resumeAt": 0.0 if completed else float(watch.maxTime or 0.0),
        "seekUnrestricted": completed,
    }


def video_token_get(data, ctx: ClientContext | None, db, cfg):
    state = open_session(db, ctx).state
    session_id = _require_video_step(state)
    return issue_video_token(db, ctx, cfg, session_id, state.videoCompleted)


def video_heartbeat(data, ctx: ClientContext | None, db, cfg):
    session = open_session(db, ctx)
    session_id = _require_video_step(session.state)
    _resolve_token(data, cfg, session_id)

    current_time = as_float((data or {}).get("currentTime"), "currentTime")
    duration = as_float((data or {}).get("duration"), "duration")
    if current_time < 0 or duration < 0:
        raise ApiError("BAD_REQUEST", "currentTime and duration must not be negative")

    watch = _get_watch(db, session_id)
    duration = settle_duration(
        float(watch.duration or 0.0),
        duration,
        float(getattr(cfg, "VIDEO_DURATION_SECONDS", 0.0) or 0.0),
        float(getattr(cfg, "VIDEO_END_TOLERANCE_SECONDS", 2.0)),
    )

    now = _now()
    unrestricted = bool(watch.completed) or session.state.videoCompleted
    update = advance_watch(
        float(watch.maxTime or 0.0),
        watch.lastHeartbeatTs,
        current_time,
        now,
        unrestricted=unrestricted,
        tolerance=float(getattr(cfg, "VIDEO_SEEK_TOLERANCE_SECONDS", 2.0)),
    )
    watch.maxTime = update.maxTime
    watch.lastHeartbeatTs = now
    if duration > 0:
        watch.duration = duration

    if update.seekAllowed and duration > 0:
        session.record_video_progress(current_time / duration * 100)

    if not update.seekAllowed:
        append_log(
            db,
            action="VIDEO_SKIP_BLOCKED",
            ctx=ctx,
            sessionId=session_id,
            remarks=f"Seek to {current_time:.1f}s refused, resume at {update.resumeAt:.1f}s",
            meta={"currentTime": current_time, "maxTime": update.maxTime, "duration": duration},
        )

    return {
        "seekAllowed": update.seekAllowed,
        "resumeAt": update.resumeAt,
        "maxTime": update.maxTime,
        "videoProgress": session.state.videoProgress,
        "videoCompleted": session.state.videoCompleted,
    }


def video_complete(data, ctx: ClientContext | None, db, cfg):
    session = open_session(db, ctx)
    session_id = _require_video_step(session.state)
    _resolve_token(data, cfg, session_id)

    watch = _get_watch(db, session_id)
    if not session.state.videoCompleted and not watch.completed:
        duration = float(getattr(cfg, "VIDEO_DURATION_SECONDS", 0.0) or 0.0) or float(watch.duration or 0.0)
        tolerance = float(getattr(cfg, "VIDEO_END_TOLERANCE_SECONDS", 2.0))
        if duration <= 0 or float(watch.maxTime or 0.0) + tolerance < duration:
            raise ApiError(
                "PRECONDITION_FAILED",
                "Please watch the entire video before continuing",
                http_status=409,
            )

    now_iso = iso_utc_now()
    if not watch.completed:
        watch.completed = True
        watch.completedAt = now_iso
    state = session.complete_video()

    append_log(
        db,
        action="VIDEO_COMPLETE",
        ctx=ctx,
        sessionId=session_id,
        remarks=f"Video watched to {float(watch.maxTime or 0.0):.1f}s of {float(watch.duration or 0.0):.1f}s",
        at=now_iso,
    )
    return {"videoCompleted": True, "currentStep": state.currentStep.value, "videoProgress": state.videoProgress}
