from __future__ import annotations

import hmac
import logging
import re
from typing import Any

from flask import Blueprint, current_app, g, request
from sqlalchemy.exc import DBAPIError

from actions import dispatch
from app.middlewares.device import current_device_id
from app.middlewares.rate_limit import client_ip
from db import SessionLocal
from utils import ApiError, ClientContext, err, now_monotonic, ok, parse_json_body

api_bp = Blueprint("api", __name__)

log = logging.getLogger("api")


def is_admin_request(cfg) -> bool:
    expected = str(getattr(cfg, "ADMIN_TOKEN", "") or "")
    if not expected:
        return True
    given = str(request.headers.get("X-Admin-Token") or "").strip()
    return bool(given) and hmac.compare_digest(given, expected)


def client_context(cfg) -> ClientContext:
    return ClientContext(
        deviceId=current_device_id(),
        ip=client_ip(),
        requestId=str(getattr(g, "request_id", "") or ""),
        isAdmin=is_admin_request(cfg),
    )


def _db_error_message(cfg, e: DBAPIError, request_id: str) -> str:
    if cfg.IS_PRODUCTION:
        return f"Database error (requestId: {request_id})"
    orig = re.sub(r"\s+", " ", str(getattr(e, "orig", "") or "")).strip()
    if len(orig) > 300:
        orig = orig[:300] + "..."
    detail = f": {orig}" if orig else ""
    return f"Database error{detail} (requestId: {request_id})"


def handle_action(action: str, data: Any):
    """Run one action in its own unit of work and shape the reply envelope."""
    cfg = current_app.config["CFG"]
    action_u = str(action or "").upper().strip()
    ctx = client_context(cfg)

    db = None
    try:
        db = SessionLocal()
        out = dispatch(action_u, data, ctx, db, cfg)
        db.commit()
        log.info(
            "request_id=%s action=%s device=%s latency_ms=%s",
            ctx.requestId,
            action_u,
            ctx.deviceId,
            int((now_monotonic() - g.start_ts) * 1000),
        )
        return ok(out)
    except ApiError as e:
        if db is not None:
            db.rollback()
        log.info("request_id=%s action=%s error=%s", ctx.requestId, action_u, e.code)
        return err(e.code, e.message, http_status=e.http_status, fields=e.fields or None)
    except DBAPIError as e:
        if db is not None:
            db.rollback()
        log.exception("request_id=%s action=%s", ctx.requestId, action_u)
        return err("INTERNAL", _db_error_message(cfg, e, ctx.requestId), http_status=500)
    except Exception as e:
        if db is not None:
            db.rollback()
        log.exception("request_id=%s action=%s", ctx.requestId, action_u)
        if cfg.IS_PRODUCTION:
            msg = f"Unexpected error (requestId: {ctx.requestId})"
        else:
            msg = f"Unexpected error: {type(e).__name__} (requestId: {ctx.requestId})"
        return err("INTERNAL", msg, http_status=500)
    finally:
        if db is not None:
            db.close()


@api_bp.post("/api")
def api_route():
    try:
        body = parse_json_body(request.get_data(as_text=True))
    except ApiError as e:
        return err(e.code, e.message, http_status=e.http_status)

    action = str(body.get("action") or "").strip()
    if not action:
        return err("BAD_REQUEST", "Missing action", http_status=400)
    return handle_action(action, body.get("data") or {})
