from __future__ import annotations

import re
import uuid

from flask import Flask, g, request

DEVICE_HEADER = "X-Device-ID"
DEVICE_COOKIE = "orientation_device"
_VALID_DEVICE = re.compile(r"^[A-Za-z0-9_-]{8,64}$")

# Two years; the slot must outlive browser restarts.
_COOKIE_MAX_AGE = 2 * 365 * 24 * 3600


def current_device_id() -> str:
    return str(getattr(g, "device_id", "") or "")


def init_device_slot(app: Flask) -> None:
    """
    Resolve which durable orientation slot a request belongs to.

    Order: X-Device-ID header, then the orientation_device cookie, then a
    freshly minted id that is handed back as a cookie.
    """

    @app.before_request
    def _resolve_device():
        header = str(request.headers.get(DEVICE_HEADER) or "").strip()
        cookie = str(request.cookies.get(DEVICE_COOKIE) or "").strip()
        g.device_minted = False
        if _VALID_DEVICE.match(header):
            g.device_id = header
        elif _VALID_DEVICE.match(cookie):
            g.device_id = cookie
        else:
            g.device_id = uuid.uuid4().hex
            g.device_minted = True

    @app.after_request
    def _set_device_cookie(response):
        if getattr(g, "device_minted", False) and getattr(g, "device_id", ""):
            cfg = app.config["CFG"]
            response.set_cookie(
                DEVICE_COOKIE,
                g.device_id,
                max_age=_COOKIE_MAX_AGE,
                httponly=True,
                samesite="Lax",
                secure=bool(cfg.IS_PRODUCTION),
            )
        return response
