from __future__ import annotations

import os
import re

from flask import Flask, g, request

from utils import now_monotonic

_SAFE_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def init_request_id(app: Flask) -> None:
    """Take X-Request-ID from the caller when it looks sane, else mint one; echo it back."""

    @app.before_request
    def _assign_request_id():
        incoming = str(request.headers.get("X-Request-ID") or "").strip()
        g.request_id = incoming if _SAFE_ID.match(incoming) else os.urandom(8).hex()
        g.start_ts = now_monotonic()

    @app.after_request
    def _echo_request_id(response):
        response.headers["X-Request-ID"] = str(getattr(g, "request_id", "") or "")
        return response
