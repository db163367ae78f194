from __future__ import annotations

from flask import Flask, current_app, request

from utils import ApiError, SimpleRateLimiter, err

_EXEMPT_PATHS = {"/health", "/ready", "/version"}


def client_ip() -> str:
    forwarded = str(request.headers.get("X-Forwarded-For") or "").split(",")[0].strip()
    return forwarded or str(request.remote_addr or "")


def init_rate_limiting(app: Flask) -> None:
    limiter = SimpleRateLimiter()
    app.extensions["rate_limiter"] = limiter

    @app.before_request
    def _rate_limit():
        if request.method == "OPTIONS" or request.path in _EXEMPT_PATHS:
            return None
        cfg = current_app.config["CFG"]
        try:
            limiter.check(f"{client_ip()}:GLOBAL", cfg.RATE_LIMIT_GLOBAL)
        except ApiError as e:
            return err(e.code, e.message, http_status=e.http_status)
        return None
