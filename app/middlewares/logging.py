from __future__ import annotations

import logging

from flask import Flask, g, request

from utils import now_monotonic

log = logging.getLogger("http")


def init_request_logging(app: Flask) -> None:
    @app.after_request
    def _log_request(response):
        start = getattr(g, "start_ts", None)
        latency_ms = int((now_monotonic() - start) * 1000) if start is not None else -1
        log.info(
            "request_id=%s method=%s path=%s status=%s latency_ms=%s",
            getattr(g, "request_id", ""),
            request.method,
            request.path,
            response.status_code,
            latency_ms,
        )
        return response
