from __future__ import annotations

import logging

from flask import Flask, current_app, g, request
from werkzeug.exceptions import HTTPException

from utils import ApiError, err

log = logging.getLogger("api")


def init_error_handlers(app: Flask) -> None:
    @app.errorhandler(ApiError)
    def _api_error(e: ApiError):
        return err(e.code, e.message, http_status=e.http_status, fields=e.fields or None)

    @app.errorhandler(404)
    def _not_found(_e):
        return err("NOT_FOUND", f"Unknown endpoint: {request.path}", http_status=404)

    @app.errorhandler(405)
    def _method_not_allowed(_e):
        return err("METHOD_NOT_ALLOWED", f"Method {request.method} not allowed on {request.path}", http_status=405)

    @app.errorhandler(HTTPException)
    def _http_error(e: HTTPException):
        return err("BAD_REQUEST" if (e.code or 500) < 500 else "INTERNAL", e.description or e.name, http_status=e.code or 500)

    @app.errorhandler(Exception)
    def _unexpected(e: Exception):
        request_id = str(getattr(g, "request_id", "") or "")
        log.exception("request_id=%s path=%s unhandled error", request_id, request.path)
        cfg = current_app.config["CFG"]
        if cfg.IS_PRODUCTION:
            msg = f"Unexpected error (requestId: {request_id})"
        else:
            msg = f"Unexpected error: {type(e).__name__} (requestId: {request_id})"
        return err("INTERNAL", msg, http_status=500)
