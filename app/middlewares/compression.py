from __future__ import annotations

import gzip

from flask import Flask, request


def gzip_bytes(data: bytes, level: int) -> bytes:
    return gzip.compress(data, compresslevel=level)


def init_compression(app: Flask) -> None:
    """
    Gzip JSON responses above ``COMPRESSION_MIN_SIZE`` bytes.

    Quiz and pending-queue listings carry long texts and signature payloads,
    everything else is small and left alone.
    """
    cfg = app.config["CFG"]
    if not cfg.ENABLE_COMPRESSION:
        return

    min_size = cfg.COMPRESSION_MIN_SIZE
    level = cfg.COMPRESSION_LEVEL

    @app.after_request
    def _compress(response):
        if "gzip" not in request.headers.get("Accept-Encoding", "").lower():
            return response
        if (
            not 200 <= response.status_code < 300
            or response.direct_passthrough
            or "Content-Encoding" in response.headers
            or "application/json" not in response.headers.get("Content-Type", "").lower()
        ):
            return response

        data = response.get_data()
        if len(data) < min_size:
            return response

        compressed = gzip_bytes(data, level)
        if len(compressed) < len(data):
            response.set_data(compressed)
            response.headers["Content-Encoding"] = "gzip"
            response.headers["Content-Length"] = str(len(compressed))
            response.headers["Vary"] = "Accept-Encoding"
        return response
