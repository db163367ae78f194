from __future__ import annotations

import json
import os
import threading
import time
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


_DEFAULT_STATUS = {
    "BAD_REQUEST": 400,
    "VALIDATION_ERROR": 400,
    "AUTH_INVALID": 401,
    "FORBIDDEN": 403,
    "NOT_FOUND": 404,
    "CONFLICT": 409,
    "PRECONDITION_FAILED": 409,
    "TOKEN_EXPIRED": 401,
    "RATE_LIMITED": 429,
    "INTERNAL": 500,
}


class ApiError(Exception):
    """Error surfaced to API callers as ``{"ok": false, "error": {...}}``."""

    def __init__(self, code: str, message: str, http_status: int | None = None, fields: dict[str, str] | None = None):
        super().__init__(message)
        self.code = str(code or "INTERNAL").upper()
        self.message = str(message or "")
        self.http_status = int(http_status or _DEFAULT_STATUS.get(self.code, 400))
        self.fields = dict(fields or {})


@dataclass
class ClientContext:
    """Who is calling: the device slot plus request bookkeeping."""

    deviceId: str
    ip: str = ""
    requestId: str = ""
    isAdmin: bool = False


def iso_utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def epoch_ms() -> int:
    return int(time.time() * 1000)


def now_monotonic() -> float:
    return time.monotonic()


def random_suffix(nbytes: int = 5) -> str:
    return os.urandom(nbytes).hex()


def safe_json_string(value: Any, default: str = "{}") -> str:
    try:
        return json.dumps(value, separators=(",", ":"), default=str)
    except Exception:
        return default


def parse_json_body(raw: str) -> dict[str, Any]:
    raw = str(raw or "").strip()
    if not raw:
        raise ApiError("BAD_REQUEST", "Empty request body")
    try:
        body = json.loads(raw)
    except json.JSONDecodeError:
        raise ApiError("BAD_REQUEST", "Request body must be JSON")
    if not isinstance(body, dict):
        raise ApiError("BAD_REQUEST", "Request body must be a JSON object")
    return body


def ok(data: Any = None, http_status: int = 200):
    return {"ok": True, "data": data if data is not None else {}}, http_status


def err(code: str, message: str, http_status: int = 400, fields: dict[str, str] | None = None):
    error: dict[str, Any] = {"code": str(code or "INTERNAL"), "message": str(message or "")}
    if fields:
        error["fields"] = dict(fields)
    return {"ok": False, "error": error}, http_status


_REDACT_KEYS = {"signature", "signaturedata", "token", "videotoken", "emergencycontactphone"}


def redact_for_audit(data: Any) -> Any:
    if isinstance(data, dict):
        out = {}
        for k, v in data.items():
            if str(k).replace("_", "").lower() in _REDACT_KEYS:
                out[k] = "***"
            else:
                out[k] = redact_for_audit(v)
        return out
    if isinstance(data, list):
        return [redact_for_audit(x) for x in data]
    return data


class SimpleRateLimiter:
    """
    Sliding-window limiter kept in process memory.

    Limits are strings like ``"120/min"`` or ``"10/sec"``.
    """

    _WINDOWS = {"sec": 1.0, "second": 1.0, "min": 60.0, "minute": 60.0, "hour": 3600.0}

    def __init__(self):
        self._lock = threading.Lock()
        self._hits: dict[str, deque[float]] = {}
        self._last_sweep = 0.0

    @classmethod
    def parse_limit(cls, spec: str) -> tuple[int, float]:
        try:
            count_s, window_s = str(spec or "").strip().lower().split("/", 1)
            count = int(count_s)
            window = cls._WINDOWS[window_s.strip()]
        except Exception:
            return 0, 0.0
        return count, window

    def check(self, key: str, spec: str) -> None:
        limit, window = self.parse_limit(spec)
        if limit <= 0:
            return
        now = now_monotonic()
        with self._lock:
            if now - self._last_sweep > window:
                self._sweep(now, window)
            hits = self._hits.setdefault(key, deque())
            while hits and now - hits[0] > window:
                hits.popleft()
            if len(hits) >= limit:
                raise ApiError("RATE_LIMITED", "Too many requests, slow down")
            hits.append(now)

    def _sweep(self, now: float, window: float) -> None:
        """Forget keys with no hit inside the window. Caller holds the lock."""
        for key in [k for k, hits in self._hits.items() if not hits or now - hits[-1] > window]:
            del self._hits[key]
        self._last_sweep = now

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._hits)
