"""
Client for the records endpoint that receives finished submissions.

Requests are signed with HMAC-SHA256 over the timestamp and the sorted JSON
body:

- X-Timestamp: Unix timestamp
- X-Signature: hex HMAC (empty when no secret is configured)
- X-Submission-ID: queue id, so the receiver can drop duplicates

Any 2xx response counts as delivered.
"""
from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time
from typing import Any

import requests

from services.offline_queue import DeliveryResult, PendingSubmission

log = logging.getLogger("submission")


def generate_signature(body: dict[str, Any], secret: str, timestamp: int) -> str:
    sorted_body = json.dumps(body, sort_keys=True, separators=(",", ":"))
    message = f"{timestamp}:{sorted_body}"
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


def verify_signature(body: dict[str, Any], signature: str, timestamp: int, secret: str, max_age_seconds: int = 300) -> bool:
    if not secret:
        return False
    if abs(int(time.time()) - int(timestamp)) > max_age_seconds:
        return False
    return hmac.compare_digest(generate_signature(body, secret, timestamp), str(signature or ""))


def is_online(cfg) -> bool:
    return bool(str(getattr(cfg, "SUBMISSION_URL", "") or "").strip())


def submission_body(item: PendingSubmission) -> dict[str, Any]:
    return {"id": item.id, "kind": item.kind, "createdAt": item.createdAt, "payload": item.payload.to_dict()}


def send(item: PendingSubmission, cfg) -> DeliveryResult:
    url = str(getattr(cfg, "SUBMISSION_URL", "") or "").strip()
    if not url:
        return DeliveryResult(ok=False, error="offline: SUBMISSION_URL not configured")

    body = submission_body(item)
    timestamp = int(time.time())
    secret = str(getattr(cfg, "SUBMISSION_HMAC_SECRET", "") or "")
    headers = {
        "Content-Type": "application/json",
        "X-Timestamp": str(timestamp),
        "X-Signature": generate_signature(body, secret, timestamp) if secret else "",
        "X-Submission-ID": item.id,
    }

    try:
        resp = requests.post(url, json=body, headers=headers, timeout=float(getattr(cfg, "SUBMISSION_TIMEOUT_SECONDS", 10)))
    except requests.RequestException as e:
        log.warning("id=%s delivery failed: %s", item.id, e)
        return DeliveryResult(ok=False, error=f"{type(e).__name__}: {e}")

    if 200 <= resp.status_code < 300:
        log.info("id=%s kind=%s delivered status=%s", item.id, item.kind, resp.status_code)
        return DeliveryResult(ok=True, statusCode=resp.status_code)

    log.warning("id=%s delivery rejected status=%s", item.id, resp.status_code)
    return DeliveryResult(ok=False, statusCode=resp.status_code, error=f"HTTP {resp.status_code}")


def make_sender(cfg):
    """Sender bound to ``cfg`` for OfflineQueue.drain()."""

    def _sender(item: PendingSubmission) -> DeliveryResult:
        return send(item, cfg)

    return _sender
