from __future__ import annotations

import time
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import requests

from services import submission_client
from services.offline_queue import PendingSubmission
from services.submissions import parse_payload


def _item():
    payload = parse_payload(
        "quiz",
        {"sessionId": "session_1_aa", "attemptNo": 1, "score": 10, "total": 10, "passed": True, "submittedAt": "2026-10-19T09:55:00Z"},
    )
    return PendingSubmission(id="quiz_1_aa", kind="quiz", payload=payload, createdAt="2026-10-19T09:55:00Z")


def _cfg(**overrides):
    base = {"SUBMISSION_URL": "https://records.example.test/submissions", "SUBMISSION_HMAC_SECRET": "s3cret", "SUBMISSION_TIMEOUT_SECONDS": 5}
    base.update(overrides)
    return SimpleNamespace(**base)


def test_offline_without_url():
    cfg = _cfg(SUBMISSION_URL="")
    assert not submission_client.is_online(cfg)
    with patch("services.submission_client.requests.post") as post:
        result = submission_client.send(_item(), cfg)
    post.assert_not_called()
    assert not result.ok


def test_send_signs_request():
    resp = MagicMock(status_code=201)
    with patch("services.submission_client.requests.post", return_value=resp) as post:
        result = submission_client.send(_item(), _cfg())

    assert result.ok and result.statusCode == 201
    args, kwargs = post.call_args
    assert args[0] == "https://records.example.test/submissions"
    headers = kwargs["headers"]
    assert headers["X-Submission-ID"] == "quiz_1_aa"
    body = kwargs["json"]
    assert body["kind"] == "quiz" and body["payload"]["score"] == 10
    assert submission_client.verify_signature(body, headers["X-Signature"], int(headers["X-Timestamp"]), "s3cret")
    assert kwargs["timeout"] == 5.0


def test_non_2xx_is_a_failure():
    with patch("services.submission_client.requests.post", return_value=MagicMock(status_code=500)):
        result = submission_client.send(_item(), _cfg())
    assert not result.ok
    assert result.statusCode == 500
    assert result.error == "HTTP 500"


def test_network_error_is_a_failure():
    with patch("services.submission_client.requests.post", side_effect=requests.ConnectionError("refused")):
        result = submission_client.send(_item(), _cfg())
    assert result.ok is False
    assert result.statusCode is None
    assert "refused" in result.error


def test_unsigned_when_no_secret():
    with patch("services.submission_client.requests.post", return_value=MagicMock(status_code=200)) as post:
        submission_client.make_sender(_cfg(SUBMISSION_HMAC_SECRET=""))(_item())
    assert post.call_args.kwargs["headers"]["X-Signature"] == ""


def test_verify_signature_rejects_old_or_tampered():
    body = {"a": 1}
    now = int(time.time())
    sig = submission_client.generate_signature(body, "k", now)
    assert submission_client.verify_signature(body, sig, now, "k")
    assert not submission_client.verify_signature({"a": 2}, sig, now, "k")
    old = now - 3600
    assert not submission_client.verify_signature(body, submission_client.generate_signature(body, "k", old), old, "k")
    assert not submission_client.verify_signature(body, sig, now, "")
