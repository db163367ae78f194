from __future__ import annotations

import pytest
from sqlalchemy import select

from models import PendingSubmissionRow, SubmissionDeliveryLog
from services import offline_queue
from services.offline_queue import DeliveryResult, OfflineQueue
from services.orientation_state import ValidationError

WORKER = {
    "fullName": "Dana Reyes",
    "hireDate": "2026-10-01",
    "supervisorName": "Sam Ortiz",
    "siteId": "north-yard",
    "statusType": "NEW_TO_POSITION",
    "emergencyContactName": "Lee Reyes",
    "emergencyContactPhone": "555-0100",
    "emergencyContactRelationship": "Sibling",
}


def _orientation(session_id="session_1_aa"):
    return {
        "sessionId": session_id,
        "workerInfo": WORKER,
        "quizAttempts": 2,
        "signatureData": "data:image/png;base64,AAAA",
        "completedAt": "2026-10-19T10:00:00Z",
    }


def _quiz(session_id="session_1_aa"):
    return {
        "sessionId": session_id,
        "attemptNo": 1,
        "score": 9,
        "total": 10,
        "passed": False,
        "submittedAt": "2026-10-19T09:55:00Z",
    }


def _logs(db):
    return db.execute(select(SubmissionDeliveryLog)).scalars().all()


def test_enqueue_assigns_kind_prefixed_id(db_session):
    q = OfflineQueue(db_session)
    sid = q.enqueue("orientation", _orientation())
    assert sid.startswith("orientation_")
    item = q.get(sid)
    assert item.attempts == 0
    assert item.payload.workerInfo.fullName == "Dana Reyes"
    assert q.count() == 1


def test_enqueue_rejects_bad_payloads(db_session):
    q = OfflineQueue(db_session)
    with pytest.raises(ValidationError) as exc:
        q.enqueue("quiz", dict(_quiz(), total=0))
    assert "total" in exc.value.fields
    with pytest.raises(ValidationError):
        q.enqueue("timesheet", {})
    assert q.count() == 0


def test_drain_delivers_everything_once(db_session):
    q = OfflineQueue(db_session)
    first = q.enqueue("quiz", _quiz())
    second = q.enqueue("orientation", _orientation())
    db_session.commit()

    seen = []
    result = q.drain(lambda item: seen.append(item.id) or True)

    assert sorted(result.delivered) == sorted([first, second])
    assert result.failed == []
    assert sorted(seen) == sorted([first, second])
    assert q.count() == 0
    logs = _logs(db_session)
    assert len(logs) == 2
    assert {log.result for log in logs} == {"SUCCESS"}


def test_failed_delivery_stays_queued(db_session):
    q = OfflineQueue(db_session)
    sid = q.enqueue("quiz", _quiz())
    db_session.commit()

    result = q.drain(lambda item: DeliveryResult(ok=False, statusCode=503, error="HTTP 503"))

    assert result.failed == [sid]
    item = q.get(sid)
    assert item.attempts == 1
    assert item.lastError == "HTTP 503"
    assert item.lastAttemptAt
    [log] = _logs(db_session)
    assert (log.result, log.statusCode) == ("FAILED", 503)

    q.drain(lambda item: True)
    assert q.count() == 0


def test_sender_exception_counts_as_failure(db_session):
    q = OfflineQueue(db_session)
    sid = q.enqueue("quiz", _quiz())

    def boom(item):
        raise RuntimeError("socket closed")

    result = q.drain(boom)
    assert result.failed == [sid]
    assert "socket closed" in q.get(sid).lastError


def test_one_failure_does_not_stop_the_rest(db_session):
    q = OfflineQueue(db_session)
    bad = q.enqueue("quiz", _quiz("session_bad"))
    good = q.enqueue("quiz", _quiz("session_good"))

    result = q.drain(lambda item: item.payload.sessionId == "session_good")

    assert result.delivered == [good]
    assert result.failed == [bad]
    assert [p.id for p in q.list_pending()] == [bad]


def test_concurrent_drain_is_skipped(db_session):
    q = OfflineQueue(db_session)
    q.enqueue("quiz", _quiz())
    calls = []
    assert offline_queue._DRAIN_LOCK.acquire(blocking=False)
    try:
        result = q.drain(lambda item: calls.append(item) or True)
    finally:
        offline_queue._DRAIN_LOCK.release()
    assert result.skipped is True
    assert calls == []
    assert q.count() == 1


def test_remove_unknown_id_is_noop(db_session):
    q = OfflineQueue(db_session)
    sid = q.enqueue("quiz", _quiz())
    q.remove("quiz_0_missing")
    q.remove(sid)
    q.remove(sid)
    assert q.count() == 0


def test_unreadable_rows_are_left_alone(db_session):
    db_session.add(PendingSubmissionRow(id="quiz_1_broken", kind="quiz", payloadJson="{oops", createdAt="2026-01-01T00:00:00Z"))
    q = OfflineQueue(db_session)
    good = q.enqueue("quiz", _quiz())
    assert [p.id for p in q.list_pending()] == [good]
    assert q.count() == 2
