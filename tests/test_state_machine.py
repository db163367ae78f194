from __future__ import annotations

import pytest

from services import orientation_state as sm
from services.orientation_state import OrientationState, Step, TransitionError, ValidationError, WorkerInfo, WorkerStatus
from utils import ApiError

INFO = {
    "fullName": "Dana Reyes",
    "hireDate": "2026-10-01",
    "supervisorName": "Sam Ortiz",
    "siteId": "north-yard",
    "statusType": "NEW_TO_POSITION",
    "emergencyContactName": "Lee Reyes",
    "emergencyContactPhone": "555-0100",
    "emergencyContactRelationship": "Sibling",
}


def _through_quiz() -> OrientationState:
    s = sm.record_worker_info(sm.default_state(), INFO)
    s = sm.begin_session(s)
    s = sm.complete_video(s)
    s = sm.start_quiz_attempt(s)
    return sm.record_quiz_pass(s)


def test_worker_info_reports_every_missing_field():
    with pytest.raises(ValidationError) as exc:
        sm.record_worker_info(sm.default_state(), {"fullName": "  ", "statusType": "NEW_TO_POSITION"})
    fields = exc.value.fields
    assert fields["fullName"] == "Full name is required"
    assert "hireDate" in fields and "emergencyContactRelationship" in fields
    assert "statusType" not in fields
    assert exc.value.http_status == 400


def test_worker_info_rejects_unknown_status():
    bad = dict(INFO, statusType="CONTRACTOR")
    with pytest.raises(ValidationError) as exc:
        WorkerInfo.from_dict(bad)
    assert exc.value.fields == {"statusType": "Unknown orientation status"}


def test_record_worker_info_keeps_step_and_returns_new_state():
    start = sm.default_state()
    after = sm.record_worker_info(start, INFO)
    assert start.workerInfo is None
    assert after.workerInfo.statusType is WorkerStatus.NEW_TO_POSITION
    assert after.currentStep == Step.INFO


def test_begin_session_generates_unique_ids():
    a = sm.begin_session(sm.default_state()).sessionId
    b = sm.begin_session(sm.default_state()).sessionId
    assert a.startswith("session_") and b.startswith("session_")
    assert a != b


def test_video_progress_is_clamped_and_locked_after_completion():
    s = sm.record_video_progress(sm.default_state(), 140)
    assert s.videoProgress == 100.0
    s = sm.record_video_progress(s, -3)
    assert s.videoProgress == 0.0
    s = sm.complete_video(s)
    assert sm.record_video_progress(s, 10).videoProgress == 100.0


def test_video_progress_rejects_non_numbers():
    with pytest.raises(ApiError):
        sm.record_video_progress(sm.default_state(), "abc")
    with pytest.raises(ApiError):
        sm.record_video_progress(sm.default_state(), float("nan"))


def test_complete_video_is_idempotent_and_advances_to_quiz():
    s = sm.complete_video(sm.record_worker_info(sm.default_state(), INFO))
    assert s.currentStep == Step.QUIZ
    assert sm.complete_video(s) == s


def test_quiz_attempts_count_every_start():
    s = sm.complete_video(sm.default_state())
    for _ in range(4):
        s = sm.start_quiz_attempt(s)
    assert s.quizAttempts == 4
    assert not s.quizPassed


def test_quiz_pass_requires_video():
    with pytest.raises(TransitionError) as exc:
        sm.record_quiz_pass(sm.start_quiz_attempt(sm.default_state()))
    assert exc.value.code == "PRECONDITION_FAILED"
    assert exc.value.http_status == 409


def test_sign_requires_quiz_and_signature():
    s = sm.complete_video(sm.record_worker_info(sm.default_state(), INFO))
    with pytest.raises(TransitionError):
        sm.sign_acknowledgment(s, "data:image/png;base64,AAAA")
    passed = _through_quiz()
    with pytest.raises(TransitionError):
        sm.sign_acknowledgment(passed, "   ")
    signed = sm.sign_acknowledgment(passed, "data:image/png;base64,AAAA")
    assert signed.acknowledgmentSigned and signed.signatureData
    assert signed.currentStep == Step.COMPLETE


def test_advance_never_regresses_step():
    s = sm.set_step(_through_quiz(), Step.COMPLETE)
    assert sm.complete_video(s).currentStep == Step.COMPLETE
    assert sm.record_quiz_pass(s).currentStep == Step.COMPLETE


def test_set_step_is_unvalidated_but_rejects_unknown_names():
    s = sm.set_step(sm.default_state(), "acknowledgment")
    assert s.currentStep == Step.ACKNOWLEDGMENT
    with pytest.raises(ApiError):
        sm.set_step(sm.default_state(), "payroll")


def test_reachable_states_keep_the_flag_chain():
    s = sm.default_state()
    steps = [
        lambda x: sm.record_worker_info(x, INFO),
        sm.begin_session,
        lambda x: sm.record_video_progress(x, 50),
        sm.complete_video,
        sm.start_quiz_attempt,
        sm.start_quiz_attempt,
        sm.record_quiz_pass,
        lambda x: sm.sign_acknowledgment(x, "sig"),
    ]
    for fn in steps:
        s = fn(s)
        assert sm.invariant_violations(s) == []
        if s.acknowledgmentSigned:
            assert s.quizPassed
        if s.quizPassed:
            assert s.videoCompleted


def test_serialized_round_trip_and_strict_parse():
    s = sm.sign_acknowledgment(_through_quiz(), "sig")
    assert OrientationState.from_dict(s.to_dict()) == s

    broken = s.to_dict()
    broken["videoCompleted"] = False
    with pytest.raises(ValueError):
        OrientationState.from_dict(broken)

    with pytest.raises(ValueError):
        OrientationState.from_dict(dict(s.to_dict(), currentStep="lunch"))


def test_reset_returns_defaults():
    assert sm.reset() == OrientationState()
