from __future__ import annotations

import pytest

from actions.orientation_video import advance_watch, settle_duration, sign_video_token, verify_video_token
from utils import ApiError


def test_normal_playback_advances_max_time():
    update = advance_watch(10.0, 100.0, 14.0, 104.0, unrestricted=False, tolerance=2.0)
    assert update.seekAllowed
    assert update.maxTime == 14.0
    assert update.resumeAt is None


def test_skip_ahead_is_refused_and_resumes_at_max():
    update = advance_watch(10.0, 100.0, 45.0, 101.0, unrestricted=False, tolerance=2.0)
    assert not update.seekAllowed
    assert update.maxTime == 10.0
    assert update.resumeAt == 10.0


def test_tolerance_absorbs_jitter():
    assert advance_watch(10.0, 100.0, 12.5, 100.5, unrestricted=False, tolerance=2.0).seekAllowed


def test_rewinding_is_always_allowed():
    update = advance_watch(30.0, 100.0, 5.0, 101.0, unrestricted=False, tolerance=0.0)
    assert update.seekAllowed
    assert update.maxTime == 30.0


def test_first_heartbeat_without_baseline_only_gets_tolerance():
    assert not advance_watch(0.0, None, 20.0, 100.0, unrestricted=False, tolerance=2.0).seekAllowed
    assert advance_watch(0.0, None, 1.0, 100.0, unrestricted=False, tolerance=2.0).seekAllowed


def test_clock_going_backwards_does_not_grant_time():
    assert not advance_watch(10.0, 200.0, 20.0, 150.0, unrestricted=False, tolerance=2.0).seekAllowed


def test_unrestricted_after_completion():
    update = advance_watch(60.0, 100.0, 1.0, 100.0, unrestricted=True, tolerance=0.0)
    assert update.seekAllowed and update.maxTime == 60.0


def test_video_token_round_trip_and_tamper():
    token = sign_video_token({"sid": "session_1_aa", "exp": 2000}, "k")
    assert verify_video_token(token, "k", now=1500)["sid"] == "session_1_aa"
    assert verify_video_token(token, "k", now=2001) is None
    assert verify_video_token(token, "other", now=1500) is None
    assert verify_video_token(token + "0", "k", now=1500) is None
    assert verify_video_token("garbage", "k", now=1500) is None


def test_first_reported_duration_is_kept():
    assert settle_duration(0.0, 600.0, 0.0, 2.0) == 600.0
    assert settle_duration(600.0, 601.0, 0.0, 2.0) == 600.0
    assert settle_duration(600.0, 599.0, 0.0, 2.0) == 600.0
    assert settle_duration(600.0, 0.0, 0.0, 2.0) == 600.0


def test_shorter_duration_is_refused():
    with pytest.raises(ApiError) as exc:
        settle_duration(600.0, 10.0, 0.0, 2.0)
    assert exc.value.http_status == 409


def test_configured_duration_wins():
    assert settle_duration(0.0, 10.0, 600.0, 2.0) == 600.0
    assert settle_duration(10.0, 10.0, 600.0, 2.0) == 600.0
