from __future__ import annotations

import pytest

from utils import ApiError, SimpleRateLimiter


@pytest.fixture()
def clock(monkeypatch):
    now = {"t": 1000.0}
    monkeypatch.setattr("utils.now_monotonic", lambda: now["t"])
    return now


def test_limit_is_enforced_per_key(clock):
    limiter = SimpleRateLimiter()
    for _ in range(3):
        limiter.check("10.0.0.1:GLOBAL", "3/min")
    with pytest.raises(ApiError) as exc:
        limiter.check("10.0.0.1:GLOBAL", "3/min")
    assert exc.value.http_status == 429
    limiter.check("10.0.0.2:GLOBAL", "3/min")


def test_window_slides(clock):
    limiter = SimpleRateLimiter()
    limiter.check("ip", "1/sec")
    clock["t"] += 1.5
    limiter.check("ip", "1/sec")


def test_idle_clients_are_forgotten(clock):
    limiter = SimpleRateLimiter()
    for n in range(50):
        limiter.check(f"10.0.0.{n}:GLOBAL", "5/min")
    assert limiter.tracked_keys() == 50

    clock["t"] += 61
    limiter.check("10.0.1.1:GLOBAL", "5/min")
    assert limiter.tracked_keys() == 1


def test_unparseable_limit_disables_check(clock):
    limiter = SimpleRateLimiter()
    for _ in range(10):
        limiter.check("ip", "lots")
    assert limiter.tracked_keys() == 0
