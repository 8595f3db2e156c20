from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi import HTTPException

# Garante que o pacote seja importável durante os testes locais
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from postboard.core.rate_limiter import RateLimiter  # noqa: E402


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture()
def clock():
    return FakeClock()


def test_blocks_after_limit_until_window_resets(clock):
    limiter = RateLimiter(clock=clock)
    limiter.check("writes:1.2.3.4", 2, 60)
    limiter.check("writes:1.2.3.4", 2, 60)

    clock.now += 15
    with pytest.raises(HTTPException) as exc:
        limiter.check("writes:1.2.3.4", 2, 60)
    assert exc.value.status_code == 429
    assert exc.value.headers["Retry-After"] == "45"

    clock.now += 45
    limiter.check("writes:1.2.3.4", 2, 60)


def test_keys_are_counted_separately(clock):
    limiter = RateLimiter(clock=clock)
    limiter.check("writes:a", 1, 60)
    limiter.check("writes:b", 1, 60)

    with pytest.raises(HTTPException):
        limiter.check("writes:a", 1, 60)


def test_expired_windows_are_evicted(clock):
    limiter = RateLimiter(clock=clock)
    for n in range(50):
        limiter.check(f"writes:10.0.0.{n}", 5, 60)
    assert len(limiter) == 50

    clock.now += 61
    limiter.check("writes:10.0.1.1", 5, 60)

    assert len(limiter) == 1


def test_non_positive_limit_disables_checks(clock):
    limiter = RateLimiter(clock=clock)
    for _ in range(10):
        limiter.check("writes:a", 0, 60)
    assert len(limiter) == 0
