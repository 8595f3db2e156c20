from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass

from fastapi import HTTPException, Request

from postboard.core.config import get_settings


@dataclass
class _Window:
    hits: int
    resets_at: float


class RateLimiter:
    """Fixed-window counter per key. Expired windows are dropped on the next check."""

    def __init__(self, clock=time.monotonic) -> None:
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._windows)

    def _evict_expired(self, now: float) -> None:
        stale = [key for key, window in self._windows.items() if window.resets_at <= now]
        for key in stale:
            del self._windows[key]

    def check(self, key: str, limit: int, window_seconds: int) -> None:
        if limit <= 0:
            return
        with self._lock:
            now = self._clock()
            self._evict_expired(now)
            window = self._windows.setdefault(key, _Window(hits=0, resets_at=now + window_seconds))
            window.hits += 1
            if window.hits > limit:
                retry_after = max(1, math.ceil(window.resets_at - now))
                raise HTTPException(
                    429,
                    "Too many requests. Try again later.",
                    headers={"Retry-After": str(retry_after)},
                )


def client_key(request: Request) -> str:
    """First X-Forwarded-For hop when present, else the peer address."""
    hops = [hop.strip() for hop in (request.headers.get("x-forwarded-for") or "").split(",")]
    if hops[0]:
        return hops[0]
    return getattr(request.client, "host", None) or "unknown"


def rate_limit_writes(request: Request) -> None:
    """FastAPI dependency limiting write requests per client."""
    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        return
    settings = getattr(request.app.state, "settings", None) or get_settings()
    limiter.check(
        f"writes:{client_key(request)}",
        settings.rate_limit_max_requests,
        settings.rate_limit_window_seconds,
    )
