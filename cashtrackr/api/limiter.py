from __future__ import annotations

import time
from threading import Lock
from typing import Callable, Dict, Optional

from fastapi import Request

from cashtrackr.errors import TooManyRequests


RATE_LIMITED_MESSAGE = "Demasiadas solicitudes, por favor intenta nuevamente más tarde"


class FixedWindowLimiter:
    """In-process fixed-window counter keyed by an arbitrary string.

    State is per app instance; with several API processes each one counts separately.
    """

    def __init__(self, max_requests: int, window_seconds: float, *, clock: Callable[[], float] = time.monotonic):
        self.max_requests = max(1, int(max_requests))
        self.window_seconds = float(window_seconds)
        self._clock = clock
        self._lock = Lock()
        self._state: Dict[str, Dict[str, float]] = {}
        self._last_sweep = self._clock()

    def _sweep(self, now: float) -> None:
        # Once per window, drop keys whose window has ended.
        if (now - self._last_sweep) < self.window_seconds:
            return
        self._last_sweep = now
        expired = [k for k, s in self._state.items() if (now - s["ts"]) >= self.window_seconds]
        for k in expired:
            del self._state[k]

    def hit(self, key: str) -> Optional[int]:
        """Count one request. Returns None if allowed, else seconds until the window resets."""
        now = self._clock()
        with self._lock:
            self._sweep(now)
            state = self._state.get(key)
            if state is None or (now - state["ts"]) >= self.window_seconds:
                self._state[key] = {"ts": now, "count": 1}
                return None

            state["count"] += 1
            if state["count"] <= self.max_requests:
                return None

            return max(1, int(self.window_seconds - (now - state["ts"])))

    def reset(self) -> None:
        with self._lock:
            self._state.clear()


def _client_ip(request: Request) -> str:
    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"


def rate_limited(scope: str) -> Callable[[Request], None]:
    """FastAPI dependency throttling `scope` per client IP with the app's limiter."""

    def dependency(request: Request) -> None:
        limiter: FixedWindowLimiter = request.app.state.limiter
        retry_after = limiter.hit(f"{scope}:{_client_ip(request)}")
        if retry_after is not None:
            raise TooManyRequests(RATE_LIMITED_MESSAGE, headers={"Retry-After": str(retry_after)})

    return dependency
