"""In-memory fixed-window rate limiter for repeated action attempts.

State lives only in this process: it resets on restart and is not shared
between workers. It throttles honest clients (e.g. repeated sign-in
submissions); it is not a security control.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable

from planner.config import settings


def _now_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_in: float  # milliseconds until the oldest attempt leaves the window


class RateLimiter:
    """Allow at most ``max_attempts`` calls per key within ``window_ms``.

    Safe to share between request threads.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        window_ms: float = 60000,
        clock: Callable[[], float] = _now_ms,
    ):
        self.max_attempts = max_attempts
        self.window_ms = window_ms
        self._clock = clock
        self._attempts: dict[str, list[float]] = {}
        self._lock = threading.Lock()

    def check(self, key: str) -> RateLimitResult:
        """Record an attempt for ``key`` if it is allowed and report the window state."""
        with self._lock:
            now = self._clock()
            recent = [t for t in self._attempts.get(key, []) if now - t < self.window_ms]

            allowed = len(recent) < self.max_attempts
            remaining = max(0, self.max_attempts - len(recent))
            oldest = recent[0] if recent else now
            reset_in = max(0.0, self.window_ms - (now - oldest))

            if allowed:
                recent.append(now)
            if recent:
                self._attempts[key] = recent
            else:
                self._attempts.pop(key, None)

        return RateLimitResult(allowed=allowed, remaining=remaining, reset_in=reset_in)

    def reset(self, key: str) -> None:
        with self._lock:
            self._attempts.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._attempts.clear()


rate_limiter = RateLimiter(settings.AUTH_MAX_ATTEMPTS, settings.AUTH_WINDOW_MS)
