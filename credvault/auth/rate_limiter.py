"""In-memory fixed-window rate limiting for vault operations.

Counters live in this process only. Running several vault instances means
each one enforces its own limit; swap in a shared-store limiter with the same
``check``/``reset`` surface if that matters for a deployment.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from credvault.exceptions import RateLimitError
from credvault.types import RateLimitDecision

logger = logging.getLogger(__name__)


def rate_limit_key(user_id: str, operation: str) -> str:
    """Counter key for one user's operation class, e.g. ``alice:set``."""
    return f"{user_id}:{operation}"


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    """Fixed-window attempt counter keyed by ``user:operation``.

    Windows expire lazily: a call after ``reset_at`` starts a fresh window
    that counts the current attempt. There is no background sweeper.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        window_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            max_attempts: attempts allowed per window
            window_seconds: window length
            clock: monotonic seconds source, injectable for tests
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def check(self, key: str) -> RateLimitDecision:
        """Count one attempt against *key* and say whether it may proceed."""
        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None or now >= window.reset_at:
                self._windows[key] = _Window(count=1, reset_at=now + self.window_seconds)
                return RateLimitDecision(allowed=True, remaining=self.max_attempts - 1)

            if window.count >= self.max_attempts:
                retry_after = max(1, math.ceil(window.reset_at - now))
                return RateLimitDecision(allowed=False, retry_after_seconds=retry_after, remaining=0)

            window.count += 1
            return RateLimitDecision(allowed=True, remaining=self.max_attempts - window.count)

    def enforce(self, key: str, operation: str = "") -> RateLimitDecision:
        """``check`` that raises instead of returning a denial.

        Raises:
            RateLimitError: with ``retry_after_seconds`` when the window is full
        """
        decision = self.check(key)
        if not decision.allowed:
            logger.warning("[RateLimit] Denied %s (retry in %ss)", key, decision.retry_after_seconds)
            raise RateLimitError(
                f"Too many {operation or 'vault'} attempts. "
                f"Try again in {decision.retry_after_seconds} seconds.",
                retry_after_seconds=decision.retry_after_seconds,
                operation=operation,
            )
        return decision

    def reset(self, key: str) -> None:
        """Forget the window for *key*. Called after a successful operation."""
        with self._lock:
            self._windows.pop(key, None)

    def get_status(self, key: str) -> RateLimitDecision:
        """Peek at *key* without counting an attempt."""
        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None or now >= window.reset_at:
                return RateLimitDecision(allowed=True, remaining=self.max_attempts)
            if window.count >= self.max_attempts:
                return RateLimitDecision(
                    allowed=False,
                    retry_after_seconds=max(1, math.ceil(window.reset_at - now)),
                    remaining=0,
                )
            return RateLimitDecision(allowed=True, remaining=self.max_attempts - window.count)

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()

    def __len__(self) -> int:
        return len(self._windows)
