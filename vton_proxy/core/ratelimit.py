"""Per-client fixed-window rate limiting.

The limiter is an injected abstraction so the ingress never touches a
global table directly. ``InMemoryRateLimiter`` serves single-instance
deployments; a multi-instance deployment would plug in an external
counter store behind the same ``check_and_increment`` contract.

Window semantics:
    - The first request from a client opens a window with count 1.
    - Within the window each allowed request increments the count.
    - Once the count reaches the limit, further requests are rejected
      without incrementing and without resetting the window.
    - The first request after the window elapsed opens a new window.
"""

from __future__ import annotations

import abc
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger("vton_proxy.core.ratelimit")


class RateLimiter(abc.ABC):
    """Capability: decide whether a client may make another request."""

    @abc.abstractmethod
    def check_and_increment(self, key: str) -> bool:
        """Record a request for *key*; return ``False`` if it must be rejected."""


@dataclass(slots=True)
class _Window:
    started_at: float
    count: int


class InMemoryRateLimiter(RateLimiter):
    """Process-local fixed-window limiter guarded by a single lock.

    Args:
        max_requests: Requests allowed per window per key.
        window_seconds: Window length in seconds.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 1:
            msg = "max_requests must be >= 1"
            raise ValueError(msg)
        if window_seconds <= 0:
            msg = "window_seconds must be > 0"
            raise ValueError(msg)
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    def check_and_increment(self, key: str) -> bool:
        with self._lock:
            now = self._clock()
            self._purge_expired(now)

            window = self._windows.get(key)
            if window is None:
                self._windows[key] = _Window(started_at=now, count=1)
                return True

            if window.count >= self._max_requests:
                logger.warning(
                    "Rate limit exceeded | client=%s | count=%d | limit=%d",
                    key,
                    window.count,
                    self._max_requests,
                )
                return False

            window.count += 1
            return True

    def count_for(self, key: str) -> int:
        """Return the current in-window count for *key* (0 if none)."""
        with self._lock:
            self._purge_expired(self._clock())
            window = self._windows.get(key)
            return window.count if window else 0

    def _purge_expired(self, now: float) -> None:
        """Drop windows older than the window length.  Caller holds the lock."""
        expired = [
            key
            for key, window in self._windows.items()
            if now - window.started_at > self._window_seconds
        ]
        for key in expired:
            del self._windows[key]
