"""
Moving-window rate limiter for engine entry points

Backed by the limits library, the same backend slowapi uses for the
per-IP HTTP limits. Counters live in an in-process MemoryStorage whose
entries expire with their window.
"""

import logging
import time
from typing import Tuple

from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

logger = logging.getLogger(__name__)

NAMESPACE = "lifescore"


class SlidingWindowRateLimiter:
    """Per-key moving window; keys are session or user identifiers"""

    def __init__(self, max_calls: int, window_seconds: int):
        if max_calls < 1:
            raise ValueError("max_calls must be at least 1")
        if window_seconds < 1 or int(window_seconds) != window_seconds:
            raise ValueError("window_seconds must be a positive whole number")
        self.max_calls = max_calls
        self.window_seconds = int(window_seconds)
        self.item = parse(f"{max_calls}/{self.window_seconds} second")
        self.storage = MemoryStorage()
        self._limiter = MovingWindowRateLimiter(self.storage)

    def acquire(self, key: str) -> Tuple[bool, float]:
        """
        Record a call for key if the window allows it.

        Returns:
            (allowed, retry_after_seconds); retry_after is 0 when allowed
        """
        if self._limiter.hit(self.item, NAMESPACE, key):
            return True, 0.0
        stats = self._limiter.get_window_stats(self.item, NAMESPACE, key)
        retry_after = max(stats.reset_time - time.time(), 0.0)
        logger.debug(f"Rate limit hit for {key}, retry in {retry_after:.1f}s")
        return False, retry_after

    def remaining(self, key: str) -> int:
        """Calls still allowed in the current window"""
        stats = self._limiter.get_window_stats(self.item, NAMESPACE, key)
        return max(stats.remaining, 0)

    def reset(self, key: str) -> None:
        self._limiter.clear(self.item, NAMESPACE, key)
