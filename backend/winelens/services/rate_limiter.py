"""
Per-client fixed-window rate limiter (single process, in memory).

Each client address maps to (window start, request count). Expired
windows are removed by sweep(), which run_sweeper() calls on a timer.
The map holds at most max_clients entries; when full, expired windows
are swept first and then the oldest window is evicted.
"""

import asyncio
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..config import Config

logger = logging.getLogger(__name__)


@dataclass
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after: int = 0


class RateLimiter:
    """Fixed-window request counter keyed by client address."""

    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: float = 60.0,
        max_clients: int = Config.RATE_LIMIT_MAX_CLIENTS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.max_clients = max_clients
        self._clock = clock
        self._windows: dict[str, tuple[float, int]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._windows)

    def check(self, client: str) -> RateLimitDecision:
        """Count one request for client and decide whether it is allowed."""
        now = self._clock()
        with self._lock:
            window = self._windows.get(client)
            if window is None or now - window[0] >= self.window_seconds:
                if window is None and len(self._windows) >= self.max_clients:
                    self._make_room(now)
                self._windows[client] = (now, 1)
                return RateLimitDecision(allowed=True, remaining=self.max_requests - 1)

            start, count = window
            if count >= self.max_requests:
                retry_after = max(1, math.ceil(start + self.window_seconds - now))
                return RateLimitDecision(allowed=False, remaining=0, retry_after=retry_after)

            self._windows[client] = (start, count + 1)
            return RateLimitDecision(allowed=True, remaining=self.max_requests - count - 1)

    def _make_room(self, now: float) -> None:
        self._sweep_locked(now)
        if len(self._windows) >= self.max_clients:
            oldest = min(self._windows, key=lambda k: self._windows[k][0])
            del self._windows[oldest]

    def _sweep_locked(self, now: float) -> int:
        expired = [k for k, (start, _) in self._windows.items() if now - start >= self.window_seconds]
        for key in expired:
            del self._windows[key]
        return len(expired)

    def sweep(self) -> int:
        """Remove expired windows. Returns the number removed."""
        with self._lock:
            return self._sweep_locked(self._clock())

    async def run_sweeper(self, interval: float) -> None:
        """Sweep forever every interval seconds (cancel to stop)."""
        while True:
            await asyncio.sleep(interval)
            removed = self.sweep()
            if removed:
                logger.debug(f"Rate limiter swept {removed} expired window(s)")


# Singleton limiter instance
_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Get or create rate limiter singleton from Config."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter(
            max_requests=Config.rate_limit_max_requests(),
            window_seconds=Config.rate_limit_window_seconds(),
        )
    return _rate_limiter
