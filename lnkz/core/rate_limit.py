"""
Rate Limiting

Two layers of abuse control live here:

- ``FixedWindowRateLimiter``: per-client request counting for link creation.
  A client may issue ``max_requests`` requests per window; the window starts
  at the client's first request and restarts once it has fully elapsed.
- ``limiter``: a slowapi route limiter that throttles the read endpoints
  (redirect, stats) with "count/period" limits from settings.

The fixed-window map is process-local. Running several workers multiplies the
effective limit by the number of workers.
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from slowapi import Limiter

from lnkz.core.setting import settings
from lnkz.core.validators import get_client_ip

logger = logging.getLogger(__name__)

limiter = Limiter(
    key_func=get_client_ip,
    enabled=settings.ROUTE_RATE_LIMITS_ENABLED,
)

# Format: "count/period" (e.g., "100/minute" means 100 requests per minute)
RATE_LIMITS = {
    "redirect": settings.REDIRECT_RATE_LIMIT,
    "stats": settings.STATS_RATE_LIMIT,
}


@dataclass
class RateLimitRecord:
    window_start: float
    count: int


class FixedWindowRateLimiter:
    """
    Fixed window request counter keyed by client identifier.

    All reads and writes of the record map happen under one lock, so
    concurrent requests from the same client never lose an increment.
    The map itself is never handed out.
    """

    def __init__(
        self,
        window_seconds: float = 60,
        max_requests: int = 5,
        clock: Callable[[], float] = time.monotonic,
    ):
        if window_seconds <= 0 or max_requests <= 0:
            raise ValueError("window_seconds and max_requests must be positive")
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self._clock = clock
        self._records: Dict[str, RateLimitRecord] = {}
        self._lock = threading.Lock()

    def check_and_record(self, client_id: str) -> bool:
        """
        Count one request for ``client_id``.

        Returns:
            True if the request is allowed, False if the client is over its limit
        """
        with self._lock:
            now = self._clock()
            record = self._records.get(client_id)

            if record is None or now - record.window_start > self.window_seconds:
                self._records[client_id] = RateLimitRecord(window_start=now, count=1)
                return True

            if record.count >= self.max_requests:
                return False

            record.count += 1
            return True

    def sweep(self) -> int:
        """Drop records whose window has expired. Returns how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [
                client_id
                for client_id, record in self._records.items()
                if now - record.window_start > self.window_seconds
            ]
            for client_id in expired:
                del self._records[client_id]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    @property
    def sweep_interval(self) -> float:
        return self.window_seconds * settings.RATE_LIMIT_SWEEP_FACTOR


async def run_sweeper(rate_limiter: FixedWindowRateLimiter, interval: Optional[float] = None) -> None:
    """Periodically sweep expired records until cancelled."""
    if interval is None:
        interval = rate_limiter.sweep_interval

    while True:
        await asyncio.sleep(interval)
        removed = rate_limiter.sweep()
        if removed:
            logger.debug(f"Rate limit sweep removed {removed} expired records")
