"""
Process Runtime State

This module owns the per-process objects shared across requests:
- the fixed-window rate limiter used by POST /shorten
- the background task that sweeps its expired records
- the link store

They are created on application startup and exposed to endpoints as FastAPI
dependencies, so tests can replace them with ``app.dependency_overrides``.
"""

import asyncio
import logging
from contextlib import suppress
from typing import Optional

from lnkz.core.rate_limit import FixedWindowRateLimiter, run_sweeper
from lnkz.core.setting import settings
from lnkz.db.interface import LinkStore
from lnkz.db.link_store import SQLLinkStore
from lnkz.db.session import async_session_maker

logger = logging.getLogger(__name__)

_rate_limiter: Optional[FixedWindowRateLimiter] = None
_sweeper_task: Optional[asyncio.Task] = None
_link_store: Optional[LinkStore] = None


def get_rate_limiter() -> FixedWindowRateLimiter:
    """
    Get the process-wide rate limiter.

    Created lazily if startup has not run (e.g. when the app is mounted
    without lifespan events).
    """
    global _rate_limiter

    if _rate_limiter is None:
        _rate_limiter = FixedWindowRateLimiter(
            window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
            max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
        )
    return _rate_limiter


def get_link_store() -> LinkStore:
    """Get the process-wide SQL link store."""
    global _link_store

    if _link_store is None:
        _link_store = SQLLinkStore(async_session_maker)
    return _link_store


async def initialize_runtime() -> None:
    """Create the rate limiter and start its sweeper."""
    global _sweeper_task

    if _sweeper_task is not None:
        logger.warning("Runtime already initialized")
        return

    rate_limiter = get_rate_limiter()
    _sweeper_task = asyncio.create_task(run_sweeper(rate_limiter))

    logger.info(
        f"Rate limiter ready: {rate_limiter.max_requests} requests per "
        f"{rate_limiter.window_seconds}s, sweep every {rate_limiter.sweep_interval}s"
    )


async def shutdown_runtime() -> None:
    """Stop the sweeper and drop shared state."""
    global _rate_limiter, _sweeper_task, _link_store

    if _sweeper_task is not None:
        _sweeper_task.cancel()
        with suppress(asyncio.CancelledError):
            await _sweeper_task
        logger.info("Rate limit sweeper stopped")

    _sweeper_task = None
    _rate_limiter = None
    _link_store = None
