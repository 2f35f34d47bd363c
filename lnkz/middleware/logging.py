"""
Access log middleware.

One line per request on the ``lnkz.access`` logger. Server errors are logged
at WARNING so they surface even when LOG_LEVEL hides routine traffic. The
client is identified the same way the shorten rate limiter identifies it.
"""

import time
import logging

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from lnkz.core.validators import get_client_ip

logger = logging.getLogger("lnkz.access")


class LoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"in {elapsed_ms:.1f}ms client={get_client_ip(request)}"
        )

        response.headers["X-Process-Time"] = f"{elapsed_ms / 1000:.6f}"
        return response


def add_logging_middleware(app):
    app.add_middleware(LoggingMiddleware)
