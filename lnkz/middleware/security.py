"""
Security Headers Middleware

Adds defensive headers to every response:
- X-Content-Type-Options: nosniff (no MIME sniffing of JSON bodies)
- X-Frame-Options: DENY (no framing)
- Referrer-Policy: strict-origin-when-cross-origin
"""

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


def add_security_headers_middleware(app):
    app.add_middleware(SecurityHeadersMiddleware)
