"""
Input Validators and Sanitizers

This module provides validation functions for user inputs:
- submitted long URLs (scheme, host, length, self-reference, scheme payloads)
- short codes arriving on the redirect path
- client identifiers taken from proxy headers
"""

import ipaddress
import re
from typing import Optional
from urllib.parse import unquote, urlparse

from starlette.requests import Request

from lnkz.core.exceptions import InvalidInputError
from lnkz.core.setting import settings

ALLOWED_SCHEMES = {"http", "https"}
BLOCKED_PATTERNS = ("javascript:", "data:", "file:", "vbscript:")

SLUG_PATTERN = re.compile(r"^[a-z0-9]{1,8}$")
_WHITESPACE = re.compile(r"\s")

# A blocked scheme only counts where a nested URL could start
_BLOCKED_SCHEME = re.compile(
    r"(?:^|[/=?&])(?:" + "|".join(re.escape(p) for p in BLOCKED_PATTERNS) + ")"
)


def validate_url(
    url: str,
    service_domain: Optional[str] = None,
    max_length: Optional[int] = None,
) -> str:
    """
    Validate a URL submitted for shortening and return it trimmed.

    Args:
        url: The raw URL string from the request body
        service_domain: Hostname of this service; URLs pointing at it are refused
        max_length: Maximum allowed length (default: MAX_URL_LENGTH)

    Returns:
        The URL with surrounding whitespace removed

    Raises:
        InvalidInputError: If any check fails
    """
    if service_domain is None:
        service_domain = settings.service_domain
    if max_length is None:
        max_length = settings.MAX_URL_LENGTH

    if not isinstance(url, str) or not url.strip():
        raise InvalidInputError(str(url), "Empty URL")

    url = url.strip()

    if len(url) > max_length:
        raise InvalidInputError(url[:64], f"URL longer than {max_length} characters")

    if _WHITESPACE.search(url):
        raise InvalidInputError(url, "URL contains whitespace")

    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
        parsed.port  # raises ValueError on a malformed port
    except ValueError as e:
        raise InvalidInputError(url, f"Unparseable URL ({e})")

    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        raise InvalidInputError(url, f"Scheme '{parsed.scheme}' not allowed")

    if not parsed.netloc or not hostname:
        raise InvalidInputError(url, "URL has no host")

    hostname = hostname.lower()
    if hostname != "localhost" and "." not in hostname and ":" not in hostname:
        raise InvalidInputError(url, "Host is not a domain name")

    if service_domain and hostname == service_domain.lower():
        raise InvalidInputError(
            url,
            "URL points at this service",
            public_message="Cannot shorten an already shortened URL",
        )

    lowered = url.lower()
    if _BLOCKED_SCHEME.search(lowered) or _BLOCKED_SCHEME.search(unquote(lowered)):
        raise InvalidInputError(url, "URL embeds a blocked scheme")

    return url


def is_valid_slug(slug: str) -> bool:
    """Whether ``slug`` could name a stored link (1-8 of [a-z0-9])."""
    return isinstance(slug, str) and bool(SLUG_PATTERN.match(slug))


def resolve_client_ip(
    forwarded_for: Optional[str],
    real_ip: Optional[str],
    peer_host: Optional[str],
    sentinel: Optional[str] = None,
) -> str:
    """
    Pick the client identifier from proxy headers or the peer address.

    Priority: first X-Forwarded-For entry, then X-Real-IP, then the direct
    connection. A candidate that does not parse as an IP address is replaced
    by ``sentinel``.
    """
    if sentinel is None:
        sentinel = settings.CLIENT_ID_SENTINEL

    candidate = None
    if forwarded_for:
        candidate = forwarded_for.split(",")[0].strip()
    if not candidate and real_ip:
        candidate = real_ip.strip()
    if not candidate and peer_host:
        candidate = peer_host.strip()

    if not candidate:
        return sentinel
    try:
        return str(ipaddress.ip_address(candidate))
    except ValueError:
        return sentinel


def get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.

    Handles proxies and load balancers by checking X-Forwarded-For and
    X-Real-IP before the direct client address.
    """
    return resolve_client_ip(
        request.headers.get("X-Forwarded-For"),
        request.headers.get("X-Real-IP"),
        request.client.host if request.client else None,
    )
