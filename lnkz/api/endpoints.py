"""
FastAPI Endpoints for the Link Service

This module defines all REST API endpoints with minimal logic.
Endpoints only handle:
- Transport checks (content type, body size, JSON shape)
- Client identification
- Translating service exceptions into HTTP status codes
- Scheduling background work after redirects

All business logic is in services.

Consistency: POST /shorten answers only after the link has been committed,
so the returned shortUrl resolves immediately.
"""

import logging
import string
from urllib.parse import quote

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse
from pydantic import ValidationError

from lnkz.api.schemas import ShortenRequest, ShortenResponse, StatsResponse
from lnkz.core.exceptions import (
    CodeSpaceExhaustedError,
    InvalidInputError,
    LinkNotFoundError,
    QuotaExceededError,
    RateLimitedError,
    SlugTakenError,
    StoreError,
)
from lnkz.core.rate_limit import FixedWindowRateLimiter, RATE_LIMITS, limiter
from lnkz.core.runtime import get_link_store, get_rate_limiter
from lnkz.core.setting import settings
from lnkz.core.validators import get_client_ip
from lnkz.db.interface import LinkStore
from lnkz.services.background_tasks import record_click_background, record_visit_background
from lnkz.services.redirect_service import RedirectService
from lnkz.services.shorten_service import ShortenService
from lnkz.services.stats_service import StatsService

logger = logging.getLogger(__name__)

router = APIRouter()

GENERIC_FAILURE = "Failed to shorten URL"


def location_header(url: str) -> str:
    """
    Location value for a stored URL.

    ASCII URLs are sent exactly as stored; only non-ASCII characters are
    percent-encoded (as UTF-8) so the header stays latin-1 safe.
    """
    return quote(url, safe=string.punctuation)


async def read_json_body(request: Request) -> bytes:
    """
    Return the raw request body after transport checks.

    Raises:
        HTTPException 415: If the content type is not application/json
        HTTPException 413: If the body exceeds MAX_REQUEST_BODY_BYTES
    """
    content_type = request.headers.get("content-type", "")
    if content_type.split(";")[0].strip().lower() != "application/json":
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail="Content-Type must be application/json"
        )

    max_bytes = settings.MAX_REQUEST_BODY_BYTES
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Request body too large"
        )

    body = b""
    async for chunk in request.stream():
        body += chunk
        if len(body) > max_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail="Request body too large"
            )
    return body


@router.post(
    "/shorten",
    response_model=ShortenResponse,
    status_code=status.HTTP_200_OK,
    summary="Create a short URL",
    description="Takes a long URL (and optionally a custom 6-character code) and returns the short URL"
)
async def create_short_url(
    request: Request,
    store: LinkStore = Depends(get_link_store),
    rate_limiter: FixedWindowRateLimiter = Depends(get_rate_limiter),
) -> ShortenResponse:
    """
    Create a new short URL from a long URL.

    Raises:
        HTTPException 400: Invalid URL, invalid code format or malformed body
        HTTPException 403: Link quota exceeded for the client IP
        HTTPException 409: Requested code already taken
        HTTPException 413: Body too large
        HTTPException 415: Wrong content type
        HTTPException 429: Rate limited (Retry-After set)
        HTTPException 500: Store failure or no free code
    """
    body = await read_json_body(request)
    try:
        payload = ShortenRequest.model_validate_json(body)
    except ValidationError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid request body"
        )

    client_ip = get_client_ip(request)
    shorten_service = ShortenService(store, rate_limiter)

    try:
        result = await shorten_service.shorten(payload.url, client_ip, payload.short_code)
    except InvalidInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.public_message)
    except RateLimitedError as e:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=e.public_message,
            headers={"Retry-After": str(e.retry_after)}
        )
    except QuotaExceededError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.public_message)
    except SlugTakenError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.public_message)
    except (CodeSpaceExhaustedError, StoreError) as e:
        logger.error(f"Shorten failed for client {client_ip}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.public_message)
    except Exception:
        logger.exception(f"Unexpected error shortening URL for client {client_ip}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=GENERIC_FAILURE)

    return ShortenResponse(short_url=result.short_url)


@router.get(
    "/stats/{slug}",
    response_model=StatsResponse,
    summary="Get link statistics",
    description="Returns the target URL, creation time and click count of a short link"
)
@limiter.limit(RATE_LIMITS["stats"])
async def get_link_stats(
    slug: str,
    request: Request,  # Required for rate limiting
    store: LinkStore = Depends(get_link_store),
) -> StatsResponse:
    """
    Get statistics for a short link.

    Raises:
        HTTPException 404: If the slug is not found
        HTTPException 429: If rate limit exceeded
    """
    try:
        stats = await StatsService(store).get_stats(slug)
    except LinkNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    except StoreError as e:
        logger.error(f"Stats lookup failed for '{slug}': {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")

    return StatsResponse(**stats)


@router.get(
    "/{slug}",
    status_code=status.HTTP_302_FOUND,
    summary="Redirect to original URL",
    description="Takes a short code and redirects to the original long URL"
)
@limiter.limit(RATE_LIMITS["redirect"])
async def redirect_to_url(
    slug: str,
    request: Request,
    background_tasks: BackgroundTasks,
    store: LinkStore = Depends(get_link_store),
) -> RedirectResponse:
    """
    Redirect to the original URL for a given short code.

    The click counter and visit log are updated by background tasks after
    the response is sent.

    Raises:
        HTTPException 404: If the slug is not found
        HTTPException 429: If rate limit exceeded
    """
    redirect_service = RedirectService(store)
    try:
        link = await redirect_service.resolve(slug)
    except LinkNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    except StoreError as e:
        logger.error(f"Redirect lookup failed for '{slug}': {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")

    background_tasks.add_task(record_click_background, redirect_service, link.slug)
    background_tasks.add_task(
        record_visit_background,
        store,
        link_id=link.id,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent", ""),
        language=request.headers.get("Accept-Language", ""),
        referrer=request.headers.get("Referer", ""),
    )

    response = RedirectResponse(url=link.url, status_code=settings.REDIRECT_STATUS_CODE)
    response.headers["location"] = location_header(link.url)
    return response
