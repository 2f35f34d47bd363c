"""
API Request and Response Schemas

Pydantic models for the JSON bodies of the public endpoints. Field names on
the wire are camelCase (``shortCode``, ``shortUrl``, ``createdAt``); Python
attributes stay snake_case.

The submitted URL is a plain string rather than ``HttpUrl``: pydantic would
normalize it (e.g. add a trailing slash) and the stored URL must be exactly
what the client sent. Validation happens in ``lnkz.core.validators``.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ShortenRequest(BaseModel):
    """Request model for URL shortening endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    url: str = Field(..., description="The long URL to shorten")
    short_code: Optional[str] = Field(
        default=None,
        alias="shortCode",
        description="Optional custom code: 6 characters of [a-z0-9]"
    )


class ShortenResponse(BaseModel):
    """Response model for URL shortening endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    short_url: str = Field(..., alias="shortUrl", description="The complete short URL")


class StatsResponse(BaseModel):
    """Response model for statistics endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    slug: str
    url: str
    created_at: str = Field(..., alias="createdAt")
    clicks: int
