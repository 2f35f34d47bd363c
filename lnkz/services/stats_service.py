"""
Statistics Service

This service handles retrieving statistics for short links.
Separated from the redirect service so read-heavy stats traffic can be
cached or moved independently.
"""

from lnkz.core.exceptions import LinkNotFoundError
from lnkz.core.validators import is_valid_slug
from lnkz.db.interface import LinkStore


class StatsService:
    """Service for retrieving link statistics."""

    def __init__(self, store: LinkStore):
        self.store = store

    async def get_stats(self, slug: str) -> dict:
        """
        Get statistics for a short link.

        Returns:
            Dictionary with slug, url, createdAt (ISO 8601) and clicks

        Raises:
            LinkNotFoundError: If the slug is malformed or unknown
        """
        if not is_valid_slug(slug):
            raise LinkNotFoundError(slug)

        link = await self.store.find_by_slug(slug)

        return {
            "slug": link.slug,
            "url": link.url,
            "createdAt": link.created_at.isoformat(),
            "clicks": link.clicks,
        }
