"""
Redirect Service

This service handles URL redirection logic.

Design Decisions:
- Lookup and click accounting are separate calls: the HTTP layer sends the
  redirect first and records the click in a background task
- Click increments are retried a few times, then logged and dropped; a failed
  increment never fails a redirect
- Misses are not cached
"""

import asyncio
import logging
from typing import Optional

from lnkz.core.exceptions import LinkNotFoundError, StoreError
from lnkz.core.setting import settings
from lnkz.core.validators import is_valid_slug
from lnkz.db.interface import LinkStore
from lnkz.db.models import Link

logger = logging.getLogger(__name__)


class RedirectService:
    """Resolves slugs and accounts for clicks."""

    def __init__(
        self,
        store: LinkStore,
        increment_retries: Optional[int] = None,
        retry_delay: float = 0.05,
    ):
        self.store = store
        self.increment_retries = (
            increment_retries if increment_retries is not None else settings.CLICK_INCREMENT_RETRIES
        )
        self.retry_delay = retry_delay

    async def resolve(self, slug: str) -> Link:
        """
        Get the link to redirect to.

        Raises:
            LinkNotFoundError: If the slug is malformed or unknown
            StoreError: If the lookup fails or times out
        """
        if not is_valid_slug(slug):
            logger.debug(f"Rejected malformed slug {slug!r}")
            raise LinkNotFoundError(slug)

        try:
            return await self.store.find_by_slug(slug)
        except LinkNotFoundError:
            logger.info(f"Redirect miss for slug '{slug}'")
            raise

    async def record_click(self, slug: str) -> bool:
        """
        Increment the click counter for ``slug``.

        Store errors are retried with a linear backoff. Nothing is raised.

        Returns:
            True if the increment was applied
        """
        for attempt in range(1, self.increment_retries + 1):
            try:
                await self.store.increment_clicks(slug)
                return True
            except LinkNotFoundError:
                logger.warning(f"Click for '{slug}' dropped: link no longer exists")
                return False
            except StoreError as e:
                logger.warning(
                    f"Click increment for '{slug}' failed "
                    f"(attempt {attempt}/{self.increment_retries}): {e}"
                )
                if attempt < self.increment_retries:
                    await asyncio.sleep(self.retry_delay * attempt)

        logger.error(f"Click for '{slug}' lost after {self.increment_retries} attempts")
        return False
