"""
Shorten Service

This service handles the core business logic for creating short links.
Each request moves through fixed gates and stops at the first that rejects:

    Received -> Validated -> RateChecked -> QuotaChecked -> Persisted

(RATE_LIMIT_BEFORE_VALIDATION swaps the first two checks.)

Code assignment:
- a caller-requested code is used as is; a conflict means SlugTaken
- a generated code is replaced by a fresh candidate on collision, up to
  SHORT_CODE_MAX_RETRIES candidates
- a store failure retries the same code (up to SHORT_CODE_MAX_RETRIES
  attempts), since the failed insert may still commit

The insert completes before the response is built, so a returned short URL
always resolves.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from lnkz.core.exceptions import (
    CodeSpaceExhaustedError,
    LinkNotFoundError,
    QuotaExceededError,
    RateLimitedError,
    ShortenerError,
    SlugConflictError,
    SlugTakenError,
    StoreError,
)
from lnkz.core.rate_limit import FixedWindowRateLimiter
from lnkz.core.setting import settings
from lnkz.core.validators import validate_url
from lnkz.db.interface import LinkStore
from lnkz.db.models import Link
from lnkz.services.code_generator import CodeGenerator

logger = logging.getLogger(__name__)


class ShortenStage(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    RATE_CHECKED = "rate_checked"
    QUOTA_CHECKED = "quota_checked"
    PERSISTED = "persisted"


@dataclass
class ShortenResult:
    link: Link
    short_url: str


class ShortenService:
    """
    Orchestrates link creation.

    The rate limiter is shared process state; the store and generator are
    injected so the service can run against any LinkStore.
    """

    def __init__(
        self,
        store: LinkStore,
        rate_limiter: FixedWindowRateLimiter,
        code_generator: Optional[CodeGenerator] = None,
        base_url: Optional[str] = None,
        max_urls_per_ip: Optional[int] = None,
        max_retries: Optional[int] = None,
        rate_limit_first: Optional[bool] = None,
    ):
        self.store = store
        self.rate_limiter = rate_limiter
        self.code_generator = code_generator or CodeGenerator()
        self.base_url = (base_url or settings.BASE_URL).rstrip("/")
        self.max_urls_per_ip = max_urls_per_ip if max_urls_per_ip is not None else settings.MAX_URLS_PER_IP
        self.max_retries = max_retries if max_retries is not None else settings.SHORT_CODE_MAX_RETRIES
        self.rate_limit_first = (
            rate_limit_first if rate_limit_first is not None else settings.RATE_LIMIT_BEFORE_VALIDATION
        )

    def compose_short_url(self, slug: str) -> str:
        return f"{self.base_url}/{slug}"

    async def shorten(
        self,
        url: str,
        client_id: str,
        requested_code: Optional[str] = None
    ) -> ShortenResult:
        """
        Create a short link for ``url`` on behalf of ``client_id``.

        Raises:
            InvalidInputError: URL or requested code rejected
            RateLimitedError: Client is over its request window
            QuotaExceededError: Client IP owns too many links
            SlugTakenError: Requested code already in use
            CodeSpaceExhaustedError: Every generated candidate collided
            StoreError: Persistence failed or timed out
        """
        stage = ShortenStage.RECEIVED
        try:
            if self.rate_limit_first:
                self._check_rate(client_id)
                stage = ShortenStage.RATE_CHECKED
                url = validate_url(url)
                stage = ShortenStage.VALIDATED
            else:
                url = validate_url(url)
                stage = ShortenStage.VALIDATED
                self._check_rate(client_id)
                stage = ShortenStage.RATE_CHECKED

            await self._check_quota(client_id)
            stage = ShortenStage.QUOTA_CHECKED

            link = await self._assign_and_persist(url, client_id, requested_code)
            stage = ShortenStage.PERSISTED
        except ShortenerError as e:
            logger.warning(
                f"Shorten rejected after {stage.value}: kind={e.kind} "
                f"client={client_id} requested_code={requested_code} detail={e}"
            )
            raise

        short_url = self.compose_short_url(link.slug)
        logger.info(f"Link created: {link.slug} -> {link.url} (client={client_id})")
        return ShortenResult(link=link, short_url=short_url)

    def _check_rate(self, client_id: str) -> None:
        if not self.rate_limiter.check_and_record(client_id):
            raise RateLimitedError(client_id, retry_after=int(self.rate_limiter.window_seconds))

    async def _check_quota(self, client_id: str) -> None:
        count = await self.store.count_by_ip(client_id)
        if count >= self.max_urls_per_ip:
            raise QuotaExceededError(client_id, count, self.max_urls_per_ip)

    async def _assign_and_persist(
        self,
        url: str,
        client_id: str,
        requested_code: Optional[str]
    ) -> Link:
        if requested_code is not None:
            slug = self.code_generator.generate(requested_code)
            try:
                return await self._persist(slug, url, client_id)
            except SlugConflictError:
                raise SlugTakenError(slug)

        last_slug = None
        for attempt in range(1, self.max_retries + 1):
            last_slug = self.code_generator.generate()
            try:
                return await self._persist(last_slug, url, client_id)
            except SlugConflictError:
                logger.info(
                    f"Generated code '{last_slug}' collided "
                    f"(attempt {attempt}/{self.max_retries})"
                )

        raise CodeSpaceExhaustedError(self.max_retries, last_slug=last_slug)

    async def _persist(self, slug: str, url: str, client_id: str) -> Link:
        """
        Insert a link under ``slug``, retrying the same slug after store failures.

        A timed-out insert keeps running in the store and may still commit.
        Retrying under the same slug means at most one of the attempts can
        land; a later conflict on a row that already holds this client's URL
        is that earlier attempt, and its link is returned.

        Raises:
            SlugConflictError: The slug belongs to another link
            StoreError: Every attempt failed
        """
        in_doubt = False
        last_error: Optional[StoreError] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                return await self.store.insert(Link(slug=slug, url=url, ip_address=client_id))
            except SlugConflictError:
                if in_doubt:
                    existing = await self._find_own_link(slug, url, client_id)
                    if existing is not None:
                        logger.info(f"Earlier insert of '{slug}' committed after timing out")
                        return existing
                raise
            except StoreError as e:
                in_doubt = True
                last_error = e
                logger.info(
                    f"Insert attempt {attempt}/{self.max_retries} for '{slug}' failed: {e}"
                )

        try:
            existing = await self._find_own_link(slug, url, client_id)
        except StoreError:
            existing = None
        if existing is not None:
            logger.info(f"Insert of '{slug}' committed after its last attempt timed out")
            return existing
        raise last_error

    async def _find_own_link(self, slug: str, url: str, client_id: str) -> Optional[Link]:
        try:
            link = await self.store.find_by_slug(slug)
        except LinkNotFoundError:
            return None
        if link.url == url and link.ip_address == client_id:
            return link
        return None
