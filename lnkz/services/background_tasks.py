"""
Background Task Helpers

Jobs scheduled after a redirect response has been composed. They run after
the response is sent and must never raise: failures are logged here.
"""

import logging

from lnkz.db.interface import LinkStore
from lnkz.db.models import Visit
from lnkz.services.redirect_service import RedirectService

logger = logging.getLogger(__name__)


async def record_click_background(redirect_service: RedirectService, slug: str) -> None:
    """Increment the click counter; retries live in RedirectService.record_click."""
    try:
        await redirect_service.record_click(slug)
    except Exception as e:
        logger.error(
            f"Failed to increment clicks for {slug}: {str(e)}",
            exc_info=True
        )


async def record_visit_background(
    store: LinkStore,
    link_id: int,
    ip_address: str,
    user_agent: str = "",
    language: str = "",
    referrer: str = ""
) -> None:
    """
    Store an analytics row for one redirect.

    Args:
        store: Link store to write through
        link_id: Id of the link that was followed
        ip_address: Visitor's client identifier
        user_agent: User-Agent header (truncated to the column size)
        language: Accept-Language header
        referrer: Referer header
    """
    visit = Visit(
        link_id=link_id,
        ip_address=ip_address,
        user_agent=user_agent[:500],
        language=language[:100],
        referrer=referrer[:2048],
    )
    try:
        await store.record_visit(visit)
    except Exception as e:
        logger.error(
            f"Failed to record visit for link {link_id}: {str(e)}",
            exc_info=True
        )
