"""
SQL Link Store

SQLModel/SQLAlchemy implementation of the LinkStore interface. Each call opens
its own session from the session factory, so the store is safe to share
between concurrent requests and background tasks.

Time bounds:
- every call is wrapped in asyncio.wait_for(STORE_TIMEOUT_SECONDS)
- writes are additionally shielded: a caller that times out or disconnects
  stops waiting, but an issued insert or increment still runs to completion
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from lnkz.core.exceptions import LinkNotFoundError, SlugConflictError, StoreError
from lnkz.core.setting import settings
from lnkz.db.interface import LinkStore
from lnkz.db.models import Link, Visit

logger = logging.getLogger(__name__)


def _log_detached_write(operation: str) -> Callable[[asyncio.Task], None]:
    def callback(task: asyncio.Task) -> None:
        if task.cancelled():
            logger.warning(f"Detached store write '{operation}' was cancelled")
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Detached store write '{operation}' failed: {error}")
        else:
            logger.info(f"Detached store write '{operation}' completed")
    return callback


class SQLLinkStore(LinkStore):
    """Link store backed by an async SQLAlchemy session factory."""

    def __init__(self, session_maker: async_sessionmaker, timeout: Optional[float] = None):
        self.session_maker = session_maker
        self.timeout = timeout if timeout is not None else settings.STORE_TIMEOUT_SECONDS

    async def _bounded(self, operation: str, coro: Awaitable[Any], write: bool = False) -> Any:
        task = asyncio.ensure_future(coro)
        try:
            return await asyncio.wait_for(
                asyncio.shield(task) if write else task,
                timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            if write:
                task.add_done_callback(_log_detached_write(operation))
            raise StoreError(f"{operation} timed out after {self.timeout}s", original_error=e)
        except asyncio.CancelledError:
            if write and not task.done():
                task.add_done_callback(_log_detached_write(operation))
            raise

    async def find_by_slug(self, slug: str) -> Link:
        return await self._bounded(f"find_by_slug({slug})", self._find_by_slug(slug))

    async def insert(self, link: Link) -> Link:
        return await self._bounded(f"insert({link.slug})", self._insert(link), write=True)

    async def increment_clicks(self, slug: str) -> None:
        await self._bounded(f"increment_clicks({slug})", self._increment_clicks(slug), write=True)

    async def count_by_ip(self, ip_address: str) -> int:
        return await self._bounded(f"count_by_ip({ip_address})", self._count_by_ip(ip_address))

    async def record_visit(self, visit: Visit) -> None:
        await self._bounded(f"record_visit({visit.link_id})", self._record_visit(visit), write=True)

    async def _find_by_slug(self, slug: str) -> Link:
        try:
            async with self.session_maker() as session:
                statement = select(Link).where(Link.slug == slug)
                result = await session.execute(statement)
                link = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to look up '{slug}': {e}", original_error=e)

        if link is None:
            raise LinkNotFoundError(slug)
        return link

    async def _insert(self, link: Link) -> Link:
        async with self.session_maker() as session:
            session.add(link)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                if "slug" in str(e.orig).lower():
                    raise SlugConflictError(link.slug)
                raise StoreError(f"Constraint violation inserting '{link.slug}'", original_error=e)
            except SQLAlchemyError as e:
                await session.rollback()
                raise StoreError(f"Failed to insert '{link.slug}': {e}", original_error=e)
        return link

    async def _increment_clicks(self, slug: str) -> None:
        statement = (
            update(Link)
            .where(Link.slug == slug)
            .values(clicks=Link.clicks + 1)
        )
        try:
            async with self.session_maker() as session:
                result = await session.execute(statement)
                await session.commit()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to increment clicks for '{slug}': {e}", original_error=e)

        if result.rowcount == 0:
            raise LinkNotFoundError(slug)

    async def _count_by_ip(self, ip_address: str) -> int:
        statement = select(func.count(Link.id)).where(Link.ip_address == ip_address)
        try:
            async with self.session_maker() as session:
                result = await session.execute(statement)
                return result.scalar() or 0
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to count links for {ip_address}: {e}", original_error=e)

    async def _record_visit(self, visit: Visit) -> None:
        try:
            async with self.session_maker() as session:
                session.add(visit)
                await session.commit()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to record visit for link {visit.link_id}: {e}", original_error=e)
