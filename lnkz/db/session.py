"""
Database Engine and Session Management

This module builds the async engine from DATABASE_URL and the session factory
the link store draws its sessions from.

Per-backend configuration:
- SQLite: NullPool (file-based, one writer at a time) and
  check_same_thread=False, required for aiosqlite
- PostgreSQL and others: SQLAlchemy's default queue pool with pre-ping
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from lnkz.core.setting import settings


def is_sqlite_url(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def build_engine(database_url: str, **kwargs: Any) -> AsyncEngine:
    """
    Create the async engine with backend-specific defaults.

    Args:
        database_url: Connection string (sqlite+aiosqlite:///... or postgresql+asyncpg://...)
        **kwargs: Extra engine options, merged over the defaults
    """
    engine_kwargs: dict[str, Any] = {"echo": False}

    if is_sqlite_url(database_url):
        engine_kwargs["poolclass"] = NullPool
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    else:
        engine_kwargs["pool_pre_ping"] = True

    engine_kwargs.update(kwargs)
    return create_async_engine(database_url, **engine_kwargs)


def build_session_maker(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind,
        class_=SQLModelAsyncSession,
        expire_on_commit=False,  # Links are read after commit to build responses
        autoflush=False,
    )


engine = build_engine(settings.DATABASE_URL)

async_session_maker = build_session_maker(engine)


async def init_models(bind: AsyncEngine = engine) -> None:
    """Create any missing tables. Production deployments use Alembic instead."""
    from lnkz.db import models  # noqa: F401  registers tables on the metadata

    async with bind.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
