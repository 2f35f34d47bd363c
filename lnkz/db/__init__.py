"""
Database module with a store abstraction.

This module provides:
- LinkStore: Abstract gateway the services persist links through
- SQLLinkStore: SQLModel implementation of the gateway
- Engine and session factory built from DATABASE_URL
"""

from lnkz.db.interface import LinkStore
from lnkz.db.link_store import SQLLinkStore
from lnkz.db.session import async_session_maker, engine, init_models

__all__ = [
    "LinkStore",
    "SQLLinkStore",
    "async_session_maker",
    "engine",
    "init_models",
]
