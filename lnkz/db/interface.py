"""
Link Store Interface

This module defines the gateway the shorten and redirect services use to
reach persistence. Services only see this interface; the SQL implementation
lives in ``lnkz.db.link_store`` and tests can substitute their own.

Contract shared by all implementations:
- ``insert`` is all-or-nothing per attempt and raises ``SlugConflictError``
  when the slug already exists
- ``increment_clicks`` is a single atomic update, never read-then-write
- every call is bounded in time and raises ``StoreError`` instead of hanging
"""

from abc import ABC, abstractmethod

from lnkz.db.models import Link, Visit


class LinkStore(ABC):
    """
    Abstract base class for link persistence.

    To add a new backend:
    1. Create a new class inheriting from LinkStore
    2. Implement all abstract methods
    3. Return it from ``lnkz.core.runtime.get_link_store``
    """

    @abstractmethod
    async def find_by_slug(self, slug: str) -> Link:
        """
        Look up a link by its slug.

        Raises:
            LinkNotFoundError: If no link has this slug
            StoreError: If the store fails or times out
        """

    @abstractmethod
    async def insert(self, link: Link) -> Link:
        """
        Persist a new link.

        Returns:
            The stored link with its id populated

        Raises:
            SlugConflictError: If the slug is already taken
            StoreError: If the store fails or times out
        """

    @abstractmethod
    async def increment_clicks(self, slug: str) -> None:
        """
        Atomically add one to the link's click counter.

        Raises:
            LinkNotFoundError: If no link has this slug
            StoreError: If the store fails or times out
        """

    @abstractmethod
    async def count_by_ip(self, ip_address: str) -> int:
        """Number of links created from ``ip_address``."""

    @abstractmethod
    async def record_visit(self, visit: Visit) -> None:
        """Store one analytics row for a redirect."""
