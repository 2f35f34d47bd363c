"""
Database Models

This module defines the SQLModel database schemas for:
- Link: Maps a short slug to its original URL and counts clicks
- Visit: One analytics row per redirect
- User: Placeholder for link owners (no core logic depends on it)

Design Decisions:
- Unique index on slug: the store, not the generator, enforces uniqueness
- Index on ip_address: quota checks count links per creator IP
- clicks is denormalized on Link and only ever changed by an atomic UPDATE
"""

from datetime import datetime, timezone
from typing import Optional

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import String, DateTime, Integer, Text, ForeignKey


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    """Link owner placeholder."""
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(sa_column=Column(String(100), nullable=False, unique=True))
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )


class Link(SQLModel, table=True):
    """
    Main table storing short code mappings.

    Fields:
    - slug: Unique short code (1-8 characters of [a-z0-9])
    - url: The original long URL
    - created_at: When the link was created
    - clicks: Number of redirects served
    - ip_address: Creator's client identifier, used for quota accounting
    - user_id: Optional owner (unused by the core)
    """
    __tablename__ = "links"

    id: Optional[int] = Field(default=None, primary_key=True)
    slug: str = Field(
        sa_column=Column(String(8), nullable=False, unique=True, index=True),
        max_length=8
    )
    url: str = Field(sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
    clicks: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    ip_address: str = Field(sa_column=Column(String(45), nullable=False, index=True))  # IPv6 max length
    user_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("users.id"), nullable=True)
    )


class Visit(SQLModel, table=True):
    """
    Visit log for analytics.

    Written by a background task after each redirect; losing a row never
    affects the redirect itself.
    """
    __tablename__ = "visits"

    id: Optional[int] = Field(default=None, primary_key=True)
    link_id: int = Field(
        sa_column=Column(Integer, ForeignKey("links.id"), nullable=False, index=True)
    )
    ip_address: str = Field(sa_column=Column(String(45), nullable=False))
    user_agent: str = Field(default="", sa_column=Column(String(500), nullable=False, default=""))
    language: str = Field(default="", sa_column=Column(String(100), nullable=False, default=""))
    referrer: str = Field(default="", sa_column=Column(String(2048), nullable=False, default=""))
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
