"""Initial schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create initial database schema:
    - users: placeholder owners
    - links: slug -> url mappings with click counters
    - visits: per-redirect analytics rows
    """
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('username', sa.String(length=100), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username'),
    )

    op.create_table(
        'links',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('slug', sa.String(length=8), nullable=False),
        sa.Column('url', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('clicks', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('ip_address', sa.String(length=45), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_links_slug', 'links', ['slug'], unique=True)
    op.create_index('ix_links_created_at', 'links', ['created_at'])
    op.create_index('ix_links_ip_address', 'links', ['ip_address'])

    op.create_table(
        'visits',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('link_id', sa.Integer(), sa.ForeignKey('links.id'), nullable=False),
        sa.Column('ip_address', sa.String(length=45), nullable=False),
        sa.Column('user_agent', sa.String(length=500), nullable=False, server_default=''),
        sa.Column('language', sa.String(length=100), nullable=False, server_default=''),
        sa.Column('referrer', sa.String(length=2048), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_visits_link_id', 'visits', ['link_id'])
    op.create_index('ix_visits_created_at', 'visits', ['created_at'])


def downgrade() -> None:
    """Drop all tables and indexes."""
    op.drop_index('ix_visits_created_at', table_name='visits')
    op.drop_index('ix_visits_link_id', table_name='visits')
    op.drop_table('visits')

    op.drop_index('ix_links_ip_address', table_name='links')
    op.drop_index('ix_links_created_at', table_name='links')
    op.drop_index('ix_links_slug', table_name='links')
    op.drop_table('links')

    op.drop_table('users')
