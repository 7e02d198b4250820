"""initial schema

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-19 09:00:00.000000

Creates pages, per-page metadata (which holds expiration_date and
expiration_time), settings (which holds the scheduler's next run times)
and navigation menu items.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import advanced_alchemy.types


# revision identifiers, used by Alembic.
revision: str = '1a2b3c4d5e6f'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column('id', advanced_alchemy.types.GUID(length=16), nullable=False),
        sa.Column('sa_orm_sentinel', sa.Integer(), nullable=True),
        sa.Column('created_at', advanced_alchemy.types.DateTimeUTC(timezone=True), nullable=False),
        sa.Column('updated_at', advanced_alchemy.types.DateTimeUTC(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'pages',
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('type', sa.String(length=50), server_default='post', nullable=False),
        sa.Column('status', sa.String(length=20), server_default='draft', nullable=False),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('order', sa.Integer(), nullable=False),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_pages')),
    )
    op.create_index('ix_pages_user_id', 'pages', ['user_id'])
    op.create_index('ix_pages_slug', 'pages', ['slug'], unique=True)
    op.create_index('ix_pages_type', 'pages', ['type'])
    op.create_index('ix_pages_status', 'pages', ['status'])
    op.create_index('ix_pages_order', 'pages', ['order'])

    op.create_table(
        'page_meta',
        sa.Column('page_id', advanced_alchemy.types.GUID(length=16), nullable=False),
        sa.Column('key', sa.String(length=255), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['page_id'], ['pages.id'], name=op.f('fk_page_meta_page_id_pages'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_page_meta')),
        sa.UniqueConstraint('page_id', 'key', name='uq_page_meta_page_key'),
    )
    op.create_index('ix_page_meta_page_id', 'page_meta', ['page_id'])
    op.create_index('ix_page_meta_key', 'page_meta', ['key'])

    op.create_table(
        'settings',
        sa.Column('key', sa.String(length=255), nullable=False),
        sa.Column('value', sa.Text(), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_settings')),
    )
    op.create_index('ix_settings_key', 'settings', ['key'], unique=True)

    op.create_table(
        'menu_items',
        sa.Column('menu', sa.String(length=100), nullable=False),
        sa.Column('label', sa.String(length=255), nullable=False),
        sa.Column('url', sa.String(length=1024), nullable=False),
        sa.Column('object_type', sa.String(length=50), nullable=True),
        sa.Column('object_id', sa.Uuid(), nullable=True),
        sa.Column('order', sa.Integer(), nullable=False),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_menu_items')),
    )
    op.create_index('ix_menu_items_menu', 'menu_items', ['menu'])
    op.create_index('ix_menu_items_object_id', 'menu_items', ['object_id'])


def downgrade() -> None:
    op.drop_table('menu_items')
    op.drop_table('settings')
    op.drop_table('page_meta')
    op.drop_table('pages')
