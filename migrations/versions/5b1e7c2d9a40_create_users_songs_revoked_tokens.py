"""create users, songs and revoked_tokens tables

Revision ID: 5b1e7c2d9a40
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '5b1e7c2d9a40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the initial schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=30), nullable=False, server_default='user'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_id', 'users', ['id'], unique=False)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'songs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('artist', sa.String(length=255), nullable=False),
        sa.Column('youtube_id', sa.String(length=32), nullable=False),
        sa.Column('youtube_url', sa.String(length=500), nullable=False),
        sa.Column('thumbnail', sa.String(length=500), nullable=False),
        sa.Column('views', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('rejection_reason', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('views >= 0', name='ck_songs_views_non_negative'),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')", name='ck_songs_status'
        )
    )
    # Unique across soft-deleted rows too
    op.create_index('ix_songs_youtube_id', 'songs', ['youtube_id'], unique=True)
    op.create_index('ix_songs_artist', 'songs', ['artist'], unique=False)
    op.create_index('ix_songs_status', 'songs', ['status'], unique=False)
    op.create_index('ix_songs_deleted_at', 'songs', ['deleted_at'], unique=False)
    op.create_index('ix_songs_status_views', 'songs', ['status', 'views'], unique=False)

    op.create_table(
        'revoked_tokens',
        sa.Column('jti', sa.String(length=64), nullable=False),
        sa.Column('token_type', sa.String(length=20), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('revoked_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('jti')
    )


def downgrade() -> None:
    """Drop the initial schema."""
    op.drop_table('revoked_tokens')
    op.drop_index('ix_songs_status_views', table_name='songs')
    op.drop_index('ix_songs_deleted_at', table_name='songs')
    op.drop_index('ix_songs_status', table_name='songs')
    op.drop_index('ix_songs_artist', table_name='songs')
    op.drop_index('ix_songs_youtube_id', table_name='songs')
    op.drop_table('songs')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_id', table_name='users')
    op.drop_table('users')
