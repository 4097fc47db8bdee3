"""initial schema: users, user_services, playlists, playlist_items

Revision ID: 0001
Revises:
Create Date: 2026-10-19 10:00:00.000000

Hey future me - ONE playlists table for both providers!

The old backend had playlists_youtube / playlists_spotify with their own item tables.
Here a provider column does that job:

- playlists: unique (user_id, provider, provider_playlist_id), that's the upsert key
- playlist_items: unique (playlist_id, provider_item_id), so re-syncs never duplicate
- position holds the YouTube position OR the Spotify track index (was track_number)

Items cascade with their playlist; playlists and tokens cascade with their user.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create the four core tables."""
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(255), nullable=False),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "user_services",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("service", sa.String(32), nullable=False),
        sa.Column("access_token", sa.Text(), nullable=False),
        sa.Column("refresh_token", sa.Text(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("user_id", "service", name="uq_user_services_user_service"),
    )

    op.create_table(
        "playlists",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("provider", sa.String(32), nullable=False),
        sa.Column("provider_playlist_id", sa.String(255), nullable=False),
        sa.Column("title", sa.String(512), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("thumbnail_url", sa.String(1024), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "user_id",
            "provider",
            "provider_playlist_id",
            name="uq_playlists_user_provider_playlist",
        ),
    )
    op.create_index("ix_playlists_user_provider", "playlists", ["user_id", "provider"])

    op.create_table(
        "playlist_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "playlist_id",
            sa.Integer(),
            sa.ForeignKey("playlists.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("provider_item_id", sa.String(255), nullable=False),
        sa.Column("title", sa.String(512), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("channel_title", sa.String(512), nullable=True),
        sa.Column("channel_id", sa.String(255), nullable=True),
        sa.Column("thumbnail_url", sa.String(1024), nullable=True),
        sa.Column("position", sa.Integer(), nullable=True),
        sa.Column("added_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "playlist_id", "provider_item_id", name="uq_playlist_items_playlist_item"
        ),
    )
    op.create_index(
        "ix_playlist_items_position", "playlist_items", ["playlist_id", "position"]
    )


def downgrade() -> None:
    """Drop everything (children first)."""
    op.drop_index("ix_playlist_items_position", table_name="playlist_items")
    op.drop_table("playlist_items")
    op.drop_index("ix_playlists_user_provider", table_name="playlists")
    op.drop_table("playlists")
    op.drop_table("user_services")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
