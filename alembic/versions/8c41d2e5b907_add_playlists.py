"""add_playlists

Revision ID: 8c41d2e5b907
Revises: 3f2a9c1d7e40
Create Date: 2026-10-19 16:03:27.518844

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "8c41d2e5b907"
down_revision: Union[str, None] = "3f2a9c1d7e40"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "playlists",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=500), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "playlist_tracks",
        sa.Column("playlist_id", sa.Integer(), nullable=False),
        sa.Column("track_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("added_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["playlist_id"], ["playlists.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["track_id"], ["tracks.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("playlist_id", "track_id"),
    )
    op.create_index(
        "idx_playlist_tracks_position",
        "playlist_tracks",
        ["playlist_id", "position"],
    )
    op.create_index("idx_playlist_tracks_track", "playlist_tracks", ["track_id"])


def downgrade() -> None:
    op.drop_index("idx_playlist_tracks_track", table_name="playlist_tracks")
    op.drop_index("idx_playlist_tracks_position", table_name="playlist_tracks")
    op.drop_table("playlist_tracks")
    op.drop_table("playlists")
