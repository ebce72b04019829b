"""SQLAlchemy database models for the music catalog."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
    validates,
)

MIN_RATING = 0
MAX_RATING = 5
DEFAULT_TAG_COLOR = "#808080"


def clamp_rating(rating: Optional[int]) -> int:
    """Clamp a rating value to the supported range."""
    if rating is None:
        return MIN_RATING
    return max(MIN_RATING, min(MAX_RATING, int(rating)))


class SyncStatus(str, Enum):
    """Lifecycle status of a SyncRun."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Whether the status ends a run."""
        return self is not SyncStatus.IN_PROGRESS


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


track_tags = Table(
    "track_tags",
    Base.metadata,
    Column(
        "track_id",
        Integer,
        ForeignKey("tracks.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "tag_id",
        Integer,
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("added_at", DateTime, nullable=False, default=datetime.utcnow),
    Index("idx_track_tags_tag", "tag_id"),
)


class Track(Base):
    """One catalogued audio file."""

    __tablename__ = "tracks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Absolute file path, unique across the catalog
    path: Mapped[str] = mapped_column(Text, nullable=False, unique=True, index=True)

    # Display metadata (may be empty)
    title: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    artist: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    album: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Content-derived change detector, not unique (duplicate files allowed)
    fingerprint: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    rating: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    tags: Mapped[List["Tag"]] = relationship(
        "Tag", secondary=track_tags, back_populates="tracks"
    )

    __table_args__ = (
        Index("idx_tracks_artist", "artist"),
        Index("idx_tracks_album", "album"),
    )

    @validates("rating")
    def _validate_rating(self, key: str, value: Optional[int]) -> int:
        return clamp_rating(value)

    @validates("duration_ms")
    def _validate_duration(self, key: str, value: Optional[int]) -> int:
        return max(0, int(value or 0))

    def __repr__(self) -> str:
        """String representation of Track."""
        return f"<Track(id={self.id}, path='{self.path}', title='{self.title}')>"


class Tag(Base):
    """User-defined label that can be attached to tracks."""

    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    color: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DEFAULT_TAG_COLOR
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    tracks: Mapped[List["Track"]] = relationship(
        "Track", secondary=track_tags, back_populates="tags"
    )

    def __repr__(self) -> str:
        """String representation of Tag."""
        return f"<Tag(id={self.id}, name='{self.name}', color='{self.color}')>"


class Playlist(Base):
    """User-ordered list of catalogued tracks."""

    __tablename__ = "playlists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False, unique=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    playlist_tracks: Mapped[List["PlaylistTrack"]] = relationship(
        "PlaylistTrack",
        back_populates="playlist",
        cascade="all, delete-orphan",
        order_by="PlaylistTrack.position",
    )

    def __repr__(self) -> str:
        """String representation of Playlist."""
        return f"<Playlist(id={self.id}, name='{self.name}')>"


class PlaylistTrack(Base):
    """A track's membership of a playlist, with its position.

    Positions are 0-based and contiguous after every playlist edit. Deleting
    a track from the catalog drops its entries (database cascade) and may
    leave a gap until the playlist is next edited; order is unaffected.
    """

    __tablename__ = "playlist_tracks"

    playlist_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("playlists.id", ondelete="CASCADE"), primary_key=True
    )
    track_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tracks.id", ondelete="CASCADE"), primary_key=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    added_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    playlist: Mapped["Playlist"] = relationship(
        "Playlist", back_populates="playlist_tracks"
    )
    track: Mapped["Track"] = relationship("Track")

    __table_args__ = (
        Index("idx_playlist_tracks_position", "playlist_id", "position"),
        Index("idx_playlist_tracks_track", "track_id"),
    )

    def __repr__(self) -> str:
        """String representation of PlaylistTrack."""
        return (
            f"<PlaylistTrack(playlist_id={self.playlist_id}, "
            f"track_id={self.track_id}, position={self.position})>"
        )


class SyncRun(Base):
    """One execution of the reconciliation against one folder."""

    __tablename__ = "sync_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    folder_path: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=SyncStatus.IN_PROGRESS.value,
        index=True,
    )  # Enum: in_progress, completed, failed, cancelled

    # Counts
    added: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    removed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    started_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, index=True
    )
    finished_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    @property
    def is_finalized(self) -> bool:
        """Whether the run reached a terminal status."""
        return SyncStatus(self.status).is_terminal

    def __repr__(self) -> str:
        """String representation of SyncRun."""
        return (
            f"<SyncRun(id={self.id}, folder='{self.folder_path}', "
            f"status='{self.status}')>"
        )
