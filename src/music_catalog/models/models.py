"""Data models for the in-memory catalog snapshot."""

from typing import Any, FrozenSet, Iterable, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from ..database.models import MAX_RATING, MIN_RATING, Track


class LibraryTrack(BaseModel):
    """Read-only view of a catalogued track plus its tag and playlist ids."""

    id: int
    path: str
    title: str = ""
    artist: str = ""
    album: str = ""
    duration_ms: int = 0
    rating: int = MIN_RATING
    tag_ids: FrozenSet[int] = frozenset()
    playlist_ids: FrozenSet[int] = frozenset()

    model_config = ConfigDict(frozen=True)

    @field_validator("rating", mode="before")
    @classmethod
    def clamp_rating(cls, v: Any) -> int:
        """Clamp rating into the supported range."""
        if v is None:
            return MIN_RATING
        return max(MIN_RATING, min(MAX_RATING, int(v)))

    @field_validator("duration_ms", mode="before")
    @classmethod
    def validate_duration(cls, v: Any) -> int:
        """Durations are never negative."""
        return max(0, int(v or 0))

    @field_validator("title", "artist", "album", mode="before")
    @classmethod
    def validate_text(cls, v: Optional[str]) -> str:
        """Missing text fields become empty strings."""
        return v or ""

    @property
    def duration_formatted(self) -> str:
        """Get formatted duration string (m:ss)."""
        total_seconds = self.duration_ms // 1000
        minutes = total_seconds // 60
        seconds = total_seconds % 60
        return f"{minutes}:{seconds:02d}"

    def has_tag(self, tag_id: int) -> bool:
        """Check whether the track carries a tag."""
        return tag_id in self.tag_ids

    @classmethod
    def from_track(
        cls,
        track: Track,
        tag_ids: Optional[Iterable[int]] = None,
        playlist_ids: Optional[Iterable[int]] = None,
    ) -> "LibraryTrack":
        """Build a snapshot entry from a database Track row."""
        return cls(
            id=track.id,
            path=track.path,
            title=track.title,
            artist=track.artist,
            album=track.album,
            duration_ms=track.duration_ms,
            rating=track.rating,
            tag_ids=frozenset(tag_ids or ()),
            playlist_ids=frozenset(playlist_ids or ()),
        )

    def __str__(self) -> str:
        """String representation of track."""
        if self.artist:
            return f"{self.artist} - {self.title}"
        return self.title
