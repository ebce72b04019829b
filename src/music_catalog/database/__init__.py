"""Database package for the catalog store.

Contains the SQLAlchemy models and the DatabaseService. Sync logic lives in
core/ and talks to the store only through DatabaseService.
"""

from .models import (
    DEFAULT_TAG_COLOR,
    MAX_RATING,
    MIN_RATING,
    Base,
    Playlist,
    PlaylistTrack,
    SyncRun,
    SyncStatus,
    Tag,
    Track,
    clamp_rating,
    track_tags,
)
from .service import DatabaseService, folder_prefix, normalize_folder

__all__ = [
    # Models
    "Base",
    "Track",
    "Tag",
    "SyncRun",
    "Playlist",
    "PlaylistTrack",
    "track_tags",
    # Status enums
    "SyncStatus",
    # Rating helpers
    "MIN_RATING",
    "MAX_RATING",
    "DEFAULT_TAG_COLOR",
    "clamp_rating",
    # Database service
    "DatabaseService",
    "folder_prefix",
    "normalize_folder",
]
