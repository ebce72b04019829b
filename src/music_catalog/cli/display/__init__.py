"""CLI display and formatting utilities."""

from .formatters import (
    display_playlists,
    display_status,
    display_sync_history,
    display_sync_summary,
    display_tags,
    display_tracks,
    format_duration,
    format_rating,
)
from .progress import RichSyncReporter

__all__ = [
    "RichSyncReporter",
    "display_playlists",
    "display_status",
    "display_sync_history",
    "display_sync_summary",
    "display_tags",
    "display_tracks",
    "format_duration",
    "format_rating",
]
