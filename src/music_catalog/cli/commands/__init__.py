"""CLI command modules."""

from .database import (
    history_command,
    migrate_command,
    prune_history_command,
    status_command,
)
from .library import list_command, rate_command
from .playlists import playlists
from .sync import sync_command
from .tags import tags

__all__ = [
    "history_command",
    "list_command",
    "migrate_command",
    "playlists",
    "prune_history_command",
    "rate_command",
    "status_command",
    "sync_command",
    "tags",
]
