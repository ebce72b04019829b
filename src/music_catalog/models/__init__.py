"""Models for the music catalog application."""

from .models import LibraryTrack

__all__ = ["LibraryTrack"]
