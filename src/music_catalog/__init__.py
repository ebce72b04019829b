"""Music Catalog.

Keeps a local catalog of audio tracks in sync with a music folder and answers
filtered, sorted and searchable views over it.
"""

__version__ = "1.0.0"
__author__ = "Anton"
__email__ = ""

from .config import Config
from .core.library import FilterState, SortColumn, SortState, TriState
from .core.sync import SyncEvent, SyncEventType, SyncSummary
from .exceptions import (
    AlreadyRunningError,
    ExtractionError,
    FatalScanError,
    MusicCatalogError,
    TransientFileError,
)
from .models import LibraryTrack
from .services import CatalogService

__all__ = [
    "Config",
    "CatalogService",
    "LibraryTrack",
    "FilterState",
    "SortState",
    "SortColumn",
    "TriState",
    "SyncEvent",
    "SyncEventType",
    "SyncSummary",
    "MusicCatalogError",
    "TransientFileError",
    "ExtractionError",
    "FatalScanError",
    "AlreadyRunningError",
]
