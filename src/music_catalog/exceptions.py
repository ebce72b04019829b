"""Exception hierarchy for the music catalog.

Per-file problems (``TransientFileError``) are recoverable and never escape a
sync run. ``FatalScanError`` aborts a run. ``AlreadyRunningError`` is raised
synchronously when a sync is requested while another one is in flight.
"""

from typing import Optional


class MusicCatalogError(Exception):
    """Base class for all catalog errors."""


class TransientFileError(MusicCatalogError):
    """A single file could not be read or parsed."""

    def __init__(self, path: str, message: str) -> None:
        """Initialize transient file error.

        Args:
            path: Path of the offending file
            message: Human readable reason
        """
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


class ExtractionError(TransientFileError):
    """Metadata could not be extracted from an audio file."""


class FatalScanError(MusicCatalogError):
    """The sync root is missing or inaccessible."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


class AlreadyRunningError(MusicCatalogError):
    """A sync was requested while another one is running."""

    def __init__(self, run_id: Optional[int], folder_path: str) -> None:
        """Initialize rejection.

        Args:
            run_id: SyncRun id of the in-flight run
            folder_path: Folder being synchronized by the in-flight run
        """
        super().__init__(
            f"Sync already running (run {run_id}, folder {folder_path})"
        )
        self.run_id = run_id
        self.folder_path = folder_path


class SyncCancelled(MusicCatalogError):
    """Cooperative cancellation was requested for the running sync."""


class SyncRunFinalizedError(MusicCatalogError):
    """A finalized SyncRun record cannot be changed."""

    def __init__(self, run_id: int, status: str) -> None:
        super().__init__(f"Sync run {run_id} already finalized as '{status}'")
        self.run_id = run_id
        self.status = status
