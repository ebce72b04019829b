"""Composition root wiring the store, sync engine and library together."""

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from ..config import Config
from ..core.library.filters import FilterState, SortState, apply_filter_sort
from ..core.library.library import LibraryChangeCallback, MusicLibrary
from ..core.metadata.extractor import Fingerprinter, MutagenMetadataExtractor
from ..core.sync.orchestrator import RunHandle, SyncOrchestrator
from ..core.sync.progress import Deliver, SyncListener
from ..core.sync.reconciler import SyncSummary
from ..database.service import DatabaseService
from ..models.models import LibraryTrack

logger = logging.getLogger(__name__)


class CatalogService:
    """Entry point used by the presentation layer.

    Builds exactly one DatabaseService, SyncOrchestrator and MusicLibrary and
    shares them by reference.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        db_service: Optional[DatabaseService] = None,
        extractor: Optional[MutagenMetadataExtractor] = None,
        fingerprinter: Optional[Fingerprinter] = None,
        on_library_change: Optional[LibraryChangeCallback] = None,
    ) -> None:
        """Initialize catalog service.

        Args:
            config: Application configuration (loaded from environment if None)
            db_service: Existing store to use instead of opening config's database
            extractor: Metadata extractor override
            fingerprinter: Fingerprint function override
            on_library_change: Called with visible tracks after library changes
        """
        self.config = config or Config()
        self.db_service = db_service or DatabaseService(
            db_path=self.config.database_path
        )
        self.orchestrator = SyncOrchestrator(
            self.db_service,
            extractor=extractor,
            fingerprinter=fingerprinter,
            supported_extensions=self.config.audio_extensions,
        )
        self.library = MusicLibrary(self.db_service, on_change=on_library_change)

    # Sync

    def start_sync(
        self,
        folder: Optional[Union[str, Path]] = None,
        listener: Optional[SyncListener] = None,
        deliver: Optional[Deliver] = None,
    ) -> RunHandle:
        """Start a background sync (defaults to the configured music folder).

        Raises:
            AlreadyRunningError: If a sync is already running
        """
        target = folder if folder is not None else self.config.music_directory
        return self.orchestrator.start(target, listener=listener, deliver=deliver)

    def sync(
        self,
        folder: Optional[Union[str, Path]] = None,
        listener: Optional[SyncListener] = None,
    ) -> SyncSummary:
        """Run a sync, wait for it and refresh the library snapshot."""
        summary = self.start_sync(folder, listener).result()
        self.library.refresh()
        return summary

    def cancel_sync(self) -> bool:
        return self.orchestrator.cancel()

    def is_syncing(self) -> bool:
        return self.orchestrator.is_syncing()

    # Queries

    def apply_filter_sort(
        self,
        tracks: Iterable[LibraryTrack],
        filter_state: Optional[FilterState] = None,
        sort_state: Optional[SortState] = None,
    ) -> List[LibraryTrack]:
        return apply_filter_sort(tracks, filter_state, sort_state)

    def load_library(self) -> List[LibraryTrack]:
        """Refresh the snapshot and return the visible tracks."""
        return self.library.refresh()

    # Maintenance

    def prune_sync_history(self, days: Optional[int] = None) -> int:
        """Delete finalized sync runs older than the retention period.

        Args:
            days: Retention in days (configured value when None)

        Returns:
            Number of deleted runs
        """
        retention = self.config.sync_run_retention_days if days is None else days
        cutoff = datetime.now(timezone.utc) - timedelta(days=retention)
        # Stored timestamps are naive UTC
        return self.db_service.delete_sync_runs_older_than(cutoff.replace(tzinfo=None))

    def get_status(self) -> Dict[str, Any]:
        """Collect store statistics plus the last sync run."""
        stats = self.db_service.get_statistics()
        last_run = self.db_service.get_last_sync_run()
        stats["syncing"] = self.is_syncing()
        stats["last_sync"] = (
            {
                "id": last_run.id,
                "folder_path": last_run.folder_path,
                "status": last_run.status,
                "started_at": last_run.started_at,
                "finished_at": last_run.finished_at,
            }
            if last_run
            else None
        )
        return stats

    def shutdown(self, wait: bool = True) -> None:
        """Stop the sync worker and close the store."""
        self.orchestrator.shutdown(wait=wait)
        self.db_service.close()
