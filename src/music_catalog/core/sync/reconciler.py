"""Reconciles a scanned folder against the catalog store.

For every scanned file the reconciler decides between insert (new path),
update (known path with a different fingerprint) and skip (unchanged). Catalog
entries under the folder that were not seen during the scan are removed once
the scan has finished.
"""

import logging
import os
import threading
import time
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ...database.models import SyncStatus
from ...database.service import DatabaseService, normalize_folder
from ...exceptions import SyncCancelled, TransientFileError
from ..metadata.extractor import Fingerprinter, MutagenMetadataExtractor
from .progress import EventEmitter, SyncEventType

logger = logging.getLogger(__name__)


@dataclass
class SyncError:
    """A per-path problem encountered during a run."""

    path: str
    message: str


@dataclass
class SyncSummary:
    """Outcome of one sync run."""

    folder_path: str = ""
    run_id: Optional[int] = None
    added: int = 0
    updated: int = 0
    removed: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[SyncError] = dataclass_field(default_factory=list)
    total_files: int = 0
    duration_ms: int = 0
    status: SyncStatus = SyncStatus.IN_PROGRESS
    error_message: Optional[str] = None

    @property
    def error_count(self) -> int:
        """Number of per-path errors."""
        return len(self.errors)

    @property
    def total_processed(self) -> int:
        """Number of scanned files that were handled (including failures)."""
        return self.added + self.updated + self.skipped + self.failed

    def add_error(self, path: str, message: str) -> None:
        """Record a per-path error."""
        self.errors.append(SyncError(path=path, message=message))

    def to_dict(self) -> Dict[str, Any]:
        """Convert summary to dictionary format."""
        return {
            "run_id": self.run_id,
            "folder_path": self.folder_path,
            "status": self.status.value,
            "added": self.added,
            "updated": self.updated,
            "removed": self.removed,
            "skipped": self.skipped,
            "failed": self.failed,
            "total_files": self.total_files,
            "duration_ms": self.duration_ms,
            "error_count": self.error_count,
            "errors": [
                {"path": e.path, "message": e.message} for e in self.errors[:10]
            ],
            "error_message": self.error_message,
        }


class SyncReconciler:
    """Applies the difference between a folder scan and the catalog."""

    def __init__(
        self,
        db_service: DatabaseService,
        extractor: MutagenMetadataExtractor,
        fingerprinter: Fingerprinter,
    ) -> None:
        """Initialize reconciler.

        Args:
            db_service: Catalog store
            extractor: Object with ``extract(path) -> ExtractedMetadata``
            fingerprinter: Callable computing a file's content fingerprint
        """
        self.db_service = db_service
        self.extractor = extractor
        self.fingerprinter = fingerprinter

    def reconcile(
        self,
        folder: str,
        paths: Iterable[str],
        emit: EventEmitter,
        cancel_event: Optional[threading.Event] = None,
        total: int = 0,
        summary: Optional[SyncSummary] = None,
    ) -> SyncSummary:
        """Reconcile scanned paths with the catalog entries under ``folder``.

        Store failures propagate to the caller; per-file errors are recorded
        on the summary and reported as FILE_ERROR events.

        Args:
            folder: Root folder of the scan
            paths: Absolute paths of the files found, in scan order
            emit: Event emitter for progress reporting
            cancel_event: Checked between files; stops the run when set
            total: Expected number of files, for progress reporting
            summary: Summary to fill in (a new one is created if omitted)

        Returns:
            The filled-in summary with status completed or cancelled
        """
        folder = normalize_folder(folder)
        if summary is None:
            summary = SyncSummary(folder_path=folder)
        summary.total_files = total
        started = time.monotonic()

        lookup: Dict[str, Tuple[int, str]] = {
            track.path: (track.id, track.fingerprint)
            for track in self.db_service.list_tracks_under_folder(folder)
        }
        logger.info(
            "Reconciling %s: %d catalogued tracks, ~%d files on disk",
            folder,
            len(lookup),
            total,
        )

        try:
            index = 0
            for path in paths:
                self._check_cancelled(cancel_event)
                index += 1
                self._process_path(path, lookup, emit, summary)
                summary.total_files = max(summary.total_files, index)
                emit(
                    SyncEventType.FILE_PROCESSED,
                    path=path,
                    index=index,
                    total=summary.total_files,
                )

            self._check_cancelled(cancel_event)
            self._remove_missing(lookup, emit, summary, cancel_event)
            summary.status = SyncStatus.COMPLETED
        except SyncCancelled:
            logger.info("Sync of %s cancelled after %d files", folder, index)
            summary.status = SyncStatus.CANCELLED
        finally:
            summary.duration_ms = int((time.monotonic() - started) * 1000)

        return summary

    def _check_cancelled(self, cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise SyncCancelled()

    def _process_path(
        self,
        path: str,
        lookup: Dict[str, Tuple[int, str]],
        emit: EventEmitter,
        summary: SyncSummary,
    ) -> None:
        """Insert, update or skip one scanned file."""
        # Seen paths leave the lookup even if they fail below
        known = lookup.pop(path, None)

        try:
            fingerprint = self.fingerprinter(path)

            if known is None:
                metadata = self.extractor.extract(path)
                track_data = metadata.to_dict()
                track_data.update({"path": path, "fingerprint": fingerprint})
                self.db_service.insert_track(track_data)
                summary.added += 1
                logger.debug("Added: %s", path)
                emit(SyncEventType.FILE_ADDED, path=path)
                return

            track_id, old_fingerprint = known
            if old_fingerprint == fingerprint:
                summary.skipped += 1
                logger.debug("Unchanged: %s", path)
                return

            metadata = self.extractor.extract(path)
            track_data = metadata.to_dict()
            track_data["fingerprint"] = fingerprint
            self.db_service.update_track(track_id, track_data)
            summary.updated += 1
            logger.debug("Updated: %s", path)
            emit(SyncEventType.FILE_UPDATED, path=path)

        except TransientFileError as e:
            logger.warning("Skipping %s: %s", path, e.message)
            summary.failed += 1
            summary.add_error(path, e.message)
            emit(SyncEventType.FILE_ERROR, path=path, message=e.message)

    def _remove_missing(
        self,
        lookup: Dict[str, Tuple[int, str]],
        emit: EventEmitter,
        summary: SyncSummary,
        cancel_event: Optional[threading.Event],
    ) -> None:
        """Delete catalog entries whose files were not seen in the scan.

        Entries under a path the scan could not read are kept.
        """
        unreadable = [error.path for error in summary.errors]

        for path, (track_id, _) in lookup.items():
            self._check_cancelled(cancel_event)
            if any(_is_within(path, bad) for bad in unreadable):
                logger.debug("Keeping %s: location could not be scanned", path)
                continue
            if self.db_service.delete_track(track_id):
                summary.removed += 1
                logger.debug("Removed: %s", path)
                emit(SyncEventType.FILE_REMOVED, path=path)


def _is_within(path: str, parent: str) -> bool:
    return path == parent or path.startswith(parent.rstrip(os.sep) + os.sep)
