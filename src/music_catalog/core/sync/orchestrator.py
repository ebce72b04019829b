"""Sync orchestrator running one background library sync at a time.

The orchestrator owns a single worker thread. ``start()`` records a new
SyncRun, submits the run to the worker and returns a ``RunHandle``
immediately. While a run is in flight further ``start()`` calls are rejected
with ``AlreadyRunningError``.

Every run ends with exactly one RUN_COMPLETED event, which is handed to the
listener before the SyncRun is finalized and before the orchestrator becomes
idle again.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Optional, Tuple, Union

from ...config import AUDIO_EXTENSIONS
from ...database.models import SyncStatus
from ...database.service import DatabaseService, normalize_folder
from ...exceptions import AlreadyRunningError, FatalScanError
from ..filesystem.scanner import FolderScanner
from ..metadata.extractor import (
    Fingerprinter,
    MutagenMetadataExtractor,
    compute_fingerprint,
)
from .progress import Deliver, EventEmitter, SyncEventType, SyncListener
from .reconciler import SyncReconciler, SyncSummary

logger = logging.getLogger(__name__)


class RunHandle:
    """Handle on one submitted sync run."""

    def __init__(
        self,
        run_id: int,
        folder_path: str,
        future: "Future[SyncSummary]",
        cancel_event: threading.Event,
    ) -> None:
        self.run_id = run_id
        self.folder_path = folder_path
        self._future = future
        self._cancel_event = cancel_event

    def cancel(self) -> bool:
        """Request cooperative cancellation of this run.

        Returns:
            False if the run had already finished
        """
        if self._future.done():
            return False
        self._cancel_event.set()
        return True

    def done(self) -> bool:
        """Whether the run has reached a terminal status."""
        return self._future.done()

    def result(self, timeout: Optional[float] = None) -> SyncSummary:
        """Wait for the run and return its summary."""
        return self._future.result(timeout=timeout)

    def __repr__(self) -> str:
        """String representation of RunHandle."""
        state = "done" if self.done() else "running"
        return (
            f"<RunHandle(run_id={self.run_id}, folder='{self.folder_path}', "
            f"{state})>"
        )


class SyncOrchestrator:
    """Coordinates scanner, reconciler and store for background syncs.

    State machine: Idle -> Running -> (Completed | Failed | Cancelled) -> Idle.
    """

    def __init__(
        self,
        db_service: DatabaseService,
        extractor: Optional[MutagenMetadataExtractor] = None,
        fingerprinter: Optional[Fingerprinter] = None,
        supported_extensions: Tuple[str, ...] = AUDIO_EXTENSIONS,
        scanner_factory: Optional[Callable[..., FolderScanner]] = None,
    ) -> None:
        """Initialize sync orchestrator.

        Args:
            db_service: Catalog store
            extractor: Metadata extractor (mutagen based by default)
            fingerprinter: Content fingerprint function (SHA-256 by default)
            supported_extensions: Audio extensions to scan for
            scanner_factory: Builds the scanner for a run (FolderScanner by default)
        """
        self.db_service = db_service
        self.supported_extensions = supported_extensions
        self.scanner_factory = scanner_factory or FolderScanner
        self.reconciler = SyncReconciler(
            db_service,
            extractor or MutagenMetadataExtractor(),
            fingerprinter or compute_fingerprint,
        )

        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="library-sync"
        )
        self._lock = threading.Lock()
        self._running = False
        self._closed = False
        self._current: Optional[RunHandle] = None
        self._cancel_event: Optional[threading.Event] = None

    def is_syncing(self) -> bool:
        """Whether a sync run is in flight."""
        with self._lock:
            return self._running

    @property
    def current_run(self) -> Optional[RunHandle]:
        """Handle of the in-flight run, if any."""
        with self._lock:
            return self._current if self._running else None

    def start(
        self,
        folder_path: Union[str, Path],
        listener: Optional[SyncListener] = None,
        deliver: Optional[Deliver] = None,
    ) -> RunHandle:
        """Start a background sync of ``folder_path``.

        Args:
            folder_path: Folder to synchronize
            listener: Receives the run's SyncEvents
            deliver: Runs each listener callback (inline by default)

        Returns:
            Handle of the new run

        Raises:
            AlreadyRunningError: If another sync is in flight
        """
        folder = normalize_folder(folder_path)

        # Held until the handle is stored: a concurrent start() or cancel()
        # waits here and then sees the new run, never a half-started one
        with self._lock:
            current = self._current
            if self._running and current is not None:
                raise AlreadyRunningError(current.run_id, current.folder_path)
            if self._closed:
                raise RuntimeError("Sync orchestrator has been shut down")

            sync_run = self.db_service.create_sync_run(folder)
            cancel_event = threading.Event()
            emitter = EventEmitter(listener, deliver, run_id=sync_run.id)
            try:
                future = self._executor.submit(
                    self._run, sync_run.id, folder, emitter, cancel_event
                )
            except RuntimeError as e:
                self._abandon_run(sync_run.id, str(e))
                raise

            handle = RunHandle(sync_run.id, folder, future, cancel_event)
            self._current = handle
            self._cancel_event = cancel_event
            self._running = True

        logger.info("Sync run %s started for %s", sync_run.id, folder)
        return handle

    def sync_folder(
        self,
        folder_path: Union[str, Path],
        listener: Optional[SyncListener] = None,
    ) -> SyncSummary:
        """Synchronize ``folder_path`` and wait for the result."""
        return self.start(folder_path, listener).result()

    def cancel(self) -> bool:
        """Request cancellation of the in-flight run without waiting.

        Returns:
            True if a running sync was signalled
        """
        with self._lock:
            if not self._running or self._cancel_event is None:
                return False
            self._cancel_event.set()
        logger.info("Cancellation requested for current sync run")
        return True

    def shutdown(self, wait: bool = True) -> None:
        """Cancel any run and stop the worker thread.

        Later ``start()`` calls raise RuntimeError without recording a run.
        """
        with self._lock:
            self._closed = True
        self.cancel()
        self._executor.shutdown(wait=wait)
        logger.debug("Sync orchestrator shut down")

    def _abandon_run(self, run_id: int, message: str) -> None:
        """Mark a recorded run that never reached the worker as failed."""
        logger.error("Sync run %s could not be submitted: %s", run_id, message)
        try:
            self.db_service.finalize_sync_run(
                run_id, SyncStatus.FAILED, error_message=message
            )
        except Exception:
            logger.exception("Failed to finalize abandoned sync run %s", run_id)

    def _run(
        self,
        run_id: int,
        folder: str,
        emit: EventEmitter,
        cancel_event: threading.Event,
    ) -> SyncSummary:
        """Execute one sync run on the worker thread."""
        summary = SyncSummary(folder_path=folder, run_id=run_id)

        started = False

        def on_scan_error(path: str, message: str) -> None:
            summary.add_error(path, message)
            emit(SyncEventType.FILE_ERROR, path=path, message=message)

        try:
            scanner = self.scanner_factory(
                folder, self.supported_extensions, on_error=on_scan_error
            )
            total = scanner.count()
            started = True
            emit(SyncEventType.RUN_STARTED, total=total)
            self.reconciler.reconcile(
                folder,
                scanner,
                emit,
                cancel_event=cancel_event,
                total=total,
                summary=summary,
            )
        except FatalScanError as e:
            logger.error("Sync run %s failed: %s", run_id, e)
            if not started:
                emit(SyncEventType.RUN_STARTED, total=0)
            self._fail(summary, emit, e.path, e.message)
        except Exception as e:
            logger.exception("Sync run %s failed", run_id)
            if not started:
                emit(SyncEventType.RUN_STARTED, total=0)
            self._fail(summary, emit, folder, str(e) or type(e).__name__)

        emit(SyncEventType.RUN_COMPLETED, summary=summary)
        try:
            self.db_service.finalize_sync_run(
                run_id,
                summary.status,
                added=summary.added,
                updated=summary.updated,
                removed=summary.removed,
                error_count=summary.error_count,
                error_message=summary.error_message,
            )
        except Exception:
            logger.exception("Failed to finalize sync run %s", run_id)
        finally:
            with self._lock:
                self._running = False
                self._current = None
                self._cancel_event = None

        logger.info(
            "Sync run %s %s: added=%d, updated=%d, removed=%d, skipped=%d, errors=%d",
            run_id,
            summary.status.value,
            summary.added,
            summary.updated,
            summary.removed,
            summary.skipped,
            summary.error_count,
        )
        return summary

    def _fail(
        self, summary: SyncSummary, emit: EventEmitter, path: str, message: str
    ) -> None:
        summary.status = SyncStatus.FAILED
        summary.error_message = message
        summary.add_error(path, message)
        emit(SyncEventType.FILE_ERROR, path=path, message=message)
