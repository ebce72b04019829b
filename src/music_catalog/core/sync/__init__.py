"""Library synchronization engine.

- SyncOrchestrator: single-run discipline, background execution, cancellation
- SyncReconciler: diffs a folder scan against the catalog store
- progress: SyncEvent stream and listener helpers
"""

from .orchestrator import RunHandle, SyncOrchestrator
from .progress import (
    Deliver,
    EventChannel,
    EventEmitter,
    SyncEvent,
    SyncEventType,
    SyncListener,
    SyncProgressListener,
    call_directly,
)
from .reconciler import SyncError, SyncReconciler, SyncSummary

__all__ = [
    # Orchestration
    "SyncOrchestrator",
    "RunHandle",
    # Reconciliation
    "SyncReconciler",
    "SyncSummary",
    "SyncError",
    # Progress events
    "SyncEvent",
    "SyncEventType",
    "SyncListener",
    "SyncProgressListener",
    "EventChannel",
    "EventEmitter",
    "Deliver",
    "call_directly",
]
