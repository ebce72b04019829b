"""Progress events and listeners for sync runs.

A sync run reports progress as a stream of ``SyncEvent`` objects. A listener
is any callable taking one event. Events are handed to listeners through a
``deliver`` function, which lets the caller choose the thread listeners run
on; the default runs them inline on the sync thread.
"""

import logging
import queue
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterator, List, Optional

if TYPE_CHECKING:
    from .reconciler import SyncSummary

logger = logging.getLogger(__name__)


class SyncEventType(str, Enum):
    """Kinds of sync progress events."""

    RUN_STARTED = "run_started"
    FILE_PROCESSED = "file_processed"
    FILE_ADDED = "file_added"
    FILE_UPDATED = "file_updated"
    FILE_REMOVED = "file_removed"
    FILE_ERROR = "file_error"
    RUN_COMPLETED = "run_completed"


@dataclass(frozen=True)
class SyncEvent:
    """One progress notification from a sync run."""

    type: SyncEventType
    run_id: Optional[int] = None
    path: Optional[str] = None
    index: int = 0
    total: int = 0
    message: str = ""
    summary: Optional["SyncSummary"] = None

    @property
    def is_terminal(self) -> bool:
        """Whether this is the final event of a run."""
        return self.type is SyncEventType.RUN_COMPLETED

    def __str__(self) -> str:
        """String representation of event."""
        parts = [f"[{self.type.value}]"]
        if self.type is SyncEventType.FILE_PROCESSED:
            parts.append(f"{self.index}/{self.total}")
        if self.path:
            parts.append(self.path)
        if self.message:
            parts.append(f"- {self.message}")
        if self.summary is not None:
            parts.append(f"({self.summary.status.value})")
        return " ".join(parts)


# Type alias for listener callables
SyncListener = Callable[[SyncEvent], None]

# Type alias for the "deliver to listener" operation
Deliver = Callable[[Callable[[], None]], None]


def call_directly(callback: Callable[[], None]) -> None:
    """Deliver a listener callback inline on the calling thread."""
    callback()


class EventEmitter:
    """Hands events to one listener, isolating the run from its failures."""

    def __init__(
        self,
        listener: Optional[SyncListener] = None,
        deliver: Optional[Deliver] = None,
        run_id: Optional[int] = None,
    ) -> None:
        self.listener = listener
        self.deliver = deliver or call_directly
        self.run_id = run_id

    def emit(
        self,
        event_type: SyncEventType,
        path: Optional[str] = None,
        index: int = 0,
        total: int = 0,
        message: str = "",
        summary: Optional["SyncSummary"] = None,
    ) -> None:
        """Build an event and deliver it to the listener."""
        event = SyncEvent(
            type=event_type,
            run_id=self.run_id,
            path=path,
            index=index,
            total=total,
            message=message,
            summary=summary,
        )
        logger.debug("Sync event: %s", event)
        if self.listener is None:
            return

        listener = self.listener

        def _invoke() -> None:
            try:
                listener(event)
            except Exception as e:
                logger.error("Error in sync listener for %s: %s", event.type.value, e)

        try:
            self.deliver(_invoke)
        except Exception as e:
            logger.error("Failed to deliver %s event: %s", event.type.value, e)

    __call__ = emit


class SyncProgressListener:
    """Listener base class with one hook method per event type.

    Subclasses override the hooks they care about; the rest do nothing.
    """

    def __call__(self, event: SyncEvent) -> None:
        """Dispatch an event to the matching hook."""
        if event.type is SyncEventType.RUN_STARTED:
            self.on_run_started(event.total)
        elif event.type is SyncEventType.FILE_PROCESSED:
            self.on_file_processed(event.index, event.total, event.path or "")
        elif event.type is SyncEventType.FILE_ADDED:
            self.on_file_added(event.path or "")
        elif event.type is SyncEventType.FILE_UPDATED:
            self.on_file_updated(event.path or "")
        elif event.type is SyncEventType.FILE_REMOVED:
            self.on_file_removed(event.path or "")
        elif event.type is SyncEventType.FILE_ERROR:
            self.on_file_error(event.path or "", event.message)
        elif event.type is SyncEventType.RUN_COMPLETED:
            self.on_run_completed(event.summary)

    def on_run_started(self, total: int) -> None:
        pass

    def on_file_processed(self, index: int, total: int, path: str) -> None:
        pass

    def on_file_added(self, path: str) -> None:
        pass

    def on_file_updated(self, path: str) -> None:
        pass

    def on_file_removed(self, path: str) -> None:
        pass

    def on_file_error(self, path: str, message: str) -> None:
        pass

    def on_run_completed(self, summary: Optional["SyncSummary"]) -> None:
        pass


class EventChannel:
    """Queue-backed listener drained by a consumer on another thread.

    The sync thread only enqueues, so a slow consumer never blocks the run.
    """

    def __init__(self) -> None:
        self._queue: "queue.Queue[SyncEvent]" = queue.Queue()
        self.closed = False

    def __call__(self, event: SyncEvent) -> None:
        """Enqueue an event."""
        self._queue.put(event)

    def get(self, timeout: Optional[float] = None) -> Optional[SyncEvent]:
        """Get the next event, or None if none arrives within ``timeout``."""
        try:
            event = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if event.is_terminal:
            self.closed = True
        return event

    def iter_events(self, timeout: Optional[float] = None) -> Iterator[SyncEvent]:
        """Yield events until the terminal event has been yielded.

        Args:
            timeout: Maximum wait for each event; iteration stops early when
                it expires
        """
        while not self.closed:
            event = self.get(timeout=timeout)
            if event is None:
                return
            yield event

    def drain(self, timeout: Optional[float] = None) -> List[SyncEvent]:
        """Collect events up to and including the terminal event."""
        return list(self.iter_events(timeout=timeout))
