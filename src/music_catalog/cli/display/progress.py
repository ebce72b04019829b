"""Rich progress bar listener for sync runs."""

import os
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from ...core.sync.progress import SyncProgressListener
from ...core.sync.reconciler import SyncSummary


class RichSyncReporter(SyncProgressListener):
    """Renders sync events as a rich progress bar.

    Must be fed from the thread that owns the console (the CLI drains an
    EventChannel on the main thread).
    """

    def __init__(self, console: Console, verbose: bool = False) -> None:
        self.console = console
        self.verbose = verbose
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        )
        self._task: Optional[TaskID] = None

    def __enter__(self) -> "RichSyncReporter":
        self.progress.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.progress.stop()

    def on_run_started(self, total: int) -> None:
        self._task = self.progress.add_task("Scanning library...", total=total)

    def on_file_processed(self, index: int, total: int, path: str) -> None:
        if self._task is None:
            return
        self.progress.update(
            self._task,
            completed=index,
            total=total,
            description=escape(os.path.basename(path)),
        )

    def on_file_added(self, path: str) -> None:
        if self.verbose:
            self.progress.console.print(f"  [green]+[/green] {escape(path)}")

    def on_file_updated(self, path: str) -> None:
        if self.verbose:
            self.progress.console.print(f"  [yellow]~[/yellow] {escape(path)}")

    def on_file_removed(self, path: str) -> None:
        if self.verbose:
            self.progress.console.print(f"  [red]-[/red] {escape(path)}")

    def on_file_error(self, path: str, message: str) -> None:
        self.progress.console.print(
            f"  [red]✗[/red] {escape(path)}: [dim]{escape(message)}[/dim]"
        )

    def on_run_completed(self, summary: Optional[SyncSummary]) -> None:
        if self._task is not None:
            self.progress.update(self._task, description="Done")
