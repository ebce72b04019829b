"""Display formatters and UI helpers for CLI."""

import logging
from typing import Any, Dict, List, Mapping, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ...core.library.filters import SortDirection, SortState
from ...core.sync.reconciler import SyncSummary
from ...database.models import Playlist, SyncRun, SyncStatus, Tag
from ...models.models import LibraryTrack

console = Console()
logger = logging.getLogger(__name__)

STATUS_STYLES = {
    SyncStatus.COMPLETED.value: "green",
    SyncStatus.CANCELLED.value: "yellow",
    SyncStatus.FAILED.value: "red",
    SyncStatus.IN_PROGRESS.value: "cyan",
}


def format_duration(duration_ms: int) -> str:
    """Format milliseconds as h:mm:ss or m:ss."""
    total_seconds = max(0, duration_ms) // 1000
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def format_rating(rating: int) -> str:
    return "★" * rating + "☆" * (5 - rating)


def display_sync_summary(summary: SyncSummary) -> None:
    """Display the outcome of a sync run.

    Args:
        summary: Summary returned by the sync run
    """
    status = summary.status.value
    style = STATUS_STYLES.get(status, "white")
    if summary.status is SyncStatus.COMPLETED:
        console.print("\n[bold green]✅ Sync completed successfully![/bold green]\n")
    elif summary.status is SyncStatus.CANCELLED:
        console.print("\n[bold yellow]⚠️  Sync cancelled[/bold yellow]\n")
    else:
        message = escape(summary.error_message or "unknown error")
        console.print(f"\n[bold red]❌ Sync failed: {message}[/bold red]\n")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Metric", style="cyan", width=20)
    table.add_column("Value", style="green", justify="right")

    table.add_row("Folder", escape(summary.folder_path))
    table.add_row("Status", f"[{style}]{status}[/{style}]")
    table.add_row("Files Scanned", str(summary.total_files))
    table.add_row("Added", str(summary.added))
    table.add_row("Updated", str(summary.updated))
    table.add_row("Removed", str(summary.removed))
    table.add_row("Unchanged", str(summary.skipped))
    table.add_row("Errors", str(summary.error_count))
    table.add_row("Duration", f"{summary.duration_ms / 1000:.1f}s")

    console.print(table)

    if summary.errors:
        console.print(
            f"\n[yellow]⚠️  {summary.error_count} error(s) occurred:[/yellow]"
        )
        for error in summary.errors[:10]:
            console.print(f"  • {escape(error.path)}: {escape(error.message)}")
        if summary.error_count > 10:
            console.print(f"  ... and {summary.error_count - 10} more")
    console.print()


def display_tracks(
    tracks: List[LibraryTrack],
    tag_names: Mapping[int, str],
    sort_state: Optional[SortState] = None,
    limit: Optional[int] = None,
    numbered: bool = False,
) -> None:
    """Display tracks as a table.

    Args:
        tracks: Tracks in display order
        tag_names: Tag id to name mapping
        sort_state: Active sort, marked in the column header
        limit: Maximum number of rows to show
        numbered: Prefix each row with its 1-based position
    """
    if not tracks:
        console.print("[yellow]No tracks match the current filters[/yellow]")
        return

    def header(name: str) -> str:
        column = sort_state.column if sort_state else None
        if column is not None and column.value == name.lower():
            arrow = "▲" if sort_state.direction is SortDirection.ASCENDING else "▼"
            return f"{name} {arrow}"
        return name

    table = Table(show_header=True, header_style="bold magenta")
    if numbered:
        table.add_column("#", style="dim", justify="right")
    table.add_column("ID", style="dim", justify="right")
    table.add_column(header("Title"), style="cyan")
    table.add_column(header("Artist"))
    table.add_column(header("Album"))
    table.add_column(header("Duration"), justify="right")
    table.add_column("Rating", style="yellow")
    table.add_column("Tags", style="green")

    shown = tracks[:limit] if limit else tracks
    for number, track in enumerate(shown, start=1):
        tags = ", ".join(
            sorted(tag_names.get(tag_id, str(tag_id)) for tag_id in track.tag_ids)
        )
        cells = [str(number)] if numbered else []
        table.add_row(
            *cells,
            str(track.id),
            escape(track.title),
            escape(track.artist),
            escape(track.album),
            track.duration_formatted,
            format_rating(track.rating),
            escape(tags),
        )

    console.print(table)
    if len(shown) < len(tracks):
        console.print(f"[dim]Showing {len(shown)} of {len(tracks)} tracks[/dim]")
    else:
        console.print(f"[dim]{len(tracks)} track(s)[/dim]")


def display_tags(tags: List[Tag], counts: Optional[Dict[int, int]] = None) -> None:
    """Display tags with their track counts."""
    if not tags:
        console.print("[yellow]No tags defined[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Color")
    table.add_column("Tracks", style="green", justify="right")

    for tag in tags:
        table.add_row(
            str(tag.id),
            escape(tag.name),
            f"[{tag.color}]{tag.color}[/]" if tag.color.startswith("#") else tag.color,
            str((counts or {}).get(tag.id, 0)),
        )
    console.print(table)


def display_playlists(
    playlists: List[Playlist], counts: Optional[Dict[int, int]] = None
) -> None:
    """Display playlists with their track counts."""
    if not playlists:
        console.print("[yellow]No playlists defined[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Tracks", style="green", justify="right")
    table.add_column("Updated", style="dim")

    for playlist in playlists:
        table.add_row(
            str(playlist.id),
            escape(playlist.name),
            str((counts or {}).get(playlist.id, 0)),
            playlist.updated_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


def display_sync_history(runs: List[SyncRun]) -> None:
    """Display recent sync runs, newest first."""
    if not runs:
        console.print("[yellow]No sync runs recorded[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta", title="Sync History")
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Started", style="cyan")
    table.add_column("Folder")
    table.add_column("Status")
    table.add_column("Added", justify="right")
    table.add_column("Updated", justify="right")
    table.add_column("Removed", justify="right")
    table.add_column("Errors", justify="right")

    for run in runs:
        style = STATUS_STYLES.get(run.status, "white")
        table.add_row(
            str(run.id),
            run.started_at.strftime("%Y-%m-%d %H:%M:%S"),
            escape(run.folder_path),
            f"[{style}]{run.status}[/{style}]",
            str(run.added),
            str(run.updated),
            str(run.removed),
            str(run.error_count),
        )
    console.print(table)


def display_status(status: Dict[str, Any]) -> None:
    """Display catalog statistics and the last sync run."""
    table = Table(show_header=True, header_style="bold magenta", title="Catalog")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")

    table.add_row("Database", status["database_path"])
    table.add_row("Tracks", str(status["tracks"]))
    table.add_row("Tags", str(status["tags"]))
    table.add_row("Playlists", str(status["playlists"]))
    table.add_row("Total Duration", format_duration(status["total_duration_ms"]))
    table.add_row("Sync Runs", str(status["sync_runs"]))

    last_sync = status.get("last_sync")
    if last_sync:
        style = STATUS_STYLES.get(last_sync["status"], "white")
        table.add_row("Last Sync Folder", escape(last_sync["folder_path"]))
        table.add_row(
            "Last Sync Status", f"[{style}]{last_sync['status']}[/{style}]"
        )
        table.add_row(
            "Last Sync Started",
            last_sync["started_at"].strftime("%Y-%m-%d %H:%M:%S"),
        )
    else:
        table.add_row("Last Sync", "[dim]never[/dim]")

    console.print(table)
