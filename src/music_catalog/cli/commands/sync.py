"""Library sync command."""

import logging
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape

from ...core.sync.progress import EventChannel
from ...database.models import SyncStatus
from ...exceptions import AlreadyRunningError
from ...services.catalog_service import CatalogService
from ..display import RichSyncReporter, display_sync_summary

console = Console()
logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.2


@click.command("sync")
@click.argument(
    "folder",
    required=False,
    type=click.Path(file_okay=False, path_type=Path),
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="List every added, updated and removed file",
)
@click.pass_obj
def sync_command(
    service: CatalogService, folder: Optional[Path], verbose: bool
) -> None:
    """Synchronize the catalog with a music folder.

    Scans FOLDER (default: MUSIC_CATALOG_MUSIC_DIRECTORY) recursively, adds
    new audio files, refreshes changed ones and removes entries whose files
    are gone. Press Ctrl-C to cancel; work done so far is kept.

    Examples:
        music-catalog sync ~/Music
        music-catalog sync -v
    """
    target = folder if folder is not None else service.config.music_directory
    console.print(f"[bold blue]🔄 Syncing {escape(str(target))}...[/bold blue]")

    channel = EventChannel()
    try:
        handle = service.start_sync(target, listener=channel)
    except AlreadyRunningError as e:
        raise click.ClickException(str(e))

    with RichSyncReporter(console, verbose=verbose) as reporter:
        while not channel.closed:
            try:
                event = channel.get(timeout=POLL_INTERVAL)
                if event is not None:
                    reporter(event)
            except KeyboardInterrupt:
                if service.cancel_sync():
                    console.print("[yellow]Cancelling sync...[/yellow]")

    summary = handle.result()
    display_sync_summary(summary)

    if summary.status is SyncStatus.FAILED:
        raise click.ClickException(summary.error_message or "Sync failed")
