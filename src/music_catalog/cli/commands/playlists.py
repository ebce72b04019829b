"""Playlist management commands.

Positions on the command line are 1-based, as shown by ``playlists show``.
"""

import logging
from typing import Tuple

import click
from rich.console import Console
from rich.markup import escape

from ...database.models import Playlist
from ...services.catalog_service import CatalogService
from ..display import display_playlists, display_tracks

console = Console()
logger = logging.getLogger(__name__)


def _require_playlist(service: CatalogService, name: str) -> Playlist:
    playlist = service.db_service.get_playlist_by_name(name)
    if playlist is None:
        raise click.ClickException(f"Playlist not found: {name}")
    return playlist


@click.group("playlists")
def playlists() -> None:
    """Create playlists and arrange their tracks."""
    pass


@playlists.command(name="list")
@click.pass_obj
def playlists_list(service: CatalogService) -> None:
    """List all playlists with their track counts."""
    db = service.db_service
    items = db.get_all_playlists()
    counts = {playlist.id: db.count_playlist_tracks(playlist.id) for playlist in items}
    display_playlists(items, counts)


@playlists.command(name="create")
@click.argument("name")
@click.pass_obj
def playlists_create(service: CatalogService, name: str) -> None:
    """Create an empty playlist."""
    try:
        playlist = service.library.create_playlist(name)
    except ValueError as e:
        raise click.ClickException(str(e))
    console.print(
        f"[green]✓ Created playlist[/green] {escape(playlist.name)} "
        f"(ID: {playlist.id})"
    )


@playlists.command(name="rename")
@click.argument("name")
@click.argument("new_name")
@click.pass_obj
def playlists_rename(service: CatalogService, name: str, new_name: str) -> None:
    """Rename playlist NAME to NEW_NAME."""
    playlist = _require_playlist(service, name)
    try:
        service.db_service.rename_playlist(playlist.id, new_name)
    except ValueError as e:
        raise click.ClickException(str(e))
    console.print(
        f"[green]✓ Renamed[/green] {escape(name)} "
        f"[green]to[/green] {escape(new_name)}"
    )


@playlists.command(name="delete")
@click.argument("name")
@click.pass_obj
def playlists_delete(service: CatalogService, name: str) -> None:
    """Delete a playlist (its tracks stay in the catalog)."""
    playlist = _require_playlist(service, name)
    service.library.delete_playlist(playlist.id)
    console.print(f"[green]✓ Deleted playlist[/green] {escape(name)}")


@playlists.command(name="add")
@click.argument("name")
@click.argument("track_ids", nargs=-1, required=True, type=int)
@click.pass_obj
def playlists_add(
    service: CatalogService, name: str, track_ids: Tuple[int, ...]
) -> None:
    """Append tracks to the end of playlist NAME."""
    playlist = _require_playlist(service, name)
    added = 0
    for track_id in track_ids:
        try:
            if service.db_service.add_track_to_playlist(playlist.id, track_id):
                added += 1
            else:
                console.print(f"[dim]Track {track_id} already in {escape(name)}[/dim]")
        except ValueError as e:
            raise click.ClickException(str(e))
    console.print(f"[green]✓ Added {added} track(s) to[/green] {escape(name)}")


@playlists.command(name="remove")
@click.argument("name")
@click.argument("track_id", type=int)
@click.pass_obj
def playlists_remove(service: CatalogService, name: str, track_id: int) -> None:
    """Remove a track from playlist NAME."""
    playlist = _require_playlist(service, name)
    if service.db_service.remove_track_from_playlist(playlist.id, track_id):
        console.print(
            f"[green]✓ Removed track {track_id} from[/green] {escape(name)}"
        )
    else:
        console.print(f"[dim]Track {track_id} is not in {escape(name)}[/dim]")


@playlists.command(name="move")
@click.argument("name")
@click.argument("track_id", type=int)
@click.argument("position", type=click.IntRange(min=1))
@click.pass_obj
def playlists_move(
    service: CatalogService, name: str, track_id: int, position: int
) -> None:
    """Move a track to POSITION (1-based) in playlist NAME."""
    playlist = _require_playlist(service, name)
    try:
        new_position = service.db_service.move_track_in_playlist(
            playlist.id, track_id, position - 1
        )
    except ValueError as e:
        raise click.ClickException(str(e))
    console.print(
        f"[green]✓ Moved track {track_id} to position {new_position + 1} in[/green] "
        f"{escape(name)}"
    )


@playlists.command(name="show")
@click.argument("name")
@click.pass_obj
def playlists_show(service: CatalogService, name: str) -> None:
    """Show the tracks of playlist NAME in order."""
    playlist = _require_playlist(service, name)
    library = service.library
    library.refresh()
    tracks = library.show_playlist(playlist.id)
    if not tracks:
        console.print(f"[yellow]Playlist {escape(name)} is empty[/yellow]")
        return
    display_tracks(tracks, library.tag_names(), numbered=True)
