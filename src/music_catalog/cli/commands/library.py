"""Commands for browsing and rating the catalog."""

import logging
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape

from ...core.library.filters import (
    FilterState,
    SortColumn,
    SortDirection,
    SortState,
    TriState,
)
from ...database.models import MAX_RATING, MIN_RATING
from ...services.catalog_service import CatalogService
from ..display import display_tracks

console = Console()
logger = logging.getLogger(__name__)

RATING_RANGE = click.IntRange(MIN_RATING, MAX_RATING)


def build_filter_state(
    service: CatalogService,
    search: Optional[str],
    include_tags: Tuple[str, ...],
    exclude_tags: Tuple[str, ...],
    include_ratings: Tuple[int, ...],
    exclude_ratings: Tuple[int, ...],
) -> FilterState:
    """Translate command line options into a FilterState.

    Raises:
        click.BadParameter: If a tag name is unknown
    """
    tag_ids = {tag.name: tag.id for tag in service.db_service.get_all_tags()}
    state = FilterState(query=search or "")

    for names, tri_state, option in (
        (include_tags, TriState.INCLUDE, "--include-tag"),
        (exclude_tags, TriState.EXCLUDE, "--exclude-tag"),
    ):
        for name in names:
            if name not in tag_ids:
                raise click.BadParameter(f"Unknown tag: {name}", param_hint=option)
            state.set_tag_state(tag_ids[name], tri_state)

    for rating in include_ratings:
        state.set_rating_state(rating, TriState.INCLUDE)
    for rating in exclude_ratings:
        state.set_rating_state(rating, TriState.EXCLUDE)

    return state


@click.command("list")
@click.option("--search", "-s", help="Case-insensitive text in title, artist or album")
@click.option("--include-tag", multiple=True, help="Only tracks carrying this tag")
@click.option("--exclude-tag", multiple=True, help="Hide tracks carrying this tag")
@click.option(
    "--include-rating",
    type=RATING_RANGE,
    multiple=True,
    help="Only tracks with this rating (repeat for any of several)",
)
@click.option(
    "--exclude-rating",
    type=RATING_RANGE,
    multiple=True,
    help="Hide tracks with this rating",
)
@click.option(
    "--sort",
    type=click.Choice([column.value for column in SortColumn]),
    help="Sort column",
)
@click.option("--desc", is_flag=True, help="Sort descending")
@click.option("--playlist", "-p", help="Only tracks in this playlist, in its order")
@click.option("--limit", "-n", type=int, help="Show at most N tracks")
@click.pass_obj
def list_command(
    service: CatalogService,
    search: Optional[str],
    include_tag: Tuple[str, ...],
    exclude_tag: Tuple[str, ...],
    include_rating: Tuple[int, ...],
    exclude_rating: Tuple[int, ...],
    sort: Optional[str],
    desc: bool,
    playlist: Optional[str],
    limit: Optional[int],
) -> None:
    """List catalogued tracks with filters and sorting.

    Examples:
        music-catalog list --search beatles --sort title
        music-catalog list --include-tag Chill --exclude-rating 0
        music-catalog list --playlist "Road Trip"
    """
    filter_state = build_filter_state(
        service, search, include_tag, exclude_tag, include_rating, exclude_rating
    )
    sort_state = SortState()
    if sort:
        sort_state.column = SortColumn(sort)
        sort_state.direction = (
            SortDirection.DESCENDING if desc else SortDirection.ASCENDING
        )

    library = service.library
    library.refresh()
    tracks = library.tracks
    if playlist:
        selected = service.db_service.get_playlist_by_name(playlist)
        if selected is None:
            raise click.BadParameter(
                f"Unknown playlist: {playlist}", param_hint="--playlist"
            )
        filter_state.playlist_id = selected.id
        tracks = library.show_playlist(selected.id)

    tracks = service.apply_filter_sort(tracks, filter_state, sort_state)
    display_tracks(
        tracks,
        library.tag_names(),
        sort_state=sort_state,
        limit=limit,
        numbered=bool(playlist) and not sort_state.is_active,
    )


@click.command("rate")
@click.argument("track_id", type=int)
@click.argument("rating", type=int)
@click.pass_obj
def rate_command(service: CatalogService, track_id: int, rating: int) -> None:
    """Set a track's rating (clamped to 0-5)."""
    library = service.library
    library.refresh()
    if library.get_track(track_id) is None:
        raise click.ClickException(f"Track not found: {track_id}")

    track = library.set_rating(track_id, rating)
    console.print(
        f"[green]✓ Rated[/green] {escape(str(track))} "
        f"[yellow]{'★' * track.rating}{'☆' * (MAX_RATING - track.rating)}[/yellow]"
    )
