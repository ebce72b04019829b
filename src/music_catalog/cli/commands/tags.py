"""Tag management commands."""

import logging
from collections import Counter
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape

from ...database.models import Tag
from ...services.catalog_service import CatalogService
from ..display import display_tags

console = Console()
logger = logging.getLogger(__name__)


def _require_tag(service: CatalogService, name: str) -> Tag:
    tag = service.db_service.get_tag_by_name(name)
    if tag is None:
        raise click.ClickException(f"Tag not found: {name}")
    return tag


@click.group("tags")
def tags() -> None:
    """Create, delete and assign tags."""
    pass


@tags.command(name="list")
@click.pass_obj
def tags_list(service: CatalogService) -> None:
    """List all tags with their track counts."""
    counts: Counter = Counter()
    for tag_ids in service.db_service.get_track_tag_map().values():
        counts.update(tag_ids)
    display_tags(service.db_service.get_all_tags(), dict(counts))


@tags.command(name="create")
@click.argument("name")
@click.option("--color", help="Display color, e.g. #ff8800")
@click.pass_obj
def tags_create(service: CatalogService, name: str, color: Optional[str]) -> None:
    """Create a tag."""
    try:
        tag = service.library.create_tag(name, color)
    except ValueError as e:
        raise click.ClickException(str(e))
    console.print(f"[green]✓ Created tag[/green] {escape(tag.name)} (ID: {tag.id})")


@tags.command(name="delete")
@click.argument("name")
@click.pass_obj
def tags_delete(service: CatalogService, name: str) -> None:
    """Delete a tag and remove it from every track."""
    tag = _require_tag(service, name)
    service.library.delete_tag(tag.id)
    console.print(f"[green]✓ Deleted tag[/green] {escape(name)}")


@tags.command(name="assign")
@click.argument("track_id", type=int)
@click.argument("name")
@click.pass_obj
def tags_assign(service: CatalogService, track_id: int, name: str) -> None:
    """Attach tag NAME to a track."""
    tag = _require_tag(service, name)
    try:
        added = service.db_service.add_tag_to_track(track_id, tag.id)
    except ValueError as e:
        raise click.ClickException(str(e))
    if added:
        console.print(f"[green]✓ Tagged track {track_id} with[/green] {escape(name)}")
    else:
        console.print(f"[dim]Track {track_id} already tagged {escape(name)}[/dim]")


@tags.command(name="unassign")
@click.argument("track_id", type=int)
@click.argument("name")
@click.pass_obj
def tags_unassign(service: CatalogService, track_id: int, name: str) -> None:
    """Detach tag NAME from a track."""
    tag = _require_tag(service, name)
    if service.db_service.remove_tag_from_track(track_id, tag.id):
        console.print(
            f"[green]✓ Removed[/green] {escape(name)} from track {track_id}"
        )
    else:
        console.print(f"[dim]Track {track_id} was not tagged {escape(name)}[/dim]")
