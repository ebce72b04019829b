"""Catalog status and sync history commands."""

import logging
from typing import Optional

import click
from rich.console import Console

from ...services.catalog_service import CatalogService
from ..display import display_status, display_sync_history

console = Console()
logger = logging.getLogger(__name__)


@click.command("history")
@click.option("--limit", "-n", default=10, show_default=True, help="Runs to show")
@click.pass_obj
def history_command(service: CatalogService, limit: int) -> None:
    """Show recent sync runs."""
    display_sync_history(service.db_service.get_recent_sync_runs(limit=limit))


@click.command("prune-history")
@click.option(
    "--days",
    type=click.IntRange(min=0),
    help="Keep runs from the last N days (default: configured retention)",
)
@click.pass_obj
def prune_history_command(service: CatalogService, days: Optional[int]) -> None:
    """Delete finished sync runs older than the retention period."""
    deleted = service.prune_sync_history(days)
    console.print(f"[green]✓ Deleted {deleted} old sync run(s)[/green]")


@click.command("status")
@click.pass_obj
def status_command(service: CatalogService) -> None:
    """Show catalog statistics and the last sync run."""
    display_status(service.get_status())


@click.command("migrate")
@click.pass_obj
def migrate_command(service: CatalogService) -> None:
    """Upgrade the catalog database to the latest schema revision."""
    service.db_service.run_migrations()
    console.print("[green]✓ Database schema is up to date[/green]")
