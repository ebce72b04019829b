"""Command-line interface for the music catalog.

This is the main entry point that delegates to command modules.
"""

from pathlib import Path
from typing import Any, Optional

import click

from ..config import Config
from ..services.catalog_service import CatalogService
from ..utils.logging_config import configure_third_party_loggers, setup_logging
from .commands import (
    history_command,
    list_command,
    migrate_command,
    playlists,
    prune_history_command,
    rate_command,
    status_command,
    sync_command,
    tags,
)


@click.group()
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Set logging level",
)
@click.option("--log-file", type=click.Path(), help="Log to file")
@click.pass_context
def cli(ctx: Any, log_level: str, log_file: Optional[str]) -> None:
    """Music Catalog.

    Keeps a local catalog of audio tracks in sync with a music folder.
    """
    config = Config()

    # Set up logging
    setup_logging(
        log_level=log_level,
        log_file=Path(log_file) if log_file else config.log_file,
    )
    configure_third_party_loggers()

    service = CatalogService(config)
    ctx.obj = service
    ctx.call_on_close(service.shutdown)


# Register command groups and commands
cli.add_command(sync_command)
cli.add_command(list_command)
cli.add_command(rate_command)
cli.add_command(tags)
cli.add_command(playlists)
cli.add_command(history_command)
cli.add_command(prune_history_command)
cli.add_command(status_command)
cli.add_command(migrate_command)


if __name__ == "__main__":
    cli()
