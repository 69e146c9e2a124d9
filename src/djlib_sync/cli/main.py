"""Command-line interface for the DJ library sync tool.

This is the main entry point that delegates to command modules.
"""

from pathlib import Path
from typing import Any, Optional

import click

from ..config import Config
from ..utils.logging_config import configure_third_party_loggers, setup_logging
from .commands import (
    delete_tracks_command,
    sync_mik_folder_command,
    sync_playlists_command,
    sync_tags_command,
)


@click.group()
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Set logging level",
)
@click.option("--log-file", type=click.Path(), help="Log to file")
@click.version_option(package_name="djlib-sync")
@click.pass_context
def cli(ctx: Any, log_level: str, log_file: Optional[str]) -> None:
    """DJ Library Sync Tool.

    Keeps a Rekordbox XML collection and the Mixed In Key library in step.
    """
    setup_logging(log_level=log_level, log_file=Path(log_file) if log_file else None)
    configure_third_party_loggers()

    ctx.obj = Config()


cli.add_command(delete_tracks_command)
cli.add_command(sync_tags_command)
cli.add_command(sync_playlists_command)
cli.add_command(sync_mik_folder_command)


if __name__ == "__main__":
    cli()
