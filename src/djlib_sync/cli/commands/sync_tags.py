"""CLI command for syncing MIK comment tags into the Rekordbox XML."""

from pathlib import Path
from typing import Optional

import click

from ...core.sync import TagSyncReconciler
from ..display import display_invocation, display_tag_sync_summary
from .common import (
    dry_run_option,
    get_config,
    handle_run_errors,
    load_library,
    progress_tracker,
    xml_option,
)


@click.command("sync-mik-tags-to-rekordbox")
@xml_option
@click.option(
    "--energy-colours",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Energy level -> colour JSON (defaults to the bundled table)",
)
@dry_run_option
def sync_tags_command(
    xml_path: Path, energy_colours: Optional[Path], dry_run: bool
) -> None:
    """Write MIK key and energy level into Rekordbox tonality and colour.

    Changed tracks are collected in the 'MIK Key Analysis' and
    'MIK Energy Level Analysis' playlists under LIBRARY MANAGEMENT.
    """
    config = get_config()
    display_invocation(
        "sync-mik-tags-to-rekordbox",
        {
            "xml": xml_path,
            "energy-colours": energy_colours or config.energy_colour_mapping_path,
            "dry-run": dry_run,
        },
    )

    with handle_run_errors(), progress_tracker() as progress:
        mapping = config.load_energy_colour_mapping(energy_colours)
        library = load_library(xml_path)
        summary = TagSyncReconciler(
            library,
            mapping,
            dry_run=dry_run,
            progress=progress,
            backup_folder_name=config.backup_folder_name,
        ).run()

    display_tag_sync_summary(summary)
