"""CLI command for mirroring a Mixed In Key folder into Rekordbox."""

from pathlib import Path
from typing import Optional

import click

from ...core.sync import MikFolderToRekordboxReconciler
from ..display import display_invocation, display_mik_folder_summary
from .common import (
    dry_run_option,
    get_config,
    handle_run_errors,
    load_library,
    mik_db_option,
    mik_version_option,
    open_mik_database,
    progress_tracker,
    xml_option,
)


@click.command("sync-mik-folder-to-rekordbox")
@xml_option
@click.option(
    "--mik-folder",
    required=True,
    type=str,
    help="Name of the top-level MIK folder to mirror",
)
@mik_db_option
@mik_version_option
@dry_run_option
def sync_mik_folder_command(
    xml_path: Path,
    mik_folder: str,
    mik_db: Optional[Path],
    mik_version: Optional[str],
    dry_run: bool,
) -> None:
    """Copy a MIK folder tree into LIBRARY MANAGEMENT/MIK Sync in the XML."""
    config = get_config()
    display_invocation(
        "sync-mik-folder-to-rekordbox",
        {
            "xml": xml_path,
            "mik-folder": mik_folder,
            "mik-db": mik_db,
            "mik-version": mik_version or config.mik_version,
            "dry-run": dry_run,
        },
    )

    with handle_run_errors():
        library = load_library(xml_path)
        database = open_mik_database(config, mik_db, mik_version)
        try:
            with progress_tracker() as progress:
                summary = MikFolderToRekordboxReconciler(
                    library,
                    database,
                    mik_folder,
                    dry_run=dry_run,
                    progress=progress,
                    backup_folder_name=config.backup_folder_name,
                ).run()
        finally:
            database.close()

    display_mik_folder_summary(summary)
