"""CLI command for mirroring Rekordbox playlists into Mixed In Key."""

from pathlib import Path
from typing import Optional

import click

from ...constants import RESET_CONFIRMATION_TOKEN
from ...core.sync import PlaylistsToMikReconciler
from ..display import console, display_invocation, display_playlists_to_mik_summary
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


def _ask_reset_confirmation() -> str:
    console.print(
        "[bold red]You are about to RESET the Mixed In Key library "
        "structure.[/bold red]\n"
        " - Delete ALL song/playlist memberships\n"
        " - Delete ALL folders and playlists except MIK's built-in library rows\n\n"
        "This cannot be undone."
    )
    return click.prompt(
        f"Type '{RESET_CONFIRMATION_TOKEN}' to confirm and proceed",
        default="",
        show_default=False,
    )


@click.command("sync-rekordbox-playlists-to-mik")
@xml_option
@mik_db_option
@mik_version_option
@click.option(
    "--reset-mik-library",
    is_flag=True,
    help="Delete all MIK playlists, folders and memberships before syncing",
)
@dry_run_option
def sync_playlists_command(
    xml_path: Path,
    mik_db: Optional[Path],
    mik_version: Optional[str],
    reset_mik_library: bool,
    dry_run: bool,
) -> None:
    """Mirror the Rekordbox folder/playlist tree into the MIK library.

    Folders and playlists are created only when missing and tracks are
    matched to MIK songs by file path. The whole sync is one transaction.
    """
    config = get_config()
    display_invocation(
        "sync-rekordbox-playlists-to-mik",
        {
            "xml": xml_path,
            "mik-db": mik_db,
            "mik-version": mik_version or config.mik_version,
            "reset-mik-library": reset_mik_library,
            "dry-run": dry_run,
        },
    )

    with handle_run_errors():
        library = load_library(xml_path)
        database = open_mik_database(config, mik_db, mik_version)
        try:
            confirmation = None
            if reset_mik_library and not dry_run:
                confirmation = _ask_reset_confirmation()

            with progress_tracker() as progress:
                summary = PlaylistsToMikReconciler(
                    library,
                    database,
                    reset_library=reset_mik_library,
                    reset_confirmation=confirmation,
                    dry_run=dry_run,
                    progress=progress,
                    backup_folder_name=config.backup_folder_name,
                ).run()
        finally:
            database.close()

    display_playlists_to_mik_summary(summary)
