"""CLI command for deleting the files of tracks flagged in Rekordbox."""

from pathlib import Path

import click

from ...core.sync import DeleteTracksReconciler
from ..display import display_delete_summary, display_invocation
from .common import (
    dry_run_option,
    handle_run_errors,
    load_library,
    progress_tracker,
    xml_option,
)


@click.command("delete-tracks")
@xml_option
@dry_run_option
def delete_tracks_command(xml_path: Path, dry_run: bool) -> None:
    """Delete files of the tracks in the LIBRARY MANAGEMENT/Delete playlist.

    Only the audio files are removed; the XML is not modified.
    """
    display_invocation("delete-tracks", {"xml": xml_path, "dry-run": dry_run})

    with handle_run_errors(), progress_tracker() as progress:
        library = load_library(xml_path)
        summary = DeleteTracksReconciler(
            library, dry_run=dry_run, progress=progress
        ).run()

    display_delete_summary(summary)
