"""Display formatters and UI helpers for CLI."""

import logging
from typing import Any, Dict, Iterable, Optional, Tuple

from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from ...core.sync import (
    DeleteTracksSummary,
    MikFolderToRekordboxSummary,
    MirroredFolder,
    PlaylistsToMikSummary,
    TagSyncSummary,
)

console = Console()
logger = logging.getLogger(__name__)


def _mode(dry_run: bool) -> str:
    return "DRY RUN" if dry_run else "APPLY"


def _print_table(title: str, rows: Iterable[Tuple[str, Any]]) -> None:
    console.print(f"\n[bold cyan]{title}[/bold cyan]\n")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    for label, value in rows:
        table.add_row(label, str(value))

    console.print(table)


def display_invocation(command: str, params: Dict[str, Any]) -> None:
    """Show the parameters a command was invoked with.

    Args:
        command: Command name
        params: Parameter name -> value; None values are shown as "-"
    """
    table = Table(title=command, show_header=True, header_style="bold magenta")
    table.add_column("Parameter", style="cyan")
    table.add_column("Value", style="white")
    for name, value in params.items():
        table.add_row(name, "-" if value is None else str(value))
    console.print(table)


def display_tag_sync_summary(summary: TagSyncSummary) -> None:
    """Display tag sync results."""
    would = "Would fix" if summary.dry_run else "Fixed"
    _print_table(
        f"🎹 MIK Tags -> Rekordbox ({_mode(summary.dry_run)})",
        [
            ("Tracks processed", summary.tracks_processed),
            (f"{would} key", summary.key_fixed),
            (f"{would} colour", summary.colour_fixed),
            ("Missing key", summary.missing_key),
            ("Missing energy", summary.missing_energy),
            ("Non-M4A skipped for key", summary.wrong_format_skipped),
            ("Missing files", summary.file_missing),
            ("Failed to read tags", summary.tag_read_failed),
        ],
    )
    _print_outcome(summary.dry_run, summary.xml_path, summary.backup_path)


def display_playlists_to_mik_summary(summary: PlaylistsToMikSummary) -> None:
    """Display Rekordbox -> MIK mirror results."""
    rows = [
        ("New MIK playlists/folders", summary.collections_created),
        ("Existing playlists/folders skipped", summary.collections_existing),
        ("Memberships inserted", summary.memberships_inserted),
        ("Existing memberships skipped", summary.memberships_existing),
        ("Songs not found in MIK", summary.tracks_missing_in_mik),
        ("Analysis playlists skipped", summary.playlists_skipped),
    ]
    if summary.reset_performed:
        rows.append(("Memberships deleted by reset", summary.memberships_deleted))
        rows.append(("Collections deleted by reset", summary.collections_deleted))

    _print_table(f"🔑 Rekordbox -> MIK ({_mode(summary.dry_run)})", rows)
    _print_outcome(summary.dry_run, None, summary.backup_path)


def display_mik_folder_summary(summary: MikFolderToRekordboxSummary) -> None:
    """Display MIK -> Rekordbox mirror results with the mirrored tree."""
    _print_table(
        f"📂 MIK Folder '{summary.mik_folder}' -> Rekordbox "
        f"({_mode(summary.dry_run)})",
        [
            ("Folders created", summary.folders_created),
            ("Folders existing", summary.folders_existing),
            ("Playlists created", summary.playlists_created),
            ("Playlists existing", summary.playlists_existing),
            ("Tracks added", summary.tracks_added),
            ("Tracks already present", summary.tracks_existing),
            ("Tracks not found in Rekordbox", summary.tracks_missing_in_rekordbox),
        ],
    )
    if summary.tree is not None:
        console.print("\n[bold]Summary of mirrored folders/playlists:[/bold]")
        console.print(build_mirror_tree(summary.tree))
    _print_outcome(summary.dry_run, summary.xml_path, summary.backup_path)


def build_mirror_tree(root: MirroredFolder) -> Tree:
    """Render a mirrored MIK folder as a rich tree.

    Playlists come before sub-folders, each with its added-track count.
    """
    tree = Tree(_folder_label(root))
    _add_folder_children(tree, root)
    return tree


def _folder_label(folder: MirroredFolder) -> str:
    suffix = " [yellow](new)[/yellow]" if folder.created else ""
    return f"📁 [bold]{folder.name}[/bold]{suffix}"


def _add_folder_children(branch: Tree, folder: MirroredFolder) -> None:
    for playlist in folder.playlists:
        suffix = " [yellow](new)[/yellow]" if playlist.created else ""
        branch.add(
            f"🎵 {playlist.name} (added {playlist.tracks_added}){suffix}"
        )
    for child in folder.children:
        _add_folder_children(branch.add(_folder_label(child)), child)


def display_delete_summary(summary: DeleteTracksSummary) -> None:
    """Display delete results."""
    _print_table(
        f"🗑️  Delete Tracks ({_mode(summary.dry_run)})",
        [
            ("Would delete" if summary.dry_run else "Deleted", summary.deleted),
            ("Failed", summary.failed),
            ("Missing", summary.missing),
            ("Total targeted", summary.targeted),
        ],
    )
    if summary.failed:
        console.print(f"[red]✗ {summary.failed} file(s) could not be deleted[/red]")


def _print_outcome(
    dry_run: bool, xml_path: Optional[str], backup_path: Optional[str]
) -> None:
    if dry_run:
        console.print("[yellow]Dry run: no changes were persisted.[/yellow]")
        return
    if backup_path:
        console.print(f"[dim]Backup: {backup_path}[/dim]")
    if xml_path:
        console.print(f"[green]✓ XML updated in place: {xml_path}[/green]")
    else:
        console.print("[green]✓ Changes committed[/green]")
