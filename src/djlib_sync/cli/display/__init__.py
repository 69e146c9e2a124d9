"""Display utilities for CLI."""

from .formatters import (
    build_mirror_tree,
    console,
    display_delete_summary,
    display_invocation,
    display_mik_folder_summary,
    display_playlists_to_mik_summary,
    display_tag_sync_summary,
)

__all__ = [
    "build_mirror_tree",
    "console",
    "display_delete_summary",
    "display_invocation",
    "display_mik_folder_summary",
    "display_playlists_to_mik_summary",
    "display_tag_sync_summary",
]
