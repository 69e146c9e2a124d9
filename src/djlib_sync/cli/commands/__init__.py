"""CLI command modules."""

from .delete_tracks import delete_tracks_command
from .sync_mik_folder import sync_mik_folder_command
from .sync_playlists import sync_playlists_command
from .sync_tags import sync_tags_command

__all__ = [
    "delete_tracks_command",
    "sync_mik_folder_command",
    "sync_playlists_command",
    "sync_tags_command",
]
