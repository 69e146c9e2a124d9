"""Reconcilers between Rekordbox, Mixed In Key and the filesystem."""

from .base import Reconciler, RunState
from .delete_tracks import DeleteTracksReconciler, DeleteTracksSummary
from .mik_folder_to_rekordbox import (
    MikFolderToRekordboxReconciler,
    MikFolderToRekordboxSummary,
    MirroredFolder,
    MirroredPlaylist,
)
from .playlists_to_mik import (
    MirrorContext,
    PlaylistsToMikReconciler,
    PlaylistsToMikSummary,
    is_reset_confirmed,
)
from .tag_sync import TagSyncReconciler, TagSyncSummary

__all__ = [
    "DeleteTracksReconciler",
    "DeleteTracksSummary",
    "MikFolderToRekordboxReconciler",
    "MikFolderToRekordboxSummary",
    "MirrorContext",
    "MirroredFolder",
    "MirroredPlaylist",
    "PlaylistsToMikReconciler",
    "PlaylistsToMikSummary",
    "Reconciler",
    "RunState",
    "TagSyncReconciler",
    "TagSyncSummary",
    "is_reset_confirmed",
]
