"""Mirror one Mixed In Key folder tree into the Rekordbox XML.

The MIK folder and all its descendants are collected breadth-first, then
recreated under ``LIBRARY MANAGEMENT/MIK Sync/<folder>`` in the XML. Songs are
matched to Rekordbox tracks through a path index built once from the whole
collection. Existing folders, playlists and track references are reused, so
repeated runs only add what is new.
"""

import logging
from collections import deque
from dataclasses import asdict, dataclass
from dataclasses import field as dataclass_field
from typing import Any, Deque, Dict, List, Optional, Set, Tuple

from ...constants import BACKUP_FOLDER_NAME, SYNC_FROM_MIK_FOLDER_NAME
from ...database.progress_tracker import ProgressPhase, ProgressTracker
from ...database.service import MikDatabaseService
from ...utils.paths import path_key
from ..errors import PreconditionError
from ..rekordbox import NodeType, PlaylistNode, RekordboxXmlLibrary
from .base import Reconciler

logger = logging.getLogger(__name__)


@dataclass
class MirroredPlaylist:
    """A MIK playlist and what mirroring it did."""

    name: str
    mik_id: str
    files: List[str] = dataclass_field(default_factory=list)
    created: bool = False
    tracks_added: int = 0
    tracks_existing: int = 0
    tracks_missing: int = 0


@dataclass
class MirroredFolder:
    """A MIK folder with its playlists and sub-folders, in MIK order."""

    name: str
    mik_id: str
    path: Tuple[str, ...]
    created: bool = False
    playlists: List[MirroredPlaylist] = dataclass_field(default_factory=list)
    children: List["MirroredFolder"] = dataclass_field(default_factory=list)


@dataclass
class MikFolderToRekordboxSummary:
    """Outcome counts of a MIK -> Rekordbox mirror run."""

    mik_folder: str = ""
    folders_created: int = 0
    folders_existing: int = 0
    playlists_created: int = 0
    playlists_existing: int = 0
    tracks_added: int = 0
    tracks_existing: int = 0
    tracks_missing_in_rekordbox: int = 0
    dry_run: bool = False
    xml_path: Optional[str] = None
    backup_path: Optional[str] = None
    tree: Optional[MirroredFolder] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (without the folder tree)."""
        data = asdict(self)
        data.pop("tree")
        return data


class MikFolderToRekordboxReconciler(Reconciler[MikFolderToRekordboxSummary]):
    """Replicate a MIK folder's structure and song order into Rekordbox."""

    def __init__(
        self,
        library: RekordboxXmlLibrary,
        database: MikDatabaseService,
        mik_folder_name: str,
        dry_run: bool = False,
        progress: Optional[ProgressTracker] = None,
        backup_folder_name: str = BACKUP_FOLDER_NAME,
    ) -> None:
        super().__init__(dry_run, progress, backup_folder_name)
        self.library = library
        self.database = database
        self.mik_folder_name = mik_folder_name
        self.summary = MikFolderToRekordboxSummary(
            mik_folder=mik_folder_name, dry_run=dry_run, xml_path=str(library.path)
        )
        self._root_id = ""
        # Dry-run bookkeeping of what a real run would have created so far
        self._planned_folders: Set[Tuple[str, ...]] = set()
        self._planned_playlists: Set[Tuple[str, ...]] = set()
        self._planned_tracks: Set[Tuple[Tuple[str, ...], str]] = set()

    def _validate(self) -> None:
        self.library.require_library_management_folder()
        self._root_id = self.database.root_folder_id(self.mik_folder_name) or ""
        if not self._root_id:
            raise PreconditionError(
                f"MIK folder '{self.mik_folder_name}' not found at root."
            )

    def _backup(self) -> None:
        backup = self.library.create_backup(self.backup_folder_name)
        self.summary.backup_path = str(backup)

    def _process(self) -> None:
        tree, folders = self._collect_tree(self._root_id)
        self.summary.tree = tree
        track_ids_by_path = self._build_track_index()

        total = sum(len(pl.files) for folder in folders for pl in folder.playlists)
        self._progress_start(ProgressPhase.MIRRORING_PLAYLISTS, total)

        self._ensure_folder((SYNC_FROM_MIK_FOLDER_NAME,))
        for folder in folders:
            target, folder.created = self._ensure_folder(
                (SYNC_FROM_MIK_FOLDER_NAME,) + folder.path
            )
            for playlist in folder.playlists:
                self._mirror_playlist(folder, target, playlist, track_ids_by_path)

        self._progress_complete()

    def _collect_tree(
        self, root_id: str
    ) -> Tuple[MirroredFolder, List[MirroredFolder]]:
        """Breadth-first walk of the MIK folder.

        Returns:
            Tuple of (root node, all folder nodes in BFS order)
        """
        root = MirroredFolder(self.mik_folder_name, root_id, (self.mik_folder_name,))
        ordered: List[MirroredFolder] = []
        queue: Deque[MirroredFolder] = deque([root])
        while queue:
            folder = queue.popleft()
            ordered.append(folder)

            for child_id, child_name in self.database.child_folders(folder.mik_id):
                child = MirroredFolder(
                    child_name, child_id, folder.path + (child_name,)
                )
                folder.children.append(child)
                queue.append(child)

            for playlist_id, playlist_name in self.database.child_playlists(
                folder.mik_id
            ):
                folder.playlists.append(
                    MirroredPlaylist(
                        playlist_name,
                        playlist_id,
                        self.database.playlist_song_files(playlist_id),
                    )
                )

        logger.debug(
            "Collected %d MIK folders under '%s'", len(ordered), self.mik_folder_name
        )
        return root, ordered

    def _build_track_index(self) -> Dict[str, str]:
        """Map path key -> TrackID over the whole collection (first wins)."""
        index: Dict[str, str] = {}
        for track in self.library.get_collection_tracks():
            key = path_key(track.location)
            if track.track_id and key:
                index.setdefault(key, track.track_id)
        return index

    def _ensure_folder(
        self, segments: Tuple[str, ...]
    ) -> Tuple[Optional[PlaylistNode], bool]:
        """Get (or, outside dry-run, create) a folder below LIBRARY MANAGEMENT.

        Returns:
            Tuple of (folder node, whether this run creates it). In dry-run the
            node is only returned if the folder already exists.
        """
        existing = self.library.find_folder(*segments)
        created = existing is None and segments not in self._planned_folders
        if created:
            self.summary.folders_created += 1
            logger.debug("%sCreated folder '%s'", self.log_prefix, "/".join(segments))
        else:
            self.summary.folders_existing += 1

        if self.dry_run:
            self._planned_folders.add(segments)
            return existing, created
        return self.library.get_or_create_folder(*segments), created

    def _mirror_playlist(
        self,
        folder: MirroredFolder,
        target: Optional[PlaylistNode],
        playlist: MirroredPlaylist,
        track_ids_by_path: Dict[str, str],
    ) -> None:
        playlist_path = (SYNC_FROM_MIK_FOLDER_NAME,) + folder.path + (playlist.name,)

        existing = target.child(playlist.name, NodeType.PLAYLIST) if target else None
        playlist.created = (
            existing is None and playlist_path not in self._planned_playlists
        )
        if playlist.created:
            self.summary.playlists_created += 1
        else:
            self.summary.playlists_existing += 1

        # Only set outside dry-run
        writable: Optional[PlaylistNode] = None
        if self.dry_run:
            self._planned_playlists.add(playlist_path)
        else:
            writable = self.library.get_or_create_playlist(
                self.library.get_or_create_folder(*playlist_path[:-1]), playlist.name
            )
        rb_playlist = writable if writable is not None else existing

        for file in playlist.files:
            self._progress_update(playlist.name)

            key = path_key(file)
            if not key:
                continue

            track_id = track_ids_by_path.get(key)
            if track_id is None:
                playlist.tracks_missing += 1
                logger.warning("Rekordbox track not found for MIK path: %s", file)
                continue

            if self._playlist_has_track(rb_playlist, playlist_path, track_id):
                playlist.tracks_existing += 1
                continue

            if writable is None:
                self._planned_tracks.add((playlist_path, track_id))
            else:
                self.library.add_track_to_playlist(writable, track_id)
            playlist.tracks_added += 1
            logger.debug(
                "%sAdded TrackID=%s for '%s' to playlist '%s'",
                self.log_prefix,
                track_id,
                file,
                playlist.name,
            )

        if writable is not None:
            # Pre-existing references count too
            self.library.update_playlist_entries(
                writable, len(writable.track_elements())
            )
            logger.debug("Playlist '%s' Entries=%d", playlist.name, writable.entries)

        self.summary.tracks_added += playlist.tracks_added
        self.summary.tracks_existing += playlist.tracks_existing
        self.summary.tracks_missing_in_rekordbox += playlist.tracks_missing
        logger.info(
            "%sPlaylist '%s': added %d.",
            self.log_prefix,
            playlist.name,
            playlist.tracks_added,
        )

    def _playlist_has_track(
        self,
        rb_playlist: Optional[PlaylistNode],
        playlist_path: Tuple[str, ...],
        track_id: str,
    ) -> bool:
        if rb_playlist is not None and rb_playlist.has_track(track_id):
            return True
        return (playlist_path, track_id) in self._planned_tracks

    def _persist(self) -> None:
        self._progress_start(ProgressPhase.SAVING, 1)
        self.library.save()
        self._progress_complete()
        logger.info("Saved updated Rekordbox XML in place: %s", self.library.path)

    def _report(self) -> MikFolderToRekordboxSummary:
        logger.info(
            "%sMIK folder sync complete: %d playlists created, %d tracks added, "
            "%d tracks not found in Rekordbox",
            self.log_prefix,
            self.summary.playlists_created,
            self.summary.tracks_added,
            self.summary.tracks_missing_in_rekordbox,
        )
        if self.dry_run:
            logger.info("%sNo changes saved.", self.log_prefix)
        return self.summary
