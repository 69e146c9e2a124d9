"""Mirror the Rekordbox playlist tree into the Mixed In Key library.

The XML tree below ``ROOT`` is walked depth-first. Every folder and playlist
is matched to a MIK collection by natural key (parent, name, folder flag) and
created when missing; playlist tracks are matched to MIK songs by normalized
path and appended as memberships. Nothing that already exists is touched, so
running the mirror twice adds nothing the second time.
"""

import logging
import uuid
from dataclasses import asdict, dataclass
from dataclasses import field as dataclass_field
from typing import Any, Dict, List, Optional, Set

from ...constants import (
    BACKUP_FOLDER_NAME,
    LIBRARY_MANAGEMENT,
    RESET_CONFIRMATION_TOKEN,
    SKIPPED_ANALYSIS_PLAYLISTS,
)
from ...database.models import CollectionKey, Membership
from ...database.progress_tracker import ProgressPhase, ProgressTracker
from ...database.service import MikDatabaseService
from ...utils.paths import path_key
from ..errors import OperationAborted
from ..rekordbox import PlaylistNode, RekordboxXmlLibrary
from .base import Reconciler

logger = logging.getLogger(__name__)

_SKIPPED_PLAYLIST_NAMES = {name.casefold() for name in SKIPPED_ANALYSIS_PLAYLISTS}


@dataclass
class PlaylistsToMikSummary:
    """Outcome counts of a Rekordbox -> MIK mirror run."""

    collections_created: int = 0
    collections_existing: int = 0
    memberships_inserted: int = 0
    memberships_existing: int = 0
    tracks_missing_in_mik: int = 0
    playlists_skipped: int = 0
    reset_performed: bool = False
    memberships_deleted: int = 0
    collections_deleted: int = 0
    dry_run: bool = False
    backup_path: Optional[str] = None
    missing_paths: List[str] = dataclass_field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class MirrorContext:
    """Run-local view of the MIK library, updated as rows are queued.

    Attributes:
        collections: Natural key -> collection id, pre-loaded then extended
        song_ids_by_path: Path key -> song id
        members: Collection id -> song ids already in that playlist
        next_sequence: Collection id -> next free membership sequence
        missing_paths: Path keys of tracks with no MIK song
        simulate_empty: Treat memberships as already wiped (dry-run reset)
    """

    collections: Dict[CollectionKey, str]
    song_ids_by_path: Dict[str, str]
    members: Dict[str, Set[str]] = dataclass_field(default_factory=dict)
    next_sequence: Dict[str, int] = dataclass_field(default_factory=dict)
    missing_paths: Set[str] = dataclass_field(default_factory=set)
    simulate_empty: bool = False


def is_reset_confirmed(token: Optional[str]) -> bool:
    """Whether the operator typed the reset confirmation token."""
    return (token or "").strip().casefold() == RESET_CONFIRMATION_TOKEN.casefold()


class PlaylistsToMikReconciler(Reconciler[PlaylistsToMikSummary]):
    """Replicate Rekordbox folders, playlists and memberships into MIK."""

    def __init__(
        self,
        library: RekordboxXmlLibrary,
        database: MikDatabaseService,
        reset_library: bool = False,
        reset_confirmation: Optional[str] = None,
        dry_run: bool = False,
        progress: Optional[ProgressTracker] = None,
        backup_folder_name: str = BACKUP_FOLDER_NAME,
    ) -> None:
        """Initialize the reconciler.

        Args:
            library: Loaded Rekordbox XML (read only)
            database: MIK database service
            reset_library: Wipe non-system collections and all memberships first
            reset_confirmation: Token typed by the operator; must be ``RESET``
                for a real reset to go ahead
            dry_run: Walk and count without writing to the database
            progress: Optional progress tracker
            backup_folder_name: Folder the database backup is written to
        """
        super().__init__(dry_run, progress, backup_folder_name)
        self.library = library
        self.database = database
        self.reset_library = reset_library
        self.reset_confirmation = reset_confirmation
        self.summary = PlaylistsToMikSummary(dry_run=dry_run)
        self._in_transaction = False

    def _validate(self) -> None:
        self.library.require_library_management_folder()
        self.library.require_playlists_root()

        if (
            self.reset_library
            and not self.dry_run
            and not is_reset_confirmed(self.reset_confirmation)
        ):
            logger.info("Reset aborted by user. No changes applied.")
            raise OperationAborted("MIK library reset was not confirmed.")

    def _backup(self) -> None:
        backup = self.database.create_backup(self.backup_folder_name)
        self.summary.backup_path = str(backup)

    def _process(self) -> None:
        root = self.library.require_playlists_root()

        if self.reset_library:
            self._reset()

        simulate_empty = self.reset_library and self.dry_run
        context = MirrorContext(
            collections=self.database.existing_collections(system_only=simulate_empty),
            song_ids_by_path=self.database.song_ids_by_path(),
            simulate_empty=simulate_empty,
        )

        if self.dry_run:
            logger.info(
                "%sSimulating playlist sync. No database changes will be committed.",
                self.log_prefix,
            )
        else:
            self.database.begin()
            self._in_transaction = True

        total = self._count_tracks(root)
        self._progress_start(ProgressPhase.MIRRORING_PLAYLISTS, total)
        self._traverse(root, None, context)
        self._progress_complete()

        self.summary.tracks_missing_in_mik = len(context.missing_paths)
        self.summary.missing_paths = sorted(context.missing_paths)

    def _reset(self) -> None:
        if self.dry_run:
            logger.warning(
                "%sWould reset MIK library structure: delete all memberships "
                "and non-system collections.",
                self.log_prefix,
            )
            return

        memberships, collections = self.database.reset_library()
        self.summary.reset_performed = True
        self.summary.memberships_deleted = memberships
        self.summary.collections_deleted = collections

    def _mirrored_children(self, node: PlaylistNode) -> List[PlaylistNode]:
        """Children of ``node`` that take part in the mirror."""
        children = []
        for child in node.children:
            name = child.name
            if not name.strip() or child.node_type is None:
                continue
            if child.is_folder and name.casefold() == LIBRARY_MANAGEMENT.casefold():
                continue
            if child.is_playlist and name.casefold() in _SKIPPED_PLAYLIST_NAMES:
                continue
            children.append(child)
        return children

    def _count_tracks(self, node: PlaylistNode) -> int:
        total = 0
        for child in self._mirrored_children(node):
            if child.is_playlist:
                total += len(child.track_keys())
            else:
                total += self._count_tracks(child)
        return total

    def _traverse(
        self, node: PlaylistNode, parent_id: Optional[str], context: MirrorContext
    ) -> None:
        mirrored = self._mirrored_children(node)
        for child in node.children:
            if child in mirrored:
                continue
            if child.is_folder:
                logger.warning("Skipping '%s' folder and its contents.", child.name)
            elif child.is_playlist:
                logger.warning("Skipping '%s'.", child.name)
                self.summary.playlists_skipped += 1

        for child in mirrored:
            collection_id = self._get_or_create_collection(
                child.name, parent_id, child.is_folder, context
            )
            if child.is_playlist:
                self._mirror_playlist(child, collection_id, context)
            else:
                self._traverse(child, collection_id, context)

    def _get_or_create_collection(
        self,
        name: str,
        parent_id: Optional[str],
        is_folder: bool,
        context: MirrorContext,
    ) -> str:
        kind = "folder" if is_folder else "playlist"
        key = CollectionKey.of(parent_id, name, is_folder)
        existing = context.collections.get(key)
        if existing is not None:
            self.summary.collections_existing += 1
            return existing

        if self.dry_run:
            collection_id = str(uuid.uuid4())
        else:
            collection_id = self.database.create_collection(name, is_folder, parent_id)

        context.collections[key] = collection_id
        self.summary.collections_created += 1
        logger.debug(
            "%sCreated %s '%s' (Id=%s, Parent=%s)",
            self.log_prefix,
            kind,
            name,
            collection_id,
            parent_id,
        )
        return collection_id

    def _playlist_state(self, collection_id: str, context: MirrorContext) -> Set[str]:
        """Load the member set and next sequence of a playlist on first visit."""
        if collection_id not in context.members:
            if context.simulate_empty:
                context.members[collection_id] = set()
                context.next_sequence[collection_id] = 0
            else:
                context.members[collection_id] = self.database.songs_in_playlist(
                    collection_id
                )
                context.next_sequence[collection_id] = (
                    self.database.max_sequence_in_playlist(collection_id) + 1
                )
        return context.members[collection_id]

    def _mirror_playlist(
        self, playlist: PlaylistNode, collection_id: str, context: MirrorContext
    ) -> None:
        members = self._playlist_state(collection_id, context)
        sequence = context.next_sequence[collection_id]

        queued: List[Membership] = []
        existing = 0
        for track_id in playlist.track_keys():
            self._progress_update(playlist.name)

            track = self.library.get_track_by_id(track_id)
            if track is None:
                logger.debug("Track %s is not in the XML collection", track_id)
                continue

            key = path_key(track.location)
            song_id = context.song_ids_by_path.get(key) if key else None
            if song_id is None:
                context.missing_paths.add(key or track.location)
                logger.warning(
                    "Song not found in MIK for playlist '%s': %s (normalized='%s')",
                    playlist.name,
                    track.file_path,
                    key,
                )
                continue

            if song_id in members:
                existing += 1
                continue

            queued.append(Membership(song_id, collection_id, sequence))
            members.add(song_id)
            logger.debug(
                "%sQueued SongId=%s Path='%s' for playlist '%s' seq=%d",
                self.log_prefix,
                song_id,
                track.file_path,
                playlist.name,
                sequence,
            )
            sequence += 1

        context.next_sequence[collection_id] = sequence
        self.summary.memberships_existing += existing

        if queued:
            if not self.dry_run:
                self.database.add_memberships(queued)
            self.summary.memberships_inserted += len(queued)
            logger.debug(
                "%sInserted %d memberships into playlist '%s'.",
                self.log_prefix,
                len(queued),
                playlist.name,
            )
        if existing:
            logger.debug(
                "Playlist '%s': skipped %d already existing memberships.",
                playlist.name,
                existing,
            )

    def _persist(self) -> None:
        self._progress_start(ProgressPhase.SAVING, 1)
        self.database.commit()
        self._in_transaction = False
        self._progress_complete()

    def _on_abort(self) -> None:
        if self._in_transaction:
            logger.error("Rolling back MIK database changes; nothing was written.")
            self.database.rollback()
            self._in_transaction = False

    def _report(self) -> PlaylistsToMikSummary:
        logger.info(
            "%sPlaylist sync complete: %d new collections, %d existing skipped, "
            "%d memberships inserted, %d songs not found in MIK",
            self.log_prefix,
            self.summary.collections_created,
            self.summary.collections_existing,
            self.summary.memberships_inserted,
            self.summary.tracks_missing_in_mik,
        )
        if self.dry_run:
            logger.info("%sNo changes persisted.", self.log_prefix)
        return self.summary
