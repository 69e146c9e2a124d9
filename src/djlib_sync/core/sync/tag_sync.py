"""Sync Mixed In Key analysis results from comment tags into Rekordbox.

MIK writes ``"<key> - Energy <level>"`` at the start of each file's comment.
The energy level is mapped to a Rekordbox colour and, for M4A files, the key
is written to ``Tonality`` (Rekordbox mis-reads the key tag of those files).
Every track that changes is also added to a review playlist under
LIBRARY MANAGEMENT so it can be re-imported selectively.
"""

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from ...constants import (
    BACKUP_FOLDER_NAME,
    KEY_WORKAROUND_KIND,
    MIK_ENERGY_ANALYSIS,
    MIK_KEY_ANALYSIS,
)
from ...database.progress_tracker import ProgressPhase, ProgressTracker
from ...models import EnergyColourMapping
from ..rekordbox import CollectionTrack, PlaylistNode, RekordboxXmlLibrary
from ..tags import (
    CommentReader,
    MutagenCommentReader,
    TagReadError,
    parse_energy_level,
    parse_initial_key,
)
from .base import Reconciler

logger = logging.getLogger(__name__)


@dataclass
class TagSyncSummary:
    """Outcome counts of a tag sync run."""

    tracks_processed: int = 0
    key_fixed: int = 0
    colour_fixed: int = 0
    missing_key: int = 0
    missing_energy: int = 0
    wrong_format_skipped: int = 0
    file_missing: int = 0
    tag_read_failed: int = 0
    dry_run: bool = False
    xml_path: Optional[str] = None
    backup_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


class TagSyncReconciler(Reconciler[TagSyncSummary]):
    """Apply MIK key and energy tags to Rekordbox tonality and colour."""

    def __init__(
        self,
        library: RekordboxXmlLibrary,
        energy_mapping: EnergyColourMapping,
        tag_reader: Optional[CommentReader] = None,
        dry_run: bool = False,
        progress: Optional[ProgressTracker] = None,
        backup_folder_name: str = BACKUP_FOLDER_NAME,
    ) -> None:
        """Initialize the reconciler.

        Args:
            library: Loaded Rekordbox XML
            energy_mapping: Energy level -> colour code table
            tag_reader: Comment reader, mutagen-backed by default
            dry_run: Report what would change without touching any file
            progress: Optional progress tracker
            backup_folder_name: Folder the XML backup is written to
        """
        super().__init__(dry_run, progress, backup_folder_name)
        self.library = library
        self.energy_mapping = energy_mapping
        self.tag_reader = tag_reader or MutagenCommentReader()
        self.summary = TagSyncSummary(dry_run=dry_run, xml_path=str(library.path))
        self._key_playlist: Optional[PlaylistNode] = None
        self._energy_playlist: Optional[PlaylistNode] = None

    def _validate(self) -> None:
        self.library.require_library_management_folder()

    def _backup(self) -> None:
        backup = self.library.create_backup(self.backup_folder_name)
        self.summary.backup_path = str(backup)

    def _process(self) -> None:
        if not self.dry_run:
            # Fresh review playlists, so they only hold this run's changes
            self._key_playlist = self.library.initialize_library_management_playlist(
                MIK_KEY_ANALYSIS
            )
            self._energy_playlist = (
                self.library.initialize_library_management_playlist(
                    MIK_ENERGY_ANALYSIS
                )
            )
        else:
            logger.info(
                "%sSimulating tag sync. No XML modifications will be written.",
                self.log_prefix,
            )

        tracks = self.library.get_collection_tracks()
        self._progress_start(ProgressPhase.SYNCING_TAGS, len(tracks))
        for track in tracks:
            self.summary.tracks_processed += 1
            self._sync_track(track)
            self._progress_update(track.name)
        self._progress_complete()

        if self._key_playlist is not None and self._energy_playlist is not None:
            self.library.update_playlist_entries(
                self._key_playlist, self.summary.key_fixed
            )
            self.library.update_playlist_entries(
                self._energy_playlist, self.summary.colour_fixed
            )

    def _sync_track(self, track: CollectionTrack) -> None:
        path = track.file_path
        if not path or not Path(path).is_file():
            logger.warning("Track not found: %s", path)
            self.summary.file_missing += 1
            return

        file_name = Path(path).name
        try:
            comment = self.tag_reader.read_comment(path)
        except TagReadError as e:
            logger.error("Failed to read tag for '%s': %s", file_name, e)
            self.summary.tag_read_failed += 1
            return

        self._sync_colour(track, file_name, comment)
        self._sync_key(track, file_name, comment)

    def _sync_colour(
        self, track: CollectionTrack, file_name: str, comment: str
    ) -> None:
        energy_level = parse_energy_level(comment)
        if energy_level is None:
            self.summary.missing_energy += 1
            logger.warning("No energy level in comment for '%s'", file_name)
            return

        expected = self.energy_mapping.colour_for(energy_level)
        if expected is None:
            logger.debug(
                "No colour mapped for energy %d ('%s')", energy_level, file_name
            )
            return

        current = track.colour
        if current.casefold() == expected.casefold():
            return

        if self._energy_playlist is not None:
            track.colour = expected
            self.library.add_track_to_playlist(self._energy_playlist, track.track_id)
        logger.debug(
            "%sUpdated track colour for '%s': %s -> %s (energy %d)",
            self.log_prefix,
            file_name,
            current,
            expected,
            energy_level,
        )
        self.summary.colour_fixed += 1

    def _sync_key(self, track: CollectionTrack, file_name: str, comment: str) -> None:
        if track.kind.casefold() != KEY_WORKAROUND_KIND.casefold():
            self.summary.wrong_format_skipped += 1
            return

        initial_key = parse_initial_key(comment)
        if initial_key is None:
            self.summary.missing_key += 1
            logger.warning("Invalid or missing key token for '%s'", file_name)
            return

        current = track.tonality
        if current.casefold() == initial_key.casefold():
            return

        if self._key_playlist is not None:
            track.tonality = initial_key
            self.library.add_track_to_playlist(self._key_playlist, track.track_id)
        logger.debug(
            "%sFixed tonality for '%s': %s -> %s",
            self.log_prefix,
            file_name,
            current,
            initial_key,
        )
        self.summary.key_fixed += 1

    def _persist(self) -> None:
        self._progress_start(ProgressPhase.SAVING, 1)
        self.library.save()
        self._progress_complete()
        logger.info("XML updated in place: %s", self.library.path)

    def _report(self) -> TagSyncSummary:
        logger.info(
            "%sTag sync complete: %d tracks, key fixed %d, colour fixed %d",
            self.log_prefix,
            self.summary.tracks_processed,
            self.summary.key_fixed,
            self.summary.colour_fixed,
        )
        return self.summary
