"""Delete the audio files of tracks listed in LIBRARY MANAGEMENT/Delete.

Only files on disk are removed. The XML, its collection entries and the
Delete playlist are left as they are; Rekordbox drops the missing tracks on
the next import.
"""

import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from ...database.progress_tracker import ProgressPhase, ProgressTracker
from ..rekordbox import CollectionTrack, RekordboxXmlLibrary
from .base import Reconciler

logger = logging.getLogger(__name__)


@dataclass
class DeleteTracksSummary:
    """Outcome counts of a delete run.

    In dry-run ``deleted`` counts the files that would be deleted.
    """

    targeted: int = 0
    deleted: int = 0
    failed: int = 0
    missing: int = 0
    dry_run: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


class DeleteTracksReconciler(Reconciler[DeleteTracksSummary]):
    """Delete the files behind the tracks in the Delete playlist."""

    def __init__(
        self,
        library: RekordboxXmlLibrary,
        dry_run: bool = False,
        progress: Optional[ProgressTracker] = None,
    ) -> None:
        super().__init__(dry_run, progress)
        self.library = library
        self.summary = DeleteTracksSummary(dry_run=dry_run)

    def _validate(self) -> None:
        self.library.require_library_management_folder()

    def _tracks_to_delete(self, track_ids: Set[str]) -> List[CollectionTrack]:
        return [
            track
            for track in self.library.get_collection_tracks()
            if track.track_id in track_ids
        ]

    def _process(self) -> None:
        track_ids = set(self.library.get_tracks_to_delete())
        if not track_ids:
            logger.warning(
                "No 'Delete' playlist or no tracks found. Nothing to delete."
            )
            return

        tracks = self._tracks_to_delete(track_ids)
        self.summary.targeted = len(tracks)
        logger.info("Found %d tracks to be deleted.", len(tracks))

        self._progress_start(ProgressPhase.DELETING_FILES, len(tracks))
        for track in tracks:
            self._delete_file(track)
            self._progress_update(track.name)
        self._progress_complete()

    def _delete_file(self, track: CollectionTrack) -> None:
        file_path = track.file_path
        if not file_path or not Path(file_path).is_file():
            logger.warning("Track file not found: %s", file_path)
            self.summary.missing += 1
            return

        name = os.path.basename(file_path)
        if self.dry_run:
            logger.info("%sWould delete: %s", self.log_prefix, name)
            self.summary.deleted += 1
            return

        try:
            os.remove(file_path)
        except OSError as e:
            logger.error("Failed to delete %s: %s", name, e)
            self.summary.failed += 1
            return

        logger.info("Deleted: %s", name)
        self.summary.deleted += 1

    def _report(self) -> DeleteTracksSummary:
        logger.info(
            "%sDelete complete: deleted %d, failed %d, missing %d, targeted %d",
            self.log_prefix,
            self.summary.deleted,
            self.summary.failed,
            self.summary.missing,
            self.summary.targeted,
        )
        return self.summary
