"""Tests for mirroring the Rekordbox playlist tree into MIK."""

from unittest.mock import patch

import pytest
from conftest import SETS_FOLDER_ID, SYSTEM_COLLECTION_ID, file_uri
from sqlalchemy import func, select

from djlib_sync.constants import BACKUP_FOLDER_NAME
from djlib_sync.core.errors import OperationAborted
from djlib_sync.core.rekordbox import NodeType, RekordboxXmlLibrary
from djlib_sync.core.sync import PlaylistsToMikReconciler, RunState, is_reset_confirmed
from djlib_sync.database import Collection, Membership, SongCollectionMembership
from djlib_sync.utils.paths import path_key

BACKUP_TIMESTAMP = "djlib_sync.database.service.backup_timestamp"


def playlist_rows(query_mik, name):
    """(song id, sequence) of a playlist's memberships in order."""
    stmt = (
        select(SongCollectionMembership.song_id, SongCollectionMembership.sequence)
        .join(Collection, Collection.id == SongCollectionMembership.collection_id)
        .where(Collection.name == name)
        .order_by(SongCollectionMembership.sequence)
    )
    return [tuple(row) for row in query_mik(stmt)]


def table_counts(query_mik):
    collections = query_mik(select(func.count()).select_from(Collection))[0][0]
    memberships = query_mik(
        select(func.count()).select_from(SongCollectionMembership)
    )[0][0]
    return collections, memberships


def comparable(summary):
    data = summary.to_dict()
    for key in ("dry_run", "backup_path"):
        data.pop(key)
    return data


class TestResetConfirmation:
    """Test the reset confirmation token."""

    @pytest.mark.parametrize("token", ["RESET", "reset", "  Reset "])
    def test_confirmed(self, token):
        """Test accepted spellings."""
        assert is_reset_confirmed(token)

    @pytest.mark.parametrize("token", [None, "", "yes", "RESET!"])
    def test_not_confirmed(self, token):
        """Test anything else declines."""
        assert not is_reset_confirmed(token)


class TestPlaylistsToMik:
    """Test a real mirror run."""

    def test_creates_tree_and_memberships(self, library, mik_db, query_mik):
        """Test folders, playlists and memberships are created."""
        summary = PlaylistsToMikReconciler(library, mik_db).run()

        assert summary.collections_created == 3
        assert summary.collections_existing == 0
        assert summary.memberships_inserted == 4
        assert summary.memberships_existing == 0
        assert summary.playlists_skipped == 1

        house = query_mik(
            select(Collection.id, Collection.is_folder, Collection.parent_folder_id)
            .where(Collection.name == "House")
        )
        assert len(house) == 1
        assert house[0].is_folder is True
        assert house[0].parent_folder_id is None

        deep = query_mik(
            select(Collection.parent_folder_id, Collection.is_folder).where(
                Collection.name == "Deep"
            )
        )
        assert deep == [(house[0].id, False)]
        assert playlist_rows(query_mik, "Deep") == [
            ("song-alpha", 0),
            ("song-beta", 1),
        ]

    def test_skips_management_and_cue_playlists(self, library, mik_db, query_mik):
        """Test tool playlists are never mirrored."""
        PlaylistsToMikReconciler(library, mik_db).run()

        names = {row.name for row in query_mik(select(Collection.name))}
        assert "LIBRARY MANAGEMENT" not in names
        assert "Delete" not in names
        assert "CUE Analysis Playlist" not in names

    def test_tracks_missing_in_mik(self, library, mik_db, query_mik, music_dir):
        """Test tracks MIK never analysed are reported and left out."""
        summary = PlaylistsToMikReconciler(library, mik_db).run()

        assert summary.tracks_missing_in_mik == 1
        assert summary.missing_paths == [path_key(str(music_dir / "Gamma.m4a"))]
        # Gamma comes first in Warmup but has no song, so Alpha gets sequence 0
        assert playlist_rows(query_mik, "Warmup") == [
            ("song-alpha", 0),
            ("song-beta", 1),
        ]

    def test_appends_after_existing_memberships(self, library, mik_db, query_mik):
        """Test new rows continue after the highest existing sequence."""
        warmup_id = mik_db.create_collection("warmup", False)
        mik_db.add_memberships([Membership("song-beta", warmup_id, 4)])
        mik_db.commit()

        summary = PlaylistsToMikReconciler(library, mik_db).run()

        assert summary.collections_existing == 1
        assert summary.collections_created == 2
        assert summary.memberships_existing == 1
        assert playlist_rows(query_mik, "warmup") == [
            ("song-beta", 4),
            ("song-alpha", 5),
        ]

    def test_second_run_adds_nothing(self, library, mik_db, query_mik):
        """Test the mirror is idempotent."""
        timestamps = ["20240101_120000", "20240101_120001"]
        with patch(BACKUP_TIMESTAMP, side_effect=timestamps):
            PlaylistsToMikReconciler(library, mik_db).run()
            counts = table_counts(query_mik)
            summary = PlaylistsToMikReconciler(library, mik_db).run()

        assert summary.collections_created == 0
        assert summary.collections_existing == 3
        assert summary.memberships_inserted == 0
        assert summary.memberships_existing == 4
        assert table_counts(query_mik) == counts

    def test_repeated_track_inserted_once(self, library, mik_db, query_mik):
        """Test a track listed twice in one playlist gets one membership."""
        house = library.get_playlists_root().child("House", NodeType.FOLDER)
        library.add_track_to_playlist(house.child("Deep", NodeType.PLAYLIST), "1")

        summary = PlaylistsToMikReconciler(library, mik_db).run()

        assert summary.memberships_inserted == 4
        assert summary.memberships_existing == 1
        assert playlist_rows(query_mik, "Deep") == [
            ("song-alpha", 0),
            ("song-beta", 1),
        ]

    def test_two_locations_for_one_song(self, xml_path, music_dir, mik_db, query_mik):
        """Test differently written locations of one file share a membership."""
        alias = music_dir / "Crates" / ".." / "Alpha One.m4a"
        xml_path.write_text(
            xml_path.read_text(encoding="utf-8").replace(
                '<COLLECTION Entries="3">',
                '<COLLECTION Entries="4">\n'
                f'    <TRACK TrackID="4" Name="Alpha" Location="{file_uri(alias)}"/>',
            ),
            encoding="utf-8",
        )
        library = RekordboxXmlLibrary.load(xml_path)
        house = library.get_playlists_root().child("House", NodeType.FOLDER)
        library.add_track_to_playlist(house.child("Deep", NodeType.PLAYLIST), "4")

        summary = PlaylistsToMikReconciler(library, mik_db).run()

        assert summary.memberships_inserted == 4
        assert summary.memberships_existing == 1
        assert summary.tracks_missing_in_mik == 1
        assert playlist_rows(query_mik, "Deep") == [
            ("song-alpha", 0),
            ("song-beta", 1),
        ]

    def test_backup_written(self, library, mik_db, mik_db_path):
        """Test the database is backed up before it is changed."""
        summary = PlaylistsToMikReconciler(library, mik_db).run()

        backups = list((mik_db_path.parent / BACKUP_FOLDER_NAME).iterdir())
        assert len(backups) == 1
        assert summary.backup_path == str(backups[0])

    def test_rolls_back_on_failure(self, library, mik_db, query_mik):
        """Test a failure part way leaves the database untouched."""
        original = mik_db.add_memberships
        calls = []

        def fail_second_batch(rows):
            if calls:
                raise RuntimeError("disk full")
            calls.append(rows)
            return original(rows)

        reconciler = PlaylistsToMikReconciler(library, mik_db)
        with patch.object(mik_db, "add_memberships", side_effect=fail_second_batch):
            with pytest.raises(RuntimeError, match="disk full"):
                reconciler.run()

        assert reconciler.state == RunState.ABORTED
        assert table_counts(query_mik) == (5, 4)
        assert query_mik(select(Collection.id).where(Collection.name == "House")) == []


class TestPlaylistsToMikDryRun:
    """Test dry-run mode."""

    def test_counts_match_real_run(self, library, mik_db, query_mik, mik_db_path):
        """Test dry-run reports the real run's counts without writing."""
        dry = PlaylistsToMikReconciler(library, mik_db, dry_run=True).run()

        assert table_counts(query_mik) == (5, 4)
        assert not (mik_db_path.parent / BACKUP_FOLDER_NAME).exists()

        real = PlaylistsToMikReconciler(library, mik_db).run()
        assert comparable(dry) == comparable(real)


class TestPlaylistsToMikReset:
    """Test the library reset option."""

    def test_confirmed_reset(self, library, mik_db, query_mik):
        """Test a confirmed reset wipes user collections first."""
        summary = PlaylistsToMikReconciler(
            library, mik_db, reset_library=True, reset_confirmation="RESET"
        ).run()

        assert summary.reset_performed
        assert summary.memberships_deleted == 4
        assert summary.collections_deleted == 4
        assert summary.collections_created == 3

        ids = {row.id for row in query_mik(select(Collection.id))}
        assert SYSTEM_COLLECTION_ID in ids
        assert SETS_FOLDER_ID not in ids
        assert len(ids) == 4

    def test_declined_reset_aborts(self, library, mik_db, query_mik, mik_db_path):
        """Test a wrong token aborts before the backup."""
        reconciler = PlaylistsToMikReconciler(
            library, mik_db, reset_library=True, reset_confirmation="no"
        )

        with pytest.raises(OperationAborted):
            reconciler.run()

        assert reconciler.state == RunState.ABORTED
        assert table_counts(query_mik) == (5, 4)
        assert not (mik_db_path.parent / BACKUP_FOLDER_NAME).exists()

    def test_dry_run_reset_simulates_empty_library(self, library, mik_db, query_mik):
        """Test a dry-run reset counts against the post-reset state."""
        warmup_id = mik_db.create_collection("Warmup", False)
        mik_db.add_memberships([Membership("song-beta", warmup_id, 0)])
        mik_db.commit()

        summary = PlaylistsToMikReconciler(
            library, mik_db, reset_library=True, dry_run=True
        ).run()

        assert not summary.reset_performed
        assert summary.collections_created == 3
        assert summary.collections_existing == 0
        assert summary.memberships_inserted == 4
        assert table_counts(query_mik) == (6, 5)
