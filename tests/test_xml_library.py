"""Tests for the Rekordbox XML document store."""

from unittest.mock import patch

import pytest

from djlib_sync.constants import BACKUP_FOLDER_NAME
from djlib_sync.core.errors import BackupError, PreconditionError
from djlib_sync.core.rekordbox import NodeType, RekordboxXmlLibrary

NO_MANAGEMENT_XML = """<?xml version="1.0" encoding="UTF-8"?>
<DJ_PLAYLISTS Version="1.0.0">
  <COLLECTION Entries="0"/>
  <PLAYLISTS>
    <NODE Type="0" Name="ROOT" Count="1">
      <NODE Name="Warmup" Type="1" KeyType="0" Entries="0"/>
    </NODE>
  </PLAYLISTS>
</DJ_PLAYLISTS>
"""


class TestLoad:
    """Test loading XML exports."""

    def test_missing_file(self, tmp_path):
        """Test a missing file is a precondition failure."""
        with pytest.raises(PreconditionError, match="not found"):
            RekordboxXmlLibrary.load(tmp_path / "missing.xml")

    def test_malformed_file(self, tmp_path):
        """Test invalid XML is a precondition failure."""
        path = tmp_path / "broken.xml"
        path.write_text("<DJ_PLAYLISTS><COLLECTION>", encoding="utf-8")
        with pytest.raises(PreconditionError, match="Failed to parse"):
            RekordboxXmlLibrary.load(path)

    def test_collection_tracks(self, library, music_dir):
        """Test collection tracks are typed and decoded."""
        tracks = library.get_collection_tracks()
        assert [t.track_id for t in tracks] == ["1", "2", "3"]
        assert tracks[0].kind == "M4A File"
        assert tracks[0].file_path == str(music_dir / "Alpha One.m4a")
        assert tracks[2].colour == ""
        assert library.get_track_by_id("2").name == "Beta"
        assert library.get_track_by_id("99") is None


class TestLookups:
    """Test structural lookups."""

    def test_playlists_root(self, library):
        """Test the ROOT node is found."""
        root = library.get_playlists_root()
        assert root is not None
        assert root.is_folder
        assert [c.name for c in root.children] == [
            "LIBRARY MANAGEMENT",
            "House",
            "Warmup",
        ]

    def test_management_folder(self, library):
        """Test LIBRARY MANAGEMENT is found below ROOT."""
        folder = library.require_library_management_folder()
        assert folder.path == ["ROOT", "LIBRARY MANAGEMENT"]

    def test_missing_management_folder(self, tmp_path):
        """Test a missing LIBRARY MANAGEMENT folder is fatal."""
        path = tmp_path / "plain.xml"
        path.write_text(NO_MANAGEMENT_XML, encoding="utf-8")
        library = RekordboxXmlLibrary.load(path)

        assert library.get_library_management_folder() is None
        with pytest.raises(PreconditionError, match="LIBRARY MANAGEMENT"):
            library.require_library_management_folder()

    def test_missing_playlists_root(self, tmp_path):
        """Test a document without a ROOT folder is fatal."""
        path = tmp_path / "rootless.xml"
        path.write_text(
            NO_MANAGEMENT_XML.replace('Name="ROOT"', 'Name="TOP"'), encoding="utf-8"
        )
        library = RekordboxXmlLibrary.load(path)

        assert library.get_playlists_root() is None
        with pytest.raises(PreconditionError, match="Root playlist node"):
            library.require_playlists_root()

    def test_tracks_to_delete(self, library):
        """Test the Delete playlist track ids."""
        assert library.get_tracks_to_delete() == ["2"]

    def test_child_lookup_by_type(self, library):
        """Test child lookup distinguishes folders from playlists."""
        root = library.get_playlists_root()
        assert root.child("House", NodeType.FOLDER) is not None
        assert root.child("House", NodeType.PLAYLIST) is None
        assert root.child("Warmup", NodeType.PLAYLIST).entries == 3

    def test_find_folder_does_not_create(self, library):
        """Test find_folder leaves the document alone."""
        management = library.require_library_management_folder()
        before = len(management.children)

        assert library.find_folder("MIK Sync", "Sets") is None
        assert len(management.children) == before


class TestMutations:
    """Test in-memory document mutations."""

    def test_get_or_create_folder_nested(self, library):
        """Test nested folders are created once and counted."""
        folder = library.get_or_create_folder("MIK Sync", "Sets")
        assert folder.path == ["ROOT", "LIBRARY MANAGEMENT", "MIK Sync", "Sets"]

        management = library.require_library_management_folder()
        assert management.element.get("Count") == "2"

        again = library.get_or_create_folder("MIK Sync", "Sets")
        assert again is folder
        assert len(library.find_folder("MIK Sync").children) == 1

    def test_get_or_create_folder_needs_segments(self, library):
        """Test an empty path is rejected."""
        with pytest.raises(ValueError):
            library.get_or_create_folder()

    def test_get_or_create_playlist(self, library):
        """Test playlist creation is idempotent."""
        folder = library.get_or_create_folder("MIK Sync")
        playlist = library.get_or_create_playlist(folder, "Peak")

        assert playlist.is_playlist
        assert playlist.element.get("Entries") == "0"
        assert playlist.element.get("KeyType") == "0"
        assert library.get_or_create_playlist(folder, "Peak") is playlist
        assert folder.element.get("Count") == "1"

    def test_add_track_and_entries(self, library):
        """Test track references and entry counts."""
        folder = library.get_or_create_folder("MIK Sync")
        playlist = library.get_or_create_playlist(folder, "Peak")

        library.add_track_to_playlist(playlist, "1")
        library.add_track_to_playlist(playlist, "3")
        library.update_playlist_entries(playlist, len(playlist.track_elements()))

        assert playlist.track_keys() == ["1", "3"]
        assert playlist.has_track("3")
        assert not playlist.has_track("2")
        assert playlist.entries == 2

    def test_add_track_to_folder_rejected(self, library):
        """Test folders cannot hold tracks."""
        folder = library.get_or_create_folder("MIK Sync")
        with pytest.raises(ValueError):
            library.add_track_to_playlist(folder, "1")

    def test_initialize_management_playlist_resets(self, library):
        """Test an existing management playlist is emptied."""
        delete = library.initialize_library_management_playlist("Delete")

        assert delete.track_keys() == []
        assert delete.entries == 0
        assert delete.name == "Delete"
        assert delete.is_playlist
        assert library.get_tracks_to_delete() == []

    def test_initialize_management_playlist_creates(self, library):
        """Test a missing management playlist is created."""
        playlist = library.initialize_library_management_playlist("MIK Key Analysis")
        management = library.require_library_management_folder()
        assert management.child("MIK Key Analysis", NodeType.PLAYLIST) is playlist


class TestPersistence:
    """Test saving and backups."""

    def test_save_in_place(self, library, xml_path):
        """Test changes survive a save/load cycle."""
        library.get_track_by_id("1").colour = "0xFF0000"
        folder = library.get_or_create_folder("MIK Sync")
        playlist = library.get_or_create_playlist(folder, "Peak")
        library.add_track_to_playlist(playlist, "1")

        assert library.save() == xml_path

        reloaded = RekordboxXmlLibrary.load(xml_path)
        assert reloaded.get_track_by_id("1").colour == "0xFF0000"
        saved = reloaded.find_folder("MIK Sync").child("Peak", NodeType.PLAYLIST)
        assert saved.track_keys() == ["1"]

    def test_save_leaves_no_temp_files(self, library, xml_path):
        """Test the temporary file is moved over the original."""
        library.save()
        assert sorted(p.name for p in xml_path.parent.iterdir()) == [
            "collection.xml"
        ]

    def test_save_to_other_path(self, library, tmp_path, xml_path):
        """Test writing a copy leaves the original untouched."""
        original = xml_path.read_bytes()
        library.get_track_by_id("1").tonality = "5A"

        target = library.save(tmp_path / "out" / "copy.xml")

        assert target.exists()
        assert xml_path.read_bytes() == original

    def test_create_backup(self, library, xml_path):
        """Test the backup lands in the backup folder next to the XML."""
        with patch(
            "djlib_sync.core.rekordbox.xml_library.backup_timestamp",
            return_value="20240101_120000",
        ):
            backup = library.create_backup()

        assert backup == (
            xml_path.parent
            / BACKUP_FOLDER_NAME
            / "collection.xml.20240101_120000.bak.xml"
        )
        assert backup.read_bytes() == xml_path.read_bytes()

    def test_backup_never_overwrites(self, library):
        """Test a second backup at the same timestamp fails."""
        with patch(
            "djlib_sync.core.rekordbox.xml_library.backup_timestamp",
            return_value="20240101_120000",
        ):
            library.create_backup()
            with pytest.raises(BackupError, match="already exists"):
                library.create_backup()
