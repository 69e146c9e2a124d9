"""Shared fixtures: a small Rekordbox XML export and a seeded MIK database."""

from pathlib import Path
from typing import Any, Callable, List
from urllib.parse import quote

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from djlib_sync.core.rekordbox import RekordboxXmlLibrary
from djlib_sync.database.models import Base, Collection, Song, SongCollectionMembership
from djlib_sync.database.service import MikDatabaseService
from djlib_sync.models import EnergyColourMapping

SAMPLE_XML = """<?xml version="1.0" encoding="UTF-8"?>
<DJ_PLAYLISTS Version="1.0.0">
  <PRODUCT Name="rekordbox" Version="6.8.5" Company="AlphaTheta"/>
  <COLLECTION Entries="3">
    <TRACK TrackID="1" Name="Alpha" Kind="M4A File" Location="{alpha}" Tonality="3A" Colour="0x000000"/>
    <TRACK TrackID="2" Name="Beta" Kind="MP3 File" Location="{beta}" Tonality="8B" Colour="0xFFFF00"/>
    <TRACK TrackID="3" Name="Gamma" Kind="M4A File" Location="{gamma}" Tonality="1A"/>
  </COLLECTION>
  <PLAYLISTS>
    <NODE Type="0" Name="ROOT" Count="3">
      <NODE Type="0" Name="LIBRARY MANAGEMENT" Count="1">
        <NODE Name="Delete" Type="1" KeyType="0" Entries="1">
          <TRACK Key="2"/>
        </NODE>
      </NODE>
      <NODE Type="0" Name="House" Count="2">
        <NODE Name="Deep" Type="1" KeyType="0" Entries="2">
          <TRACK Key="1"/>
          <TRACK Key="2"/>
        </NODE>
        <NODE Name="CUE Analysis Playlist" Type="1" KeyType="0" Entries="1">
          <TRACK Key="3"/>
        </NODE>
      </NODE>
      <NODE Name="Warmup" Type="1" KeyType="0" Entries="3">
        <TRACK Key="3"/>
        <TRACK Key="1"/>
        <TRACK Key="2"/>
      </NODE>
    </NODE>
  </PLAYLISTS>
</DJ_PLAYLISTS>
"""

SYSTEM_COLLECTION_ID = "sys-library"
SETS_FOLDER_ID = "folder-sets"
LATE_FOLDER_ID = "folder-late"
PEAK_PLAYLIST_ID = "playlist-peak"
CLOSING_PLAYLIST_ID = "playlist-closing"


def file_uri(path: Path) -> str:
    """Rekordbox-style location for a local file."""
    return "file://localhost" + quote(str(path))


@pytest.fixture
def music_dir(tmp_path):
    """Directory holding three dummy audio files."""
    directory = tmp_path / "Music"
    directory.mkdir()
    for name in ("Alpha One.m4a", "Beta.mp3", "Gamma.m4a"):
        (directory / name).write_bytes(b"\x00" * 16)
    return directory


@pytest.fixture
def xml_path(tmp_path, music_dir):
    """A Rekordbox XML export referencing the files in ``music_dir``."""
    directory = tmp_path / "rekordbox"
    directory.mkdir()
    path = directory / "collection.xml"
    path.write_text(
        SAMPLE_XML.format(
            alpha=file_uri(music_dir / "Alpha One.m4a"),
            beta=file_uri(music_dir / "Beta.mp3"),
            gamma=file_uri(music_dir / "Gamma.m4a"),
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def library(xml_path):
    """Loaded sample library."""
    return RekordboxXmlLibrary.load(xml_path)


@pytest.fixture
def energy_mapping():
    """Energy -> colour table used by the tag sync tests."""
    return EnergyColourMapping.model_validate(
        {5: "0x00FF00", 6: "0xFFFF00", 8: "0xFF0000"}
    )


@pytest.fixture
def mik_db_path(tmp_path, music_dir):
    """A MIK database with one system row, two songs and a 'Sets' folder.

    Gamma is not analysed in MIK. The 'Sets' folder holds the 'Peak' playlist
    (Beta, Alpha) and the 'Late' folder with 'Closing' (Alpha, unknown file).
    """
    directory = tmp_path / "mik"
    directory.mkdir()
    path = directory / "MIKStore.db"

    engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        session.add_all(
            [
                Collection(
                    id=SYSTEM_COLLECTION_ID,
                    name="Library",
                    sequence=None,
                    library_type_id=0,
                    is_library=True,
                    is_folder=False,
                    parent_folder_id=None,
                ),
                Collection(
                    id=SETS_FOLDER_ID,
                    name="Sets",
                    sequence=0,
                    library_type_id=1,
                    is_library=False,
                    is_folder=True,
                    parent_folder_id=None,
                ),
                Collection(
                    id=LATE_FOLDER_ID,
                    name="Late",
                    sequence=0,
                    library_type_id=1,
                    is_library=False,
                    is_folder=True,
                    parent_folder_id=SETS_FOLDER_ID,
                ),
                Collection(
                    id=PEAK_PLAYLIST_ID,
                    name="Peak",
                    sequence=0,
                    library_type_id=1,
                    is_library=False,
                    is_folder=False,
                    parent_folder_id=SETS_FOLDER_ID,
                ),
                Collection(
                    id=CLOSING_PLAYLIST_ID,
                    name="Closing",
                    sequence=0,
                    library_type_id=1,
                    is_library=False,
                    is_folder=False,
                    parent_folder_id=LATE_FOLDER_ID,
                ),
                Song(id="song-alpha", file=str(music_dir / "Alpha One.m4a")),
                Song(id="song-beta", file=str(music_dir / "Beta.mp3")),
                Song(id="song-unknown", file="/elsewhere/Unknown.mp3"),
                SongCollectionMembership(
                    id="m1",
                    song_id="song-beta",
                    collection_id=PEAK_PLAYLIST_ID,
                    sequence=0,
                ),
                SongCollectionMembership(
                    id="m2",
                    song_id="song-alpha",
                    collection_id=PEAK_PLAYLIST_ID,
                    sequence=1,
                ),
                SongCollectionMembership(
                    id="m3",
                    song_id="song-alpha",
                    collection_id=CLOSING_PLAYLIST_ID,
                    sequence=0,
                ),
                SongCollectionMembership(
                    id="m4",
                    song_id="song-unknown",
                    collection_id=CLOSING_PLAYLIST_ID,
                    sequence=1,
                ),
            ]
        )
        session.commit()
    engine.dispose()
    return path


@pytest.fixture
def mik_db(mik_db_path):
    """Service over the seeded MIK database."""
    service = MikDatabaseService(mik_db_path)
    yield service
    service.close()


@pytest.fixture
def query_mik(mik_db_path) -> Callable[[Any], List[Any]]:
    """Run a statement against the MIK database on a fresh connection."""

    def run(stmt: Any) -> List[Any]:
        engine = create_engine(f"sqlite:///{mik_db_path}")
        try:
            with Session(engine) as session:
                return list(session.execute(stmt).all())
        finally:
            engine.dispose()

    return run
