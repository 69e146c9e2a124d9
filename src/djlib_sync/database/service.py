"""Database service for reading and extending the Mixed In Key library."""

import logging
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

from sqlalchemy import create_engine, delete, func, not_, select
from sqlalchemy.orm import Session, sessionmaker

from ..constants import BACKUP_FOLDER_NAME
from ..core.errors import PreconditionError
from ..utils.backup import backup_timestamp, create_backup_copy
from ..utils.paths import path_key
from .models import (
    SYSTEM_COLLECTION_CLAUSE,
    Collection,
    CollectionKey,
    Membership,
    Song,
    SongCollectionMembership,
)

logger = logging.getLogger(__name__)

# Values MIK itself uses for user-created folders and playlists
NEW_COLLECTION_SEQUENCE = 0
NEW_COLLECTION_LIBRARY_TYPE_ID = 1


class MikDatabaseService:
    """Service for MIK database queries and transaction management.

    One session is held for the lifetime of the service so that a whole
    mirror run can execute inside a single transaction.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize database service.

        Args:
            db_path: Path to an existing MIKStore.db

        Raises:
            PreconditionError: If the database file does not exist
        """
        self.db_path = Path(db_path)
        if not self.db_path.is_file():
            raise PreconditionError(f"MIK database not found: {self.db_path}")

        db_url = f"sqlite:///{self.db_path}"
        self.engine = create_engine(db_url, echo=False)
        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, bind=self.engine
        )
        self._session: Optional[Session] = None

        logger.info("MIK database opened: %s", self.db_path)

    def get_session(self) -> Session:
        """Get the service's session, creating it on first use."""
        if self._session is None:
            self._session = self.SessionLocal()
        return self._session

    # =========================================================================
    # Transactions
    # =========================================================================

    def begin(self) -> None:
        """Begin a transaction unless one is already open."""
        session = self.get_session()
        if not session.in_transaction():
            session.begin()

    def commit(self) -> None:
        """Commit the current transaction."""
        self.get_session().commit()

    def rollback(self) -> None:
        """Roll back the current transaction."""
        self.get_session().rollback()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Run a block in one transaction.

        Commits when the block finishes, rolls back and re-raises on any
        exception so that nothing is partially written.
        """
        self.begin()
        try:
            yield self.get_session()
            self.commit()
        except Exception:
            logger.error("Rolling back MIK database transaction")
            self.rollback()
            raise

    # =========================================================================
    # Snapshots
    # =========================================================================

    def existing_collections(
        self, system_only: bool = False
    ) -> Dict[CollectionKey, str]:
        """Snapshot every collection keyed by its natural key.

        Args:
            system_only: Only include MIK's built-in rows (the state after a
                reset)

        Returns:
            Mapping of natural key to collection id (first row wins on collision)
        """
        stmt = select(
            Collection.id,
            Collection.name,
            Collection.parent_folder_id,
            Collection.is_folder,
        )
        if system_only:
            stmt = stmt.where(SYSTEM_COLLECTION_CLAUSE)
        collections: Dict[CollectionKey, str] = {}
        for coll_id, name, parent_id, is_folder in self.get_session().execute(stmt):
            key = CollectionKey.of(parent_id, name, bool(is_folder))
            collections.setdefault(key, coll_id)

        logger.debug("Loaded %d existing MIK collections", len(collections))
        return collections

    def song_ids_by_path(self) -> Dict[str, str]:
        """Index every song by its normalized, case-folded file path.

        Returns:
            Mapping of path key to song id (first row wins on collision)
        """
        songs: Dict[str, str] = {}
        for song_id, file in self.get_session().execute(select(Song.id, Song.file)):
            key = path_key(file)
            if key:
                songs.setdefault(key, song_id)

        logger.debug("Indexed %d MIK songs by path", len(songs))
        return songs

    # =========================================================================
    # Collection Operations
    # =========================================================================

    def create_collection(
        self, name: str, is_folder: bool, parent_id: Optional[str] = None
    ) -> str:
        """Insert a new folder or playlist.

        Args:
            name: Display name
            is_folder: True for a folder, False for a playlist
            parent_id: Parent folder id, None for a top-level collection

        Returns:
            Id of the new collection
        """
        collection = Collection(
            id=str(uuid.uuid4()),
            external_id=None,
            name=name,
            emoji=None,
            sequence=NEW_COLLECTION_SEQUENCE,
            library_type_id=NEW_COLLECTION_LIBRARY_TYPE_ID,
            is_library=False,
            is_folder=is_folder,
            parent_folder_id=parent_id,
        )
        session = self.get_session()
        session.add(collection)
        session.flush()
        logger.debug("Created MIK collection: %s", collection)
        return collection.id

    def root_folder_id(self, name: str) -> Optional[str]:
        """Get the id of a top-level folder by exact name."""
        stmt = (
            select(Collection.id)
            .where(
                Collection.name == name,
                Collection.is_folder.is_(True),
                Collection.parent_folder_id.is_(None),
            )
            .limit(1)
        )
        return self.get_session().scalar(stmt)

    def child_folders(self, parent_id: str) -> List[Tuple[str, str]]:
        """Get (id, name) of the folders directly below a folder."""
        return self._children(parent_id, is_folder=True)

    def child_playlists(self, parent_id: str) -> List[Tuple[str, str]]:
        """Get (id, name) of the playlists directly below a folder."""
        return self._children(parent_id, is_folder=False)

    def _children(self, parent_id: str, is_folder: bool) -> List[Tuple[str, str]]:
        stmt = (
            select(Collection.id, Collection.name)
            .where(
                Collection.parent_folder_id == parent_id,
                Collection.is_folder.is_(is_folder),
            )
            .order_by(Collection.sequence, Collection.name)
        )
        return [(row.id, row.name or "") for row in self.get_session().execute(stmt)]

    # =========================================================================
    # Membership Operations
    # =========================================================================

    def max_sequence_in_playlist(self, collection_id: str) -> int:
        """Highest membership sequence of a playlist, -1 when it is empty."""
        stmt = select(
            func.coalesce(func.max(SongCollectionMembership.sequence), -1)
        ).where(SongCollectionMembership.collection_id == collection_id)
        return int(self.get_session().scalar(stmt))

    def songs_in_playlist(self, collection_id: str) -> Set[str]:
        """Ids of the songs already in a playlist."""
        stmt = select(SongCollectionMembership.song_id).where(
            SongCollectionMembership.collection_id == collection_id
        )
        return {song_id for song_id in self.get_session().scalars(stmt) if song_id}

    def playlist_song_files(self, collection_id: str) -> List[str]:
        """File paths of a playlist's songs in playlist order."""
        stmt = (
            select(Song.file)
            .join(SongCollectionMembership, SongCollectionMembership.song_id == Song.id)
            .where(SongCollectionMembership.collection_id == collection_id)
            .order_by(SongCollectionMembership.sequence)
        )
        return [file for file in self.get_session().scalars(stmt) if file]

    def add_memberships(self, memberships: Iterable[Membership]) -> int:
        """Insert song-in-playlist rows.

        Args:
            memberships: Rows to insert

        Returns:
            Number of rows inserted
        """
        rows = [
            SongCollectionMembership(
                id=str(uuid.uuid4()),
                song_id=item.song_id,
                collection_id=item.collection_id,
                sequence=item.sequence,
            )
            for item in memberships
        ]
        if not rows:
            return 0

        session = self.get_session()
        session.add_all(rows)
        session.flush()
        logger.debug("Inserted %d MIK memberships", len(rows))
        return len(rows)

    # =========================================================================
    # Maintenance
    # =========================================================================

    def reset_library(self) -> Tuple[int, int]:
        """Delete all memberships and every non-system collection.

        Runs in its own transaction; irreversible once committed.

        Returns:
            Tuple of (memberships deleted, collections deleted)
        """
        with self.transaction() as session:
            memberships = session.execute(delete(SongCollectionMembership)).rowcount
            collections = session.execute(
                delete(Collection).where(not_(SYSTEM_COLLECTION_CLAUSE))
            ).rowcount

        logger.warning(
            "MIK library reset: deleted %d memberships and %d collections",
            memberships,
            collections,
        )
        return memberships, collections

    def create_backup(self, backup_folder_name: str = BACKUP_FOLDER_NAME) -> Path:
        """Copy the database file next to itself before mutating it.

        Returns:
            Path of the backup file

        Raises:
            BackupError: If the backup could not be written
        """
        backup_name = f"{self.db_path.stem}_{backup_timestamp()}.db"
        return create_backup_copy(self.db_path, backup_name, backup_folder_name)

    def close(self) -> None:
        """Close database connection."""
        if self._session is not None:
            self._session.close()
            self._session = None
        self.engine.dispose()
        logger.debug("MIK database connection closed")
