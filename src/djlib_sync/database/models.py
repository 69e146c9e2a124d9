"""SQLAlchemy models over the Mixed In Key library schema.

The schema belongs to Mixed In Key, so only the columns this tool reads or
writes are mapped and table/column names match MIKStore.db exactly. Tables are
never created here except by tests building a throwaway database.
"""

from typing import NamedTuple, Optional

from sqlalchemy import Boolean, Integer, String, and_
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class Collection(Base):
    """A folder or playlist in the MIK library tree."""

    __tablename__ = "Collection"

    id: Mapped[str] = mapped_column("Id", String, primary_key=True)
    external_id: Mapped[Optional[str]] = mapped_column(
        "ExternalId", String, nullable=True
    )
    name: Mapped[Optional[str]] = mapped_column("Name", String, nullable=True)
    emoji: Mapped[Optional[str]] = mapped_column("Emoji", String, nullable=True)
    # NULL only on MIK's built-in library rows
    sequence: Mapped[Optional[int]] = mapped_column("Sequence", Integer, nullable=True)
    library_type_id: Mapped[Optional[int]] = mapped_column(
        "LibraryTypeId", Integer, nullable=True
    )
    is_library: Mapped[bool] = mapped_column("IsLibrary", Boolean, default=False)
    is_folder: Mapped[bool] = mapped_column("IsFolder", Boolean, default=False)
    parent_folder_id: Mapped[Optional[str]] = mapped_column(
        "ParentFolderId", String, nullable=True
    )

    def __repr__(self) -> str:
        """String representation."""
        kind = "folder" if self.is_folder else "playlist"
        return f"<Collection(id={self.id}, name='{self.name}', {kind})>"


class Song(Base):
    """An analysed audio file known to MIK."""

    __tablename__ = "Song"

    id: Mapped[str] = mapped_column("Id", String, primary_key=True)
    file: Mapped[Optional[str]] = mapped_column("File", String, nullable=True)

    def __repr__(self) -> str:
        """String representation."""
        return f"<Song(id={self.id}, file='{self.file}')>"


class SongCollectionMembership(Base):
    """Position of a song inside a playlist."""

    __tablename__ = "SongCollectionMembership"

    id: Mapped[str] = mapped_column("Id", String, primary_key=True)
    song_id: Mapped[Optional[str]] = mapped_column("SongId", String, nullable=True)
    collection_id: Mapped[Optional[str]] = mapped_column(
        "CollectionId", String, nullable=True
    )
    sequence: Mapped[Optional[int]] = mapped_column("Sequence", Integer, nullable=True)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<SongCollectionMembership(song_id={self.song_id}, "
            f"collection_id={self.collection_id}, sequence={self.sequence})>"
        )


# MIK's own library rows; a reset must leave these alone
SYSTEM_COLLECTION_CLAUSE = and_(
    Collection.sequence.is_(None),
    Collection.is_library.is_(True),
    Collection.parent_folder_id.is_(None),
)


class CollectionKey(NamedTuple):
    """Natural key of a collection: (parent, name, folder flag).

    Build instances with :meth:`of` so that names and parent ids compare
    case-insensitively.
    """

    parent_id: Optional[str]
    name: str
    is_folder: bool

    @classmethod
    def of(
        cls, parent_id: Optional[str], name: Optional[str], is_folder: bool
    ) -> "CollectionKey":
        """Create a normalized key."""
        return cls(
            parent_id.casefold() if parent_id else None,
            (name or "").casefold(),
            bool(is_folder),
        )


class Membership(NamedTuple):
    """A song-in-playlist row waiting to be inserted."""

    song_id: str
    collection_id: str
    sequence: int
