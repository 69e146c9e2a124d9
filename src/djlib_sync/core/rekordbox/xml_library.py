"""Rekordbox XML collection wrapper.

The exported document is parsed once with ElementTree and wrapped in a typed
node graph: :class:`PlaylistNode` for ``PLAYLISTS`` folders/playlists and
:class:`CollectionTrack` for ``COLLECTION/TRACK`` entries. Every mutation goes
through :class:`RekordboxXmlLibrary` so the graph, its per-folder name index and
the underlying elements stay in step. Nothing reaches the disk until
:meth:`RekordboxXmlLibrary.save` is called.
"""

import logging
import os
import tempfile
import xml.etree.ElementTree as ET  # nosec B405 - local user export
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ...constants import (
    BACKUP_FOLDER_NAME,
    COLOUR_ATTRIBUTE,
    COUNT_ATTRIBUTE,
    DELETE_PLAYLIST_NAME,
    ENTRIES_ATTRIBUTE,
    FOLDER_NODE_TYPE,
    KEY_ATTRIBUTE,
    KEY_TYPE_ATTRIBUTE,
    KIND_ATTRIBUTE,
    LIBRARY_MANAGEMENT,
    LOCATION_ATTRIBUTE,
    NAME_ATTRIBUTE,
    PLAYLIST_NODE_TYPE,
    ROOT_PLAYLIST_NAME,
    TONALITY_ATTRIBUTE,
    TRACK_ID_ATTRIBUTE,
    TYPE_ATTRIBUTE,
)
from ...utils.backup import backup_timestamp, create_backup_copy
from ...utils.paths import decode_file_uri
from ..errors import PreconditionError

logger = logging.getLogger(__name__)


class NodeType(str, Enum):
    """Rekordbox ``NODE`` type attribute values."""

    FOLDER = FOLDER_NODE_TYPE
    PLAYLIST = PLAYLIST_NODE_TYPE


class CollectionTrack:
    """A ``COLLECTION/TRACK`` entry."""

    __slots__ = ("element",)

    def __init__(self, element: ET.Element) -> None:
        self.element = element

    @property
    def track_id(self) -> str:
        return self.element.get(TRACK_ID_ATTRIBUTE, "")

    @property
    def name(self) -> str:
        return self.element.get(NAME_ATTRIBUTE, "")

    @property
    def location(self) -> str:
        return self.element.get(LOCATION_ATTRIBUTE, "")

    @property
    def kind(self) -> str:
        return self.element.get(KIND_ATTRIBUTE, "")

    @property
    def file_path(self) -> str:
        """Decoded local path of the audio file."""
        return decode_file_uri(self.location)

    @property
    def tonality(self) -> str:
        return self.element.get(TONALITY_ATTRIBUTE, "")

    @tonality.setter
    def tonality(self, value: str) -> None:
        self.element.set(TONALITY_ATTRIBUTE, value)

    @property
    def colour(self) -> str:
        return self.element.get(COLOUR_ATTRIBUTE, "")

    @colour.setter
    def colour(self, value: str) -> None:
        self.element.set(COLOUR_ATTRIBUTE, value)

    def __repr__(self) -> str:
        """String representation of CollectionTrack."""
        return f"<CollectionTrack(id={self.track_id}, name='{self.name}')>"


class PlaylistNode:
    """A folder or playlist ``NODE`` inside ``PLAYLISTS``.

    Child nodes are indexed by ``(type, name)``; the first sibling wins, matching
    how Rekordbox resolves duplicates on import.
    """

    def __init__(
        self, element: ET.Element, parent: Optional["PlaylistNode"] = None
    ) -> None:
        self.element = element
        self.parent = parent
        self.children: List["PlaylistNode"] = []
        self._child_index: Dict[Tuple[NodeType, str], "PlaylistNode"] = {}

    @property
    def name(self) -> str:
        return self.element.get(NAME_ATTRIBUTE, "")

    @property
    def node_type(self) -> Optional[NodeType]:
        try:
            return NodeType(self.element.get(TYPE_ATTRIBUTE, ""))
        except ValueError:
            return None

    @property
    def is_folder(self) -> bool:
        return self.node_type is NodeType.FOLDER

    @property
    def is_playlist(self) -> bool:
        return self.node_type is NodeType.PLAYLIST

    @property
    def entries(self) -> int:
        """Value of the ``Entries`` attribute (0 when absent or invalid)."""
        try:
            return int(self.element.get(ENTRIES_ATTRIBUTE, "0"))
        except ValueError:
            return 0

    @property
    def path(self) -> List[str]:
        """Names from the top-level node down to this one."""
        names: List[str] = []
        node: Optional[PlaylistNode] = self
        while node is not None:
            names.append(node.name)
            node = node.parent
        return list(reversed(names))

    def child(self, name: str, node_type: NodeType) -> Optional["PlaylistNode"]:
        """Look up a direct child by exact name and type."""
        return self._child_index.get((node_type, name))

    def track_elements(self) -> List[ET.Element]:
        return self.element.findall("TRACK")

    def track_keys(self) -> List[str]:
        """Track IDs referenced by this playlist, in playlist order."""
        return [
            key
            for key in (el.get(KEY_ATTRIBUTE, "") for el in self.track_elements())
            if key
        ]

    def has_track(self, track_id: str) -> bool:
        """Check the playlist's current children for a reference to ``track_id``."""
        return any(el.get(KEY_ATTRIBUTE) == track_id for el in self.track_elements())

    def _attach(self, child: "PlaylistNode") -> None:
        self.children.append(child)
        node_type = child.node_type
        if node_type is not None:
            self._child_index.setdefault((node_type, child.name), child)

    def _clear(self) -> None:
        self.children.clear()
        self._child_index.clear()

    def __repr__(self) -> str:
        """String representation of PlaylistNode."""
        kind = self.node_type.name if self.node_type else "UNKNOWN"
        return f"<PlaylistNode({kind}, name='{self.name}')>"


class RekordboxXmlLibrary:
    """Helper wrapper around a Rekordbox XML document."""

    def __init__(self, path: Path, tree: ET.ElementTree) -> None:
        """Build the node graph for an already parsed document.

        Args:
            path: Location the document was loaded from (and is saved back to)
            tree: Parsed document
        """
        self.path = Path(path)
        self.tree = tree

        self._tracks: List[CollectionTrack] = []
        self._tracks_by_id: Dict[str, CollectionTrack] = {}
        root = tree.getroot()
        for element in root.findall("COLLECTION/TRACK"):
            track = CollectionTrack(element)
            self._tracks.append(track)
            if track.track_id:
                self._tracks_by_id.setdefault(track.track_id, track)

        self._top_level: List[PlaylistNode] = []
        playlists = root.find("PLAYLISTS")
        if playlists is not None:
            for element in playlists.findall("NODE"):
                self._top_level.append(self._build_node(element, None))

        logger.debug(
            "Loaded Rekordbox XML %s: %d tracks, %d top-level nodes",
            self.path,
            len(self._tracks),
            len(self._top_level),
        )

    @classmethod
    def load(cls, xml_path: Path) -> "RekordboxXmlLibrary":
        """Load a Rekordbox XML export.

        Raises:
            PreconditionError: If the file is missing or not well-formed XML
        """
        xml_path = Path(xml_path)
        if not xml_path.is_file():
            raise PreconditionError(f"XML file not found: {xml_path}")

        try:
            tree = ET.parse(xml_path)  # nosec B314 - local user export
        except ET.ParseError as e:
            raise PreconditionError(
                f"Failed to parse Rekordbox XML {xml_path}: {e}"
            ) from e

        return cls(xml_path, tree)

    def _build_node(
        self, element: ET.Element, parent: Optional[PlaylistNode]
    ) -> PlaylistNode:
        node = PlaylistNode(element, parent)
        for child_element in element.findall("NODE"):
            node._attach(self._build_node(child_element, node))
        return node

    # =========================================================================
    # Lookups
    # =========================================================================

    def get_playlists_root(self) -> Optional[PlaylistNode]:
        """Return the ``ROOT`` folder node, or None if not found."""
        for node in self._top_level:
            if node.is_folder and node.name == ROOT_PLAYLIST_NAME:
                return node
        return None

    def require_playlists_root(self) -> PlaylistNode:
        """Return the ``ROOT`` folder node or fail the run.

        Raises:
            PreconditionError: If the document has no ``ROOT`` folder
        """
        root = self.get_playlists_root()
        if root is None:
            raise PreconditionError("Root playlist node not found in Rekordbox XML.")
        return root

    def get_library_management_folder(self) -> Optional[PlaylistNode]:
        """Return the LIBRARY MANAGEMENT folder node, or None if not found."""
        root = self.get_playlists_root()
        if root is None:
            return None
        return root.child(LIBRARY_MANAGEMENT, NodeType.FOLDER)

    def require_library_management_folder(self) -> PlaylistNode:
        """Return the LIBRARY MANAGEMENT folder or fail the run.

        Raises:
            PreconditionError: If the folder does not exist
        """
        folder = self.get_library_management_folder()
        if folder is None:
            raise PreconditionError(
                f"'{LIBRARY_MANAGEMENT}' playlist folder not found in XML."
            )
        return folder

    def get_collection_tracks(self) -> List[CollectionTrack]:
        """All collection tracks in document order."""
        return list(self._tracks)

    def get_track_by_id(self, track_id: str) -> Optional[CollectionTrack]:
        return self._tracks_by_id.get(track_id)

    def get_tracks_to_delete(self) -> List[str]:
        """Track IDs listed in the LIBRARY MANAGEMENT/Delete playlist."""
        folder = self.get_library_management_folder()
        if folder is None:
            return []
        playlist = folder.child(DELETE_PLAYLIST_NAME, NodeType.PLAYLIST)
        if playlist is None:
            return []
        return playlist.track_keys()

    def find_folder(self, *path_segments: str) -> Optional[PlaylistNode]:
        """Find a nested folder under LIBRARY MANAGEMENT without creating it."""
        current = self.get_library_management_folder()
        for segment in path_segments:
            if current is None:
                return None
            current = current.child(segment, NodeType.FOLDER)
        return current

    # =========================================================================
    # Mutations
    # =========================================================================

    def get_or_create_folder(self, *path_segments: str) -> PlaylistNode:
        """Get or create a nested folder structure under LIBRARY MANAGEMENT.

        Args:
            path_segments: One or more folder names

        Returns:
            The deepest folder node

        Raises:
            ValueError: If no segment is given
            PreconditionError: If LIBRARY MANAGEMENT does not exist
        """
        if not path_segments:
            raise ValueError("Folder path must have at least one segment.")

        current = self.require_library_management_folder()
        for segment in path_segments:
            existing = current.child(segment, NodeType.FOLDER)
            if existing is None:
                element = ET.Element(
                    "NODE",
                    {TYPE_ATTRIBUTE: FOLDER_NODE_TYPE, NAME_ATTRIBUTE: segment},
                )
                element.set(COUNT_ATTRIBUTE, "0")
                existing = self._append_child(current, element)
                logger.debug("Created folder '%s'", "/".join(existing.path))
            current = existing

        return current

    def get_or_create_playlist(
        self, parent_folder: PlaylistNode, playlist_name: str
    ) -> PlaylistNode:
        """Get or create a playlist under the given folder."""
        existing = parent_folder.child(playlist_name, NodeType.PLAYLIST)
        if existing is not None:
            return existing

        element = ET.Element("NODE")
        self._set_playlist_attributes(element, playlist_name)
        playlist = self._append_child(parent_folder, element)
        logger.debug("Created playlist '%s'", "/".join(playlist.path))
        return playlist

    def initialize_library_management_playlist(
        self, playlist_name: str
    ) -> PlaylistNode:
        """Create or reset (empty) a playlist directly inside LIBRARY MANAGEMENT.

        Raises:
            PreconditionError: If LIBRARY MANAGEMENT does not exist
        """
        folder = self.require_library_management_folder()
        existing = folder.child(playlist_name, NodeType.PLAYLIST)
        if existing is not None:
            for child in list(existing.element):
                existing.element.remove(child)
            existing.element.attrib.clear()
            existing._clear()
            self._set_playlist_attributes(existing.element, playlist_name)
            return existing

        return self.get_or_create_playlist(folder, playlist_name)

    def add_track_to_playlist(self, playlist: PlaylistNode, track_id: str) -> None:
        """Append a ``TRACK Key=...`` reference to a playlist.

        The ``Entries`` attribute is not touched; callers set it once the playlist
        is complete.
        """
        if not playlist.is_playlist:
            raise ValueError(f"'{playlist.name}' is not a playlist")
        ET.SubElement(playlist.element, "TRACK", {KEY_ATTRIBUTE: track_id})

    @staticmethod
    def update_playlist_entries(playlist: PlaylistNode, count: int) -> None:
        """Set the ``Entries`` attribute on a playlist node."""
        playlist.element.set(ENTRIES_ATTRIBUTE, str(count))

    def _append_child(self, parent: PlaylistNode, element: ET.Element) -> PlaylistNode:
        parent.element.append(element)
        node = PlaylistNode(element, parent)
        parent._attach(node)
        parent.element.set(COUNT_ATTRIBUTE, str(len(parent.children)))
        return node

    @staticmethod
    def _set_playlist_attributes(element: ET.Element, playlist_name: str) -> None:
        element.set(NAME_ATTRIBUTE, playlist_name)
        element.set(TYPE_ATTRIBUTE, PLAYLIST_NODE_TYPE)
        element.set(KEY_TYPE_ATTRIBUTE, "0")
        element.set(ENTRIES_ATTRIBUTE, "0")

    # =========================================================================
    # Persistence
    # =========================================================================

    def create_backup(self, backup_folder_name: str = BACKUP_FOLDER_NAME) -> Path:
        """Copy the on-disk XML into a timestamped backup next to it.

        Raises:
            BackupError: If a backup already exists at that timestamp or the copy
                fails
        """
        backup_name = f"{self.path.name}.{backup_timestamp()}.bak.xml"
        return create_backup_copy(self.path, backup_name, backup_folder_name)

    def save(self, output_path: Optional[Path] = None) -> Path:
        """Write the document, replacing the target file atomically.

        Args:
            output_path: Destination; defaults to the loaded path (in place)

        Returns:
            Path written
        """
        target = Path(output_path) if output_path else self.path
        target.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{target.name}.", suffix=".tmp", dir=target.parent
        )
        try:
            with os.fdopen(fd, "wb") as handle:
                self.tree.write(handle, encoding="UTF-8", xml_declaration=True)
            os.replace(tmp_name, target)
        finally:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)

        logger.info("Saved Rekordbox XML: %s", target)
        return target
