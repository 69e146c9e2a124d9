"""Rekordbox XML collection access."""

from .xml_library import CollectionTrack, NodeType, PlaylistNode, RekordboxXmlLibrary

__all__ = [
    "CollectionTrack",
    "NodeType",
    "PlaylistNode",
    "RekordboxXmlLibrary",
]
