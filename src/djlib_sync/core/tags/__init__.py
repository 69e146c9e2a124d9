"""Audio tag extraction."""

from .reader import (
    CommentReader,
    MutagenCommentReader,
    TagReadError,
    parse_energy_level,
    parse_initial_key,
)

__all__ = [
    "CommentReader",
    "MutagenCommentReader",
    "TagReadError",
    "parse_energy_level",
    "parse_initial_key",
]
