"""Read Mixed In Key results from an audio file's comment tag.

MIK is set up to write the key and energy level at the beginning of the
comment, e.g. ``"1A - Energy 6"``. Any comment that existed before follows it.
"""

import logging
import re
from pathlib import Path
from typing import Any, Optional, Protocol, Union

from mutagen import File as MutagenFile
from mutagen import MutagenError
from mutagen.id3 import ID3
from mutagen.mp4 import MP4Tags

logger = logging.getLogger(__name__)

INITIAL_KEY_PATTERN = re.compile(r"^\d{1,2}[A-G]$")
ENERGY_LEVEL_PATTERN = re.compile(r"Energy (\d{1,2})")

MP4_COMMENT_ATOM = "\xa9cmt"
VORBIS_COMMENT_KEYS = ("comment", "description")


class TagReadError(Exception):
    """The audio file could not be opened or its tags could not be parsed."""

    pass


class CommentReader(Protocol):
    """Anything able to return the free-text comment of an audio file."""

    def read_comment(self, file_path: Union[str, Path]) -> str:
        """Return the comment text, raising TagReadError on failure."""
        ...  # pragma: no cover - protocol definition


def parse_initial_key(comment: str) -> Optional[str]:
    """Extract the initial key (e.g. ``"5A"``) from the first comment token.

    Returns:
        The key token, or None when the first token is not a valid key
    """
    tokens = comment.split()
    if not tokens:
        return None
    token = tokens[0]
    return token if INITIAL_KEY_PATTERN.match(token) else None


def parse_energy_level(comment: str) -> Optional[int]:
    """Extract the energy level from anywhere in the comment.

    Not anchored: MIK prepends its result, so other text may precede it after
    repeated analysis runs.
    """
    match = ENERGY_LEVEL_PATTERN.search(comment)
    if match is None:
        return None
    return int(match.group(1))


class MutagenCommentReader:
    """Reads comment tags with mutagen (ID3, MP4 and Vorbis-style tags)."""

    def read_comment(self, file_path: Union[str, Path]) -> str:
        """Read the comment tag of an audio file.

        Args:
            file_path: Path to the audio file

        Returns:
            Comment text; empty when the file has no comment

        Raises:
            TagReadError: If the file cannot be read or is not a supported format
        """
        try:
            audio = MutagenFile(str(file_path))
        except (MutagenError, OSError) as e:
            raise TagReadError(f"Failed to read tags from '{file_path}': {e}") from e

        if audio is None:
            raise TagReadError(f"Unsupported or unrecognised audio file: '{file_path}'")

        tags = audio.tags
        if not tags:
            logger.debug("No tags in %s", file_path)
            return ""

        if isinstance(tags, ID3):
            return self._id3_comment(tags)
        if isinstance(tags, MP4Tags):
            return self._first_text(tags.get(MP4_COMMENT_ATOM))

        for key in VORBIS_COMMENT_KEYS:
            value = tags.get(key)
            if value:
                return self._first_text(value)
        return ""

    @staticmethod
    def _id3_comment(tags: ID3) -> str:
        frames = tags.getall("COMM")
        if not frames:
            return ""
        # Prefer the plain comment over described ones (iTunNORM etc.)
        frame = next((f for f in frames if not f.desc), frames[0])
        return str(frame.text[0]) if frame.text else ""

    @staticmethod
    def _first_text(value: Any) -> str:
        if not value:
            return ""
        if isinstance(value, (list, tuple)):
            return str(value[0])
        return str(value)
