"""Path helpers used to join Rekordbox tracks with Mixed In Key songs.

Rekordbox stores locations as URI-encoded ``file://localhost/...`` strings while
Mixed In Key stores plain paths. Both sides are passed through
:func:`normalize_path` before comparison; the result is the only join key
between the two stores.
"""

import os
import re
from typing import Optional
from urllib.parse import unquote

from ..constants import LOCAL_FILE_URI_PREFIX

_FILE_URI_PREFIXES = (LOCAL_FILE_URI_PREFIX, "file:///")
_DRIVE_AFTER_SLASH = re.compile(r"^/[A-Za-z]:[\\/]")


def decode_file_uri(raw: Optional[str]) -> str:
    """Decode a Rekordbox ``Location`` value into a local path.

    Removes the ``file://localhost/`` (or ``file:///``) prefix and percent-decodes
    the remainder. Values without the prefix are plain paths and are returned
    unchanged apart from surrounding whitespace, so a literal ``%`` in a file
    name survives.

    Args:
        raw: Raw ``Location`` attribute value

    Returns:
        Decoded path, or an empty string for empty input
    """
    if not raw:
        return ""

    value = raw.strip()
    for prefix in _FILE_URI_PREFIXES:
        if value[: len(prefix)].lower() == prefix:
            # Keep the leading slash so POSIX paths stay absolute
            decoded = unquote(value[len(prefix) - 1 :])
            break
    else:
        return value

    # "/C:/Music" -> "C:/Music"
    if _DRIVE_AFTER_SLASH.match(decoded):
        decoded = decoded[1:]

    return decoded


def normalize_path(raw: Optional[str]) -> str:
    """Canonicalize a raw location into a comparable absolute path.

    Accepts either a Rekordbox file URI or a plain path, converts separators to
    the platform form and collapses ``.``/``..`` segments. No filesystem access
    happens, so the result does not depend on whether the file exists. Never
    raises; on failure the separator-normalized string is returned.

    Args:
        raw: File URI or path, possibly ``None``

    Returns:
        Normalized path, or an empty string for empty/whitespace input
    """
    if raw is None or not raw.strip():
        return ""

    path = decode_file_uri(raw)
    path = path.replace("\\", "/").replace("/", os.sep)

    try:
        return os.path.normcase(os.path.normpath(path))
    except (TypeError, ValueError):
        return path


def path_key(raw: Optional[str]) -> str:
    """Case-insensitive lookup key for a location, used by the path indexes."""
    return normalize_path(raw).casefold()
