"""Utility helpers: logging setup, backups and path normalization."""

from .backup import backup_timestamp, create_backup_copy
from .logging_config import configure_third_party_loggers, setup_logging
from .paths import decode_file_uri, normalize_path, path_key

__all__ = [
    "backup_timestamp",
    "configure_third_party_loggers",
    "create_backup_copy",
    "decode_file_uri",
    "normalize_path",
    "path_key",
    "setup_logging",
]
