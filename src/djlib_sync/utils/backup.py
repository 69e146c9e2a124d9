"""Timestamped backups written next to the file being modified."""

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..constants import BACKUP_FOLDER_NAME, TIMESTAMP_FORMAT
from ..core.errors import BackupError

logger = logging.getLogger(__name__)


def backup_timestamp(now: Optional[datetime] = None) -> str:
    """Timestamp used in backup file names."""
    return (now or datetime.now()).strftime(TIMESTAMP_FORMAT)


def create_backup_copy(
    source: Path, backup_file_name: str, backup_folder_name: str = BACKUP_FOLDER_NAME
) -> Path:
    """Copy ``source`` into ``<source dir>/<backup_folder_name>/<backup_file_name>``.

    An existing file at the target path is never overwritten.

    Args:
        source: File to back up
        backup_file_name: Name of the backup file
        backup_folder_name: Folder created next to ``source``

    Returns:
        Path of the created backup

    Raises:
        BackupError: If the backup already exists or could not be written
    """
    backup_dir = source.parent / backup_folder_name
    backup_file = backup_dir / backup_file_name

    try:
        backup_dir.mkdir(parents=True, exist_ok=True)
        with open(source, "rb") as src, open(backup_file, "xb") as dst:
            shutil.copyfileobj(src, dst)
    except FileExistsError as e:
        raise BackupError(f"Backup already exists: {backup_file}") from e
    except OSError as e:
        raise BackupError(
            f"Failed to create backup of '{source}'. "
            f"Aborting to avoid data loss. Details: {e}"
        ) from e

    logger.info("Backup created: %s", backup_file)
    return backup_file
