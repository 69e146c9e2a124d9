"""Configuration management for the DJ library sync tool."""

import json
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from .constants import (
    BACKUP_FOLDER_NAME,
    DEFAULT_MIK_VERSION,
    ENERGY_LEVEL_TO_COLOUR_FILE_NAME,
    MIK_DATABASE_FILE_NAME,
)
from .core.errors import PreconditionError
from .models import EnergyColourMapping

# Load .env file from config directory or project root
config_env = Path(__file__).parent.parent.parent / "config" / ".env"
if config_env.exists():
    load_dotenv(config_env)
else:
    load_dotenv()

DEFAULT_ENERGY_COLOUR_MAPPING = (
    Path(__file__).parent / "data" / ENERGY_LEVEL_TO_COLOUR_FILE_NAME
)


class Config:
    """Application configuration."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables."""
        # Mixed In Key settings
        self.mik_version = os.getenv("DJLIB_SYNC_MIK_VERSION", DEFAULT_MIK_VERSION)
        mik_db = os.getenv("DJLIB_SYNC_MIK_DATABASE_PATH")
        self.mik_database_path: Optional[Path] = Path(mik_db) if mik_db else None

        # Energy level -> Rekordbox colour table
        self.energy_colour_mapping_path = Path(
            os.getenv(
                "DJLIB_SYNC_ENERGY_COLOUR_MAPPING",
                str(DEFAULT_ENERGY_COLOUR_MAPPING),
            )
        )

        # Backups are written into this folder next to the file being backed up
        self.backup_folder_name = os.getenv(
            "DJLIB_SYNC_BACKUP_FOLDER", BACKUP_FOLDER_NAME
        )

    def resolve_mik_database_path(
        self, explicit_path: Optional[Path] = None, mik_version: Optional[str] = None
    ) -> Path:
        """Locate the Mixed In Key database.

        An explicit path wins, then ``DJLIB_SYNC_MIK_DATABASE_PATH``, then the
        default install location under ``%USERPROFILE%`` for the given MIK
        version.

        Args:
            explicit_path: Path given on the command line
            mik_version: MIK version folder name (e.g. "11.0")

        Returns:
            Path to an existing MIKStore.db

        Raises:
            PreconditionError: If no existing database could be found
        """
        candidate = explicit_path or self.mik_database_path
        if candidate is not None:
            if not candidate.is_file():
                raise PreconditionError(f"MIK database not found: {candidate}")
            return candidate

        user_profile = os.getenv("USERPROFILE")
        if not user_profile:
            raise PreconditionError(
                "USERPROFILE environment variable is not set. "
                "Cannot auto-resolve MIK database path; pass --mik-db explicitly."
            )

        resolved = (
            Path(user_profile)
            / "AppData"
            / "Local"
            / "Mixed In Key"
            / "Mixed In Key"
            / (mik_version or self.mik_version)
            / MIK_DATABASE_FILE_NAME
        )
        if not resolved.is_file():
            raise PreconditionError(
                f"Auto-resolved MIK database file not found: {resolved}. "
                "Provide --mik-db explicitly or adjust --mik-version."
            )
        return resolved

    def load_energy_colour_mapping(
        self, path: Optional[Path] = None
    ) -> EnergyColourMapping:
        """Load and validate the energy level -> colour code table.

        Args:
            path: Optional override of the configured mapping file

        Returns:
            Validated mapping

        Raises:
            PreconditionError: If the file is missing or malformed
        """
        mapping_path = path or self.energy_colour_mapping_path
        if not mapping_path.is_file():
            raise PreconditionError(
                f"{mapping_path.name} file not found. Expected at '{mapping_path}'."
            )

        try:
            raw = json.loads(mapping_path.read_text(encoding="utf-8"))
            return EnergyColourMapping.model_validate(raw)
        except (json.JSONDecodeError, ValidationError) as e:
            raise PreconditionError(
                f"Failed to load or parse {mapping_path.name}: {e}"
            ) from e
