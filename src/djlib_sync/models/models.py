"""Data models for configuration files."""

import re
from typing import Dict, Optional

from pydantic import RootModel, field_validator

_COLOUR_CODE = re.compile(r"^0x[0-9A-Fa-f]{6}$")


class EnergyColourMapping(RootModel[Dict[int, str]]):
    """Maps a Mixed In Key energy level (1-10) to a Rekordbox ``Colour`` code.

    Loaded from a JSON object such as ``{"6": "0xFFFF00"}``.
    """

    @field_validator("root")
    @classmethod
    def validate_colours(cls, value: Dict[int, str]) -> Dict[int, str]:
        """Reject colour codes Rekordbox would not understand."""
        for level, colour in value.items():
            if not _COLOUR_CODE.match(colour):
                raise ValueError(
                    f"Invalid colour code for energy level {level}: '{colour}' "
                    "(expected 0xRRGGBB)"
                )
        return value

    def colour_for(self, energy_level: int) -> Optional[str]:
        """Get the colour for an energy level, or None if it is not mapped."""
        return self.root.get(energy_level)

    def __len__(self) -> int:
        """Number of mapped energy levels."""
        return len(self.root)
