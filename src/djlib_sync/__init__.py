"""DJ library sync tool.

Reconciles a Rekordbox XML collection with the Mixed In Key library database:
MIK comment tags into Rekordbox tonality/colour, playlist trees in both
directions, and bulk deletion of tracks flagged in Rekordbox.
"""

__version__ = "1.0.0"
__author__ = "Anton"
__email__ = ""

from .config import Config
from .core.rekordbox import RekordboxXmlLibrary
from .database import MikDatabaseService

__all__ = [
    "Config",
    "RekordboxXmlLibrary",
    "MikDatabaseService",
]
