"""Names and attribute keys shared by the Rekordbox and Mixed In Key layers."""

# Rekordbox XML structure
ROOT_PLAYLIST_NAME = "ROOT"
LIBRARY_MANAGEMENT = "LIBRARY MANAGEMENT"
MIK_KEY_ANALYSIS = "MIK Key Analysis"
MIK_ENERGY_ANALYSIS = "MIK Energy Level Analysis"
DELETE_PLAYLIST_NAME = "Delete"
SYNC_FROM_MIK_FOLDER_NAME = "MIK Sync"

# Playlists generated by analysis tools; never mirrored into MIK
CUE_ANALYSIS_PLAYLIST_NAME = "CUE Analysis Playlist"
MIK_CUE_POINTS_PLAYLIST_NAME = "MIK Cue Points"
SKIPPED_ANALYSIS_PLAYLISTS = (CUE_ANALYSIS_PLAYLIST_NAME, MIK_CUE_POINTS_PLAYLIST_NAME)

# Rekordbox XML attributes
TRACK_ID_ATTRIBUTE = "TrackID"
LOCATION_ATTRIBUTE = "Location"
KIND_ATTRIBUTE = "Kind"
TONALITY_ATTRIBUTE = "Tonality"
KEY_ATTRIBUTE = "Key"
ENTRIES_ATTRIBUTE = "Entries"
COUNT_ATTRIBUTE = "Count"
NAME_ATTRIBUTE = "Name"
TYPE_ATTRIBUTE = "Type"
KEY_TYPE_ATTRIBUTE = "KeyType"
COLOUR_ATTRIBUTE = "Colour"

FOLDER_NODE_TYPE = "0"
PLAYLIST_NODE_TYPE = "1"

LOCAL_FILE_URI_PREFIX = "file://localhost/"

# Only this kind has the key written by MIK ignored on Rekordbox import
KEY_WORKAROUND_KIND = "M4A File"

# Mixed In Key
ENERGY_LEVEL_TO_COLOUR_FILE_NAME = "energy_level_to_colour.json"
MIK_DATABASE_FILE_NAME = "MIKStore.db"
DEFAULT_MIK_VERSION = "11.0"
RESET_CONFIRMATION_TOKEN = "RESET"

# Backups
BACKUP_FOLDER_NAME = "DJLibSync_Backups"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
