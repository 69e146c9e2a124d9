"""Mixed In Key database access and progress tracking."""

from .models import (
    Base,
    Collection,
    CollectionKey,
    Membership,
    Song,
    SongCollectionMembership,
)
from .progress_tracker import (
    ProgressCallback,
    ProgressPhase,
    ProgressTracker,
    ProgressUpdate,
    TqdmProgressReporter,
)
from .service import MikDatabaseService

__all__ = [
    # Models
    "Base",
    "Collection",
    "CollectionKey",
    "Membership",
    "Song",
    "SongCollectionMembership",
    # Service
    "MikDatabaseService",
    # Progress
    "ProgressCallback",
    "ProgressPhase",
    "ProgressTracker",
    "ProgressUpdate",
    "TqdmProgressReporter",
]
