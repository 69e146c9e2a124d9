"""Core reconciliation logic.

This package contains the business logic organized by concern:
- rekordbox: Rekordbox XML document store
- tags: audio comment tag extraction
- sync: reconcilers between Rekordbox, Mixed In Key and the filesystem
"""

from .errors import BackupError, OperationAborted, PreconditionError

__all__ = ["BackupError", "OperationAborted", "PreconditionError"]
