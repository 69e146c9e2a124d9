"""Errors that end a run before or instead of mutating any store."""


class PreconditionError(Exception):
    """A required file, folder or database is missing; nothing was changed."""

    pass


class OperationAborted(Exception):
    """The operator declined a destructive confirmation."""

    pass


class BackupError(Exception):
    """A backup could not be created, so the run must not mutate anything."""

    pass
