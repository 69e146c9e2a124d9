"""Run lifecycle shared by every reconciler.

A run walks ``IDLE -> VALIDATING -> [BACKING_UP] -> PROCESSING -> [PERSISTING]
-> REPORTING -> COMPLETED``. Backing up and persisting are skipped in dry-run
mode. Any exception ends the run in ``ABORTED`` and is re-raised unchanged.
"""

import logging
from enum import Enum
from typing import Generic, List, Optional, TypeVar

from ...constants import BACKUP_FOLDER_NAME
from ...database.progress_tracker import ProgressPhase, ProgressTracker

logger = logging.getLogger(__name__)

SummaryT = TypeVar("SummaryT")

DRY_RUN_PREFIX = "[DRY RUN] "


class RunState(str, Enum):
    """States of a reconciler run."""

    IDLE = "idle"
    VALIDATING = "validating"
    BACKING_UP = "backing_up"
    PROCESSING = "processing"
    PERSISTING = "persisting"
    REPORTING = "reporting"
    COMPLETED = "completed"
    ABORTED = "aborted"


class Reconciler(Generic[SummaryT]):
    """Base class driving the run state machine.

    Subclasses implement the ``_validate``, ``_backup``, ``_process``,
    ``_persist`` and ``_report`` steps. ``_on_abort`` may undo in-flight work
    (e.g. roll back a transaction).
    """

    def __init__(
        self,
        dry_run: bool = False,
        progress: Optional[ProgressTracker] = None,
        backup_folder_name: str = BACKUP_FOLDER_NAME,
    ) -> None:
        self.dry_run = dry_run
        self.progress = progress
        self.backup_folder_name = backup_folder_name
        self.state = RunState.IDLE
        self.state_history: List[RunState] = [RunState.IDLE]

    @property
    def log_prefix(self) -> str:
        """Prefix for log messages, marks simulated actions."""
        return DRY_RUN_PREFIX if self.dry_run else ""

    def run(self) -> SummaryT:
        """Execute the reconciler once.

        Returns:
            Summary of the run

        Raises:
            PreconditionError: If a required structure or file is missing
            OperationAborted: If a destructive confirmation was declined
            BackupError: If a backup could not be written
        """
        if self.state != RunState.IDLE:
            raise RuntimeError(f"{type(self).__name__} can only be run once")

        try:
            self._transition(RunState.VALIDATING)
            self._validate()

            if not self.dry_run:
                self._transition(RunState.BACKING_UP)
                self._progress_start(ProgressPhase.BACKING_UP, 1)
                self._backup()
                self._progress_complete()

            self._transition(RunState.PROCESSING)
            self._process()

            if not self.dry_run:
                self._transition(RunState.PERSISTING)
                self._persist()

            self._transition(RunState.REPORTING)
            summary = self._report()
        except Exception as e:
            self._transition(RunState.ABORTED)
            self._on_abort()
            if self.progress:
                self.progress.error(str(e))
            raise

        self._transition(RunState.COMPLETED)
        return summary

    def _transition(self, state: RunState) -> None:
        logger.debug("%s: %s -> %s", type(self).__name__, self.state.value, state.value)
        self.state = state
        self.state_history.append(state)

    def _validate(self) -> None:
        pass

    def _backup(self) -> None:
        pass

    def _process(self) -> None:
        raise NotImplementedError

    def _persist(self) -> None:
        pass

    def _report(self) -> SummaryT:
        raise NotImplementedError

    def _on_abort(self) -> None:
        pass

    def _progress_start(
        self, phase: ProgressPhase, total: int, message: str = ""
    ) -> None:
        if self.progress:
            self.progress.start(phase, total, message)

    def _progress_update(self, message: str = "") -> None:
        if self.progress:
            self.progress.update(message=message)

    def _progress_complete(self, message: str = "") -> None:
        if self.progress:
            self.progress.complete(message)
