"""Progress reporting for reconciler runs.

A reconciler reports each phase of its run (backup, per-track work, saving)
to a :class:`ProgressTracker`; the tracker forwards throttled
:class:`ProgressUpdate` values to a callback such as
:class:`TqdmProgressReporter`.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from tqdm import tqdm

logger = logging.getLogger(__name__)


class ProgressPhase(str, Enum):
    """Phases a reconciler run reports."""

    BACKING_UP = "backing_up"
    SYNCING_TAGS = "syncing_tags"
    MIRRORING_PLAYLISTS = "mirroring_playlists"
    DELETING_FILES = "deleting_files"
    SAVING = "saving"
    ERROR = "error"


@dataclass(frozen=True)
class ProgressUpdate:
    """Snapshot of the current phase sent to the callback."""

    phase: ProgressPhase
    current: int
    total: int
    message: str = ""

    @property
    def is_complete(self) -> bool:
        return self.current >= self.total

    def __str__(self) -> str:
        text = f"[{self.phase.value}] {self.current}/{self.total}"
        return f"{text} - {self.message}" if self.message else text


ProgressCallback = Callable[[ProgressUpdate], None]


class ProgressTracker:
    """Counts items within one phase at a time and notifies a callback.

    Intermediate updates are throttled to ``update_interval`` seconds; phase
    start, completion and errors are always delivered.
    """

    def __init__(
        self,
        callback: Optional[ProgressCallback] = None,
        update_interval: float = 0.1,
    ):
        self.callback = callback
        self.update_interval = update_interval
        self.phase: Optional[ProgressPhase] = None
        self.current = 0
        self.total = 0
        self._last_sent = 0.0

    def start(self, phase: ProgressPhase, total: int, message: str = "") -> None:
        """Begin a new phase with ``total`` items."""
        self.phase = phase
        self.current = 0
        self.total = total
        self._send(phase, message)

    def update(self, current: Optional[int] = None, message: str = "") -> None:
        """Advance the current phase by one item, or jump to ``current``."""
        self.current = self.current + 1 if current is None else current
        if time.monotonic() - self._last_sent >= self.update_interval:
            self._send(self.phase, message)

    def complete(self, message: str = "") -> None:
        """Mark every item of the current phase as done."""
        self.current = self.total
        self._send(self.phase, message)

    def error(self, message: str) -> None:
        """Report a failed run; ignored when no phase was ever started."""
        if self.phase is not None:
            self._send(ProgressPhase.ERROR, message)

    def _send(self, phase: Optional[ProgressPhase], message: str) -> None:
        if phase is None or self.callback is None:
            return

        self._last_sent = time.monotonic()
        update = ProgressUpdate(phase, self.current, self.total, message)
        logger.debug("Progress %s", update)
        try:
            self.callback(update)
        except Exception as e:
            logger.error("Error in progress callback: %s", e)


class TqdmProgressReporter:
    """Progress callback drawing one tqdm bar per phase."""

    def __init__(self, disable: bool = False) -> None:
        """Initialize tqdm reporter.

        Args:
            disable: Render nothing (e.g. when DEBUG logging would interleave)
        """
        self.disable = disable
        self._bars: Dict[ProgressPhase, Any] = {}

    def __call__(self, update: ProgressUpdate) -> None:
        if update.phase == ProgressPhase.ERROR:
            self.close_all()
            return

        bar = self._bars.get(update.phase)
        if bar is None:
            bar = tqdm(
                total=update.total,
                desc=update.phase.value,
                unit="item",
                disable=self.disable,
            )
            self._bars[update.phase] = bar

        bar.n = update.current
        bar.set_postfix_str(update.message)
        bar.refresh()
        if update.is_complete:
            bar.close()

    def close_all(self) -> None:
        """Close every bar opened so far."""
        for bar in self._bars.values():
            bar.close()
