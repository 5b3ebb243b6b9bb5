"""Progress trackers that display per-module clone progress.

A tracker holds a small ordered set of rows, one per module id, and knows
how to show them. The clone reporter drives a tracker through ``set``,
``render`` and ``clear`` and never renders anything itself.

Two implementations are provided:

* ``RichProgressTracker`` draws live bars on a terminal with Rich.
* ``LogProgressTracker`` writes one log line per row when it completes,
  for CI and redirected output.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

logger = logging.getLogger("gitscaffold.runtime.progress")


@dataclass(frozen=True)
class ProgressRow:
    """Snapshot of one tracked row."""

    module: str
    percent: int
    label: str


class ProgressTracker(Protocol):
    """Sink for per-module progress rows."""

    def set(self, row_id: str, percent: int, label: str) -> None:
        """Create or advance the row ``row_id``."""
        ...

    def render(self) -> None:
        """Redraw the current rows."""
        ...

    def clear(self) -> None:
        """Settle the display and forget all rows."""
        ...

    def progress_rows(self) -> List[ProgressRow]:
        """Return the tracked rows in insertion order."""
        ...


class _RowTable:
    """Ordered, capped, monotonic row storage shared by trackers."""

    def __init__(self, max_tracked: int) -> None:
        self.max_tracked = max_tracked
        self.rows: Dict[str, ProgressRow] = {}

    def update(self, row_id: str, percent: int, label: str) -> Optional[ProgressRow]:
        """Apply an update.

        Returns:
            Optional[ProgressRow]: The new row, or None if the update was
            dropped (lower than current, or over capacity).
        """
        current = self.rows.get(row_id)
        if current is not None:
            if current.percent >= percent:
                return None
        elif len(self.rows) >= self.max_tracked:
            logger.debug("Row limit %d reached, dropping %s", self.max_tracked, row_id)
            return None

        row = ProgressRow(module=row_id, percent=percent, label=label)
        self.rows[row_id] = row
        return row

    def snapshot(self) -> List[ProgressRow]:
        return list(self.rows.values())

    def reset(self) -> None:
        self.rows = {}


class RichProgressTracker:
    """Live multi-row progress display backed by ``rich.progress``.

    Rows are Rich tasks with a total of 100. The live display starts on the
    first ``set``; ``clear`` stops it, leaving the settled rows on screen,
    and the next ``set`` starts a fresh display below them.
    """

    def __init__(self, max_tracked: int = 10, console: Optional[Console] = None):
        """Initialize tracker.

        Args:
            max_tracked: Maximum number of rows shown at once.
            console: Rich console (stderr console if None).
        """
        self.console = console or Console(stderr=True)
        self._table = _RowTable(max_tracked)
        self._lock = threading.Lock()
        self._progress: Optional[Progress] = None
        self._tasks: Dict[str, TaskID] = {}

    def _new_progress(self) -> Progress:
        return Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(bar_width=40),
            TextColumn("{task.percentage:>3.0f}%"),
            TextColumn("•"),
            TimeElapsedColumn(),
            console=self.console,
            auto_refresh=False,
            expand=False,
        )

    def set(self, row_id: str, percent: int, label: str) -> None:
        with self._lock:
            row = self._table.update(row_id, percent, label)
            if row is None:
                return

            if self._progress is None:
                self._progress = self._new_progress()
                self._progress.start()

            task_id = self._tasks.get(row_id)
            if task_id is None:
                self._tasks[row_id] = self._progress.add_task(
                    label, total=100, completed=percent
                )
            else:
                self._progress.update(task_id, completed=percent, description=label)

    def render(self) -> None:
        with self._lock:
            if self._progress is not None:
                self._progress.refresh()

    def clear(self) -> None:
        with self._lock:
            if self._progress is not None:
                self._progress.refresh()
                self._progress.stop()
            self._progress = None
            self._tasks = {}
            self._table.reset()

    def progress_rows(self) -> List[ProgressRow]:
        with self._lock:
            return self._table.snapshot()


class LogProgressTracker:
    """Tracker that logs a row once it reaches 100%.

    Suitable for non-interactive output where redrawing bars is not
    possible. ``render`` is a no-op.
    """

    def __init__(self, max_tracked: int = 10, log: Optional[logging.Logger] = None):
        self._table = _RowTable(max_tracked)
        self._lock = threading.Lock()
        self._log = log or logger

    def set(self, row_id: str, percent: int, label: str) -> None:
        with self._lock:
            row = self._table.update(row_id, percent, label)
        # Rows never move past 100, so this logs once per row
        if row is not None and row.percent == 100:
            self._log.info("Progress: %s - %d%%", row.label, row.percent)

    def render(self) -> None:
        return None

    def clear(self) -> None:
        with self._lock:
            self._table.reset()

    def progress_rows(self) -> List[ProgressRow]:
        with self._lock:
            return self._table.snapshot()


class NoopProgressTracker:
    """Tracker that records nothing."""

    def set(self, row_id: str, percent: int, label: str) -> None:  # noqa: ARG002
        return None

    def render(self) -> None:
        return None

    def clear(self) -> None:
        return None

    def progress_rows(self) -> List[ProgressRow]:
        return []


def get_progress_tracker(
    console: Optional[Console] = None, max_tracked: int = 10
) -> ProgressTracker:
    """Pick a tracker for the output environment.

    Args:
        console: Console the display would draw on.
        max_tracked: Maximum number of rows.

    Returns:
        ProgressTracker: Rich tracker on a terminal, log tracker otherwise.
    """
    console = console or Console(stderr=True)
    if console.is_terminal:
        return RichProgressTracker(max_tracked=max_tracked, console=console)
    return LogProgressTracker(max_tracked=max_tracked)
