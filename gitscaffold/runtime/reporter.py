"""Clone reporter: projects clone events onto a progress tracker.

Rules:

* one tracker row per module id, percent only moves forward until the
  display is cleared;
* submodule discoveries are held per parent scope and only shown when a
  submodule under that scope starts cloning, all at once;
* progress without a module name belongs to the top-level repository;
* completion and failure settle the display.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional

from gitscaffold.runtime.events import CloneEvent, CloneEventType
from gitscaffold.runtime.progress import ProgressTracker

logger = logging.getLogger("gitscaffold.runtime.reporter")

# Display failures must never fail a fetch
_SINK_ERRORS = (OSError, RuntimeError, ValueError)


def repo_short_name(repo_url: str) -> str:
    """Derive a short module name from a repository URL.

    ``https://example.com/org/foo.git`` and ``git@host:org/foo`` both
    yield ``foo``.

    Args:
        repo_url: Repository URL or path.

    Returns:
        str: Last path segment without a ``.git`` suffix.
    """
    trimmed = repo_url.rstrip("/")
    if trimmed.endswith(".git"):
        trimmed = trimmed[: -len(".git")]
    trimmed = trimmed.rstrip("/")
    for separator in ("/", ":"):
        trimmed = trimmed.rsplit(separator, 1)[-1]
    return trimmed or repo_url


def progress_label(name: str, ref: str) -> str:
    """Build the human label for a row."""
    if ref:
        return f"{name} (Cloning from ref: {ref})"
    return name


@dataclass(frozen=True)
class PendingDiscovery:
    """A discovered submodule not yet shown."""

    name: str
    dest: str
    url: str
    ref: str = ""


class CloneReporter:
    """Stateful projector from clone events to tracker rows.

    Args:
        repo_url: URL of the top-level repository.
        tracker: Progress sink.
        log: Logger for discovery announcements (module logger if None).
    """

    def __init__(
        self,
        repo_url: str,
        tracker: ProgressTracker,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.repo_name = repo_short_name(repo_url)
        self.tracker = tracker
        self.log = log or logger
        self._pending: Dict[str, List[PendingDiscovery]] = defaultdict(list)
        self._percent: Dict[str, int] = {}
        self._final: str = ""
        self._final_ref: str = ""
        self.failed = False
        self.completed = False

    @property
    def pending(self) -> Dict[str, List[PendingDiscovery]]:
        """Discoveries still waiting for their scope to start, by parent."""
        return {parent: list(items) for parent, items in self._pending.items() if items}

    def report(self, event: CloneEvent) -> None:
        """Consume one event.

        Events after a failure or completion are ignored.
        """
        if self.failed or self.completed:
            logger.debug("Ignoring %s after display settled", event)
            return

        try:
            self._dispatch(event)
        except _SINK_ERRORS as e:
            logger.warning("Progress display error on %s: %s", event, e)

    def _dispatch(self, event: CloneEvent) -> None:
        if event.kind is CloneEventType.SUBMODULE_DISCOVERED:
            prefix = "" if event.parent in ("", ".") else event.parent
            self._pending[event.parent].append(
                PendingDiscovery(
                    name=event.name,
                    dest=prefix + event.name,
                    url=event.url,
                    ref=event.ref,
                )
            )
        elif event.kind is CloneEventType.SUBMODULE_CLONE_START:
            self._flush(event.parent)
        elif event.kind is CloneEventType.PROGRESS:
            self._on_progress(event)
        elif event.kind is CloneEventType.CLONE_COMPLETE:
            self._on_complete()
        elif event.kind is CloneEventType.CLONE_FAILED:
            self.failed = True
            self._clear()

    def _flush(self, parent: str) -> None:
        discovered = self._pending.pop(parent, [])
        if not discovered:
            return

        header = self.repo_name
        if parent not in ("", "."):
            header = parent.rstrip("/")

        # One clear per discovered layer
        self._clear()
        self.log.info("Discovered submodules for %s", header)
        for item in discovered:
            self.log.info(" - %s → %s (%s)", item.name, item.dest, item.url)
            self._set(item.name, 0, progress_label(item.name, item.ref))
        self.tracker.render()

    def _on_progress(self, event: CloneEvent) -> None:
        module = event.module
        if module in ("", ".", self.repo_name):
            module = self.repo_name
        self._set(module, event.progress, progress_label(module, event.ref))
        self.tracker.render()
        self._final = module
        self._final_ref = event.ref

    def _on_complete(self) -> None:
        self.completed = True
        if self._final:
            self._set(self._final, 100, progress_label(self._final, self._final_ref))
            self.tracker.render()
        self._clear()

    def _set(self, module: str, percent: int, label: str) -> None:
        seen = self._percent.get(module)
        if seen is not None and percent < seen:
            logger.debug(
                "Ignoring progress regression for %s: %d%% < %d%%", module, percent, seen
            )
            return
        self._percent[module] = percent
        self.tracker.set(module, percent, label)

    def _clear(self) -> None:
        # Cleared rows are re-created on their next observation
        self.tracker.clear()
        self._percent = {}
