"""Clone lifecycle events and the reporter protocol that consumes them."""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Protocol


class CloneEventType(Enum):
    """Kinds of facts observed while cloning."""

    SUBMODULE_DISCOVERED = auto()
    SUBMODULE_CLONE_START = auto()
    PROGRESS = auto()
    CLONE_COMPLETE = auto()
    CLONE_FAILED = auto()


@dataclass(frozen=True)
class CloneEvent:
    """A single thing that happened during a clone.

    Attributes:
        kind: Event type.
        parent: Path scope the submodule was declared under.
        module: Module currently being cloned (empty for the top-level repo
            until a name is attributed).
        name: Declared submodule name (discovery only).
        url: Declared submodule URL (discovery only).
        ref: Ref the whole operation is targeting.
        progress: Percent complete, 0-100 (progress only).
    """

    kind: CloneEventType
    parent: str = ""
    module: str = ""
    name: str = ""
    url: str = ""
    ref: str = ""
    progress: int = 0

    def __str__(self) -> str:
        if self.kind is CloneEventType.PROGRESS:
            return f"CloneEvent({self.kind.name}, module={self.module!r}, {self.progress}%)"
        return f"CloneEvent({self.kind.name}, module={self.module or self.name!r})"


class Reporter(Protocol):
    """Consumer of clone events."""

    def report(self, event: CloneEvent) -> None:
        """Handle one event."""
        ...


class NoopReporter:
    """Reporter that ignores every event."""

    def report(self, event: CloneEvent) -> None:  # noqa: ARG002
        return None

