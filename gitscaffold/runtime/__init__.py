"""Clone pipeline: runner, parser, orchestrator, reporter and fetch facade."""

from .errors import (
    CheckoutError,
    CloneCancelledError,
    CloneConstructionError,
    CloneError,
    CloneParseError,
    FetchError,
    GitCommandError,
)
from .events import CloneEvent, CloneEventType, NoopReporter, Reporter
from .fetcher import GitFetcher
from .git_client import GitClient

__all__ = [
    "CheckoutError",
    "CloneCancelledError",
    "CloneConstructionError",
    "CloneError",
    "CloneEvent",
    "CloneEventType",
    "CloneParseError",
    "FetchError",
    "GitClient",
    "GitCommandError",
    "GitFetcher",
    "NoopReporter",
    "Reporter",
]
