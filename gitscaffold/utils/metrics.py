"""Clone metrics collaborators.

The fetch facade tells a ``GitMetrics`` implementation when a clone starts
and finishes. Metrics are informational: implementations must not raise,
and the facade ignores any error they do raise.

Usage:
    metrics = LoggingGitMetrics()
    fetcher = GitFetcher(client, tracker, metrics=metrics)
    fetcher.fetch(url, "main", "out")
    metrics.log_summary()
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger("gitscaffold.metrics")


class GitMetrics(Protocol):
    """Receives clone start/finish notifications."""

    def clone_started(self, repo_url: str) -> None:
        """Record that a clone of ``repo_url`` started."""
        ...

    def clone_finished(self, repo_url: str, error: Optional[BaseException]) -> None:
        """Record that a clone of ``repo_url`` finished, with ``error`` on failure."""
        ...


class NoopGitMetrics:
    """Metrics collaborator that records nothing."""

    def clone_started(self, repo_url: str) -> None:  # noqa: ARG002
        return None

    def clone_finished(self, repo_url: str, error: Optional[BaseException]) -> None:  # noqa: ARG002
        return None


@dataclass
class CloneStats:
    """Outcome counters and timings for clones.

    Attributes:
        started: Number of clones started.
        succeeded: Number of clones that finished without error.
        failed: Number of clones that failed.
        total: Total elapsed time of finished clones in seconds.
    """

    started: int = 0
    succeeded: int = 0
    failed: int = 0
    total: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "started": self.started,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "total": round(self.total, 3),
        }


class LoggingGitMetrics:
    """Thread-safe clone timer that logs each outcome."""

    def __init__(self) -> None:
        self.stats = CloneStats()
        self._started_at: Dict[str, float] = {}
        self._lock = threading.Lock()

    def clone_started(self, repo_url: str) -> None:
        with self._lock:
            self.stats.started += 1
            self._started_at[repo_url] = time.time()
        logger.debug("Clone started: %s", repo_url)

    def clone_finished(self, repo_url: str, error: Optional[BaseException]) -> None:
        with self._lock:
            start = self._started_at.pop(repo_url, None)
            elapsed = time.time() - start if start is not None else 0.0
            self.stats.total += elapsed
            if error is None:
                self.stats.succeeded += 1
            else:
                self.stats.failed += 1

        if error is None:
            logger.debug("Clone finished: %s (%.2fs)", repo_url, elapsed)
        else:
            logger.debug("Clone failed: %s (%.2fs): %s", repo_url, elapsed, error)

    def summary(self) -> Dict[str, Any]:
        """Get summary of recorded clones."""
        with self._lock:
            return self.stats.to_dict()

    def log_summary(self, level: int = logging.INFO) -> None:
        """Log the clone summary.

        Args:
            level: Logging level (default INFO).
        """
        summary = self.summary()
        logger.log(
            level,
            "Clones: started=%d, succeeded=%d, failed=%d, total=%.2fs",
            summary["started"],
            summary["succeeded"],
            summary["failed"],
            summary["total"],
        )
