"""Fetch facade: clone a ref of a repository into a directory.

This is the single call the rest of the tool uses. It wires the git client
to a ``CloneReporter`` over the configured progress tracker and tells the
metrics collaborator when the clone starts and finishes.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from gitscaffold.config.schema import FetcherConfig
from gitscaffold.runtime.cancel import CancelContext
from gitscaffold.runtime.errors import CloneConstructionError, CloneError, FetchError
from gitscaffold.runtime.events import NoopReporter, Reporter
from gitscaffold.runtime.git_client import GitClient
from gitscaffold.runtime.progress import NoopProgressTracker, ProgressTracker
from gitscaffold.runtime.reporter import CloneReporter
from gitscaffold.utils.metrics import GitMetrics, NoopGitMetrics

logger = logging.getLogger("gitscaffold.runtime.fetcher")


class GitFetcher:
    """Clone repositories with progress reporting and metrics.

    Args:
        client: Git client (built from ``config`` if None).
        tracker: Progress sink for the clone reporter.
        metrics: Clone metrics collaborator.
        config: Fetcher options; ``verbose`` disables the reporter.
    """

    def __init__(
        self,
        client: Optional[GitClient] = None,
        tracker: Optional[ProgressTracker] = None,
        metrics: Optional[GitMetrics] = None,
        config: Optional[FetcherConfig] = None,
    ) -> None:
        self.config = config or (client.config if client else FetcherConfig())
        self.client = client or GitClient(config=self.config)
        self.tracker = tracker or NoopProgressTracker()
        self.metrics = metrics or NoopGitMetrics()

    def fetch(
        self,
        repo_url: str,
        ref: str,
        target_dir: Union[str, Path],
        cancel: Optional[CancelContext] = None,
    ) -> None:
        """Clone ``ref`` of ``repo_url`` into ``target_dir``.

        Args:
            repo_url: Repository URL (required).
            ref: Branch, tag or commit.
            target_dir: Destination directory.
            cancel: Optional cancellation context.

        Raises:
            CloneConstructionError: If ``repo_url`` is empty.
            FetchError: If the clone fails; ``__cause__`` holds the phase error.
        """
        if not repo_url:
            raise CloneConstructionError("repo_url is required")

        logger.info("Cloning repo: %s → %s", repo_url, target_dir)
        self._notify_started(repo_url)

        reporter: Reporter = NoopReporter()
        if not self.config.verbose:
            reporter = CloneReporter(repo_url, self.tracker)

        try:
            self.client.clone(repo_url, ref, target_dir, reporter=reporter, cancel=cancel)
        except CloneError as e:
            self._notify_finished(repo_url, e)
            raise FetchError(f"clone failed: {e}", e) from e

        self._notify_finished(repo_url, None)
        logger.info("Clone repo complete: %s", repo_url)

    def _notify_started(self, repo_url: str) -> None:
        try:
            self.metrics.clone_started(repo_url)
        except Exception as e:  # noqa: BLE001 - metrics are best-effort
            logger.warning("Metrics clone_started failed: %s", e)

    def _notify_finished(self, repo_url: str, error: Optional[CloneError]) -> None:
        try:
            self.metrics.clone_finished(repo_url, error)
        except Exception as e:  # noqa: BLE001 - metrics are best-effort
            logger.warning("Metrics clone_finished failed: %s", e)
