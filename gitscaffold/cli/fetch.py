"""Fetch command implementation."""

import logging
from pathlib import Path
from typing import Optional, Union

from rich.console import Console

from gitscaffold.config.schema import FetcherConfig
from gitscaffold.runtime.cancel import CancelContext
from gitscaffold.runtime.errors import CloneError
from gitscaffold.runtime.fetcher import GitFetcher
from gitscaffold.runtime.progress import get_progress_tracker
from gitscaffold.utils.metrics import LoggingGitMetrics

logger = logging.getLogger("gitscaffold.cli.fetch")

EXIT_FAILURE = 1
EXIT_CANCELLED = 130


def build_fetcher(verbose: bool, console: Optional[Console] = None) -> GitFetcher:
    """Create a fetcher for command-line use.

    Args:
        verbose: Pass raw git output through instead of progress rows.
        console: Console the progress display draws on.

    Returns:
        GitFetcher: Fetcher with a terminal-appropriate progress tracker.
    """
    config = FetcherConfig(verbose=verbose)
    return GitFetcher(
        tracker=get_progress_tracker(console, max_tracked=config.max_tracked_rows),
        metrics=LoggingGitMetrics(),
        config=config,
    )


def run_fetch(
    fetcher: GitFetcher,
    repo_url: str,
    ref: str,
    target_dir: Union[str, Path],
    console: Optional[Console] = None,
) -> int:
    """Run a fetch and translate the outcome into an exit code.

    Args:
        fetcher: Fetcher to use.
        repo_url: Repository URL.
        ref: Ref to check out.
        target_dir: Destination directory.
        console: Console for user-facing error messages.

    Returns:
        int: 0 on success, 1 on failure, 130 when interrupted.
    """
    console = console or Console(stderr=True)
    cancel = CancelContext()
    try:
        fetcher.fetch(repo_url, ref, target_dir, cancel=cancel)
    except KeyboardInterrupt:
        cancel.cancel()
        fetcher.tracker.clear()
        console.print("[yellow]Clone cancelled[/yellow]")
        return EXIT_CANCELLED
    except CloneError as e:
        if e.cancelled:
            console.print("[yellow]Clone cancelled[/yellow]")
            return EXIT_CANCELLED
        logger.debug("Fetch failed", exc_info=True)
        console.print(f"[red]Failed to fetch {repo_url}:[/red] {e}")
        return EXIT_FAILURE
    finally:
        if isinstance(fetcher.metrics, LoggingGitMetrics):
            fetcher.metrics.log_summary(logging.DEBUG)

    return 0


def fetch_command(args, console: Optional[Console] = None) -> int:
    """Execute fetch command.

    Args:
        args: Parsed command-line arguments.
        console: Shared console (stderr console if None).

    Returns:
        int: Exit code.
    """
    logger.debug("Repository: %s", args.repo_url)
    logger.debug("Ref: %s", args.ref)
    logger.debug("Target: %s", args.target_dir)

    fetcher = build_fetcher(getattr(args, "verbose", False), console)
    return run_fetch(fetcher, args.repo_url, args.ref, args.target_dir, console)
