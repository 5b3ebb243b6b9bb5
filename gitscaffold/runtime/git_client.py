"""Git clone orchestration.

``GitClient.clone`` materializes a working tree from any ref (branch, tag
or commit SHA) including recursive submodules, in three git invocations:

1. ``git clone --no-checkout --progress -- <url> <dest>``
2. ``git -C <dest> checkout --quiet <ref>``
3. ``git -C <dest> submodule update --init --recursive --depth=N --progress``

Checkout is a separate step because a plain clone cannot select an
arbitrary SHA, and submodules must be fetched for the checked-out tree.
The stderr of steps 1 and 3 is fed through ``CloneParser`` while the
process runs; in verbose mode git's own output goes to the terminal instead.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import List, Optional, Union

from gitscaffold.config.schema import FetcherConfig
from gitscaffold.runtime.cancel import CancelContext
from gitscaffold.runtime.clone_parser import CloneParser
from gitscaffold.runtime.errors import (
    CheckoutError,
    CloneCancelledError,
    CloneConstructionError,
    CloneError,
    CloneParseError,
    GitCommandError,
)
from gitscaffold.runtime.events import CloneEvent, CloneEventType, NoopReporter, Reporter
from gitscaffold.runtime.reporter import repo_short_name
from gitscaffold.runtime.runner import INHERIT, ExecutableHandle, Runner, SubprocessRunner

logger = logging.getLogger("gitscaffold.runtime.git_client")


class _FailOnceReporter:
    """Forwards events, letting at most one CLONE_FAILED through."""

    def __init__(self, inner: Reporter) -> None:
        self.inner = inner
        self.failure_reported = False

    def report(self, event: CloneEvent) -> None:
        if event.kind is CloneEventType.CLONE_FAILED:
            if self.failure_reported:
                return
            self.failure_reported = True
        self.inner.report(event)


class GitClient:
    """Runs git and turns its output into clone events.

    Args:
        runner: Command factory (real subprocesses if None).
        config: Fetcher options (defaults if None).
    """

    def __init__(
        self,
        runner: Optional[Runner] = None,
        config: Optional[FetcherConfig] = None,
    ) -> None:
        self.runner = runner or SubprocessRunner()
        self.config = config or FetcherConfig()

    def clone(
        self,
        repo_url: str,
        ref: str,
        dest: Union[str, Path],
        reporter: Optional[Reporter] = None,
        cancel: Optional[CancelContext] = None,
    ) -> None:
        """Clone ``repo_url`` at ``ref`` into ``dest`` with submodules.

        Args:
            repo_url: Repository URL.
            ref: Branch, tag or commit to check out.
            dest: Destination directory.
            reporter: Receives clone events (ignored events if None).
            cancel: Cancellation context for the spawned processes.

        Raises:
            CloneError: If any phase fails. CLONE_FAILED has been reported
                exactly once by then. Ctrl-C surfaces as
                ``CloneCancelledError`` after the running git is reaped.
        """
        dest = os.fspath(dest)
        events = _FailOnceReporter(reporter or NoopReporter())
        repo_name = repo_short_name(repo_url)
        verbose = self.config.verbose
        git = self.config.git_binary

        try:
            self._run_phase(
                "clone",
                [git, "clone", "--no-checkout", "--progress", "--", repo_url, dest],
                CloneParser(dest, ref),
                events,
                cancel,
            )

            self._checkout(dest, ref, events, cancel)

            # git skips the final progress line for very small repositories
            if not verbose:
                events.report(
                    CloneEvent(
                        kind=CloneEventType.PROGRESS,
                        module=repo_name,
                        ref=ref,
                        progress=100,
                    )
                )

            self._run_phase(
                "submodule update",
                [
                    git,
                    "-C",
                    dest,
                    "submodule",
                    "update",
                    "--init",
                    "--recursive",
                    f"--depth={self.config.submodule_depth}",
                    "--progress",
                ],
                CloneParser(dest, ref),
                events,
                cancel,
            )
        except CloneError:
            events.report(CloneEvent(kind=CloneEventType.CLONE_FAILED, ref=ref))
            raise
        except KeyboardInterrupt:
            # Interrupted between phases, no command is running
            if cancel is not None:
                cancel.cancel()
            events.report(CloneEvent(kind=CloneEventType.CLONE_FAILED, ref=ref))
            raise CloneCancelledError("clone interrupted") from None

        if not verbose:
            events.report(CloneEvent(kind=CloneEventType.CLONE_COMPLETE, ref=ref))

    def _command(
        self, argv: List[str], cancel: Optional[CancelContext]
    ) -> ExecutableHandle:
        logger.debug("git command: %s", " ".join(argv))
        return self.runner.command(argv[0], *argv[1:], cancel=cancel)

    def _run_phase(
        self,
        phase: str,
        argv: List[str],
        parser: CloneParser,
        reporter: Reporter,
        cancel: Optional[CancelContext],
    ) -> None:
        """Run one git invocation, parsing its stderr unless verbose."""
        cmd = self._command(argv, cancel)

        try:
            if self.config.verbose:
                cmd.stdout = cmd.stderr = INHERIT
                exit_code = self._start_and_wait(phase, cmd)
            else:
                exit_code = self._run_parsed(phase, cmd, parser, reporter)
        except CloneCancelledError as e:
            e.phase = phase
            raise
        except KeyboardInterrupt:
            raise self._interrupted(phase, cmd, cancel) from None

        if exit_code != 0:
            raise GitCommandError(phase, argv, exit_code)

    def _run_parsed(
        self,
        phase: str,
        cmd: ExecutableHandle,
        parser: CloneParser,
        reporter: Reporter,
    ) -> int:
        try:
            stream = cmd.stderr_pipe()
        except (OSError, RuntimeError) as e:
            raise CloneConstructionError(f"stderr pipe: {e}", phase=phase) from e

        with stream:
            try:
                cmd.start()
            except OSError as e:
                raise CloneConstructionError(f"start {phase}: {e}", phase=phase) from e

            try:
                parser.parse(stream, reporter)
            except CloneParseError as e:
                # Do not leave git running behind an abandoned pipe
                cmd.kill()
                raise CloneParseError(
                    f"parsing {phase} output: {e}", phase=phase
                ) from e

        return cmd.wait()

    def _interrupted(
        self,
        phase: str,
        cmd: ExecutableHandle,
        cancel: Optional[CancelContext],
    ) -> CloneCancelledError:
        """Stop the running command after Ctrl-C."""
        logger.debug("git %s interrupted", phase)
        if cancel is not None:
            cancel.cancel()
        cmd.kill()
        return CloneCancelledError(f"git {phase} interrupted", phase=phase)

    def _start_and_wait(self, phase: str, cmd: ExecutableHandle) -> int:
        try:
            return cmd.run()
        except OSError as e:
            raise CloneConstructionError(f"start {phase}: {e}", phase=phase) from e

    def _checkout(
        self,
        dest: str,
        ref: str,
        reporter: Reporter,
        cancel: Optional[CancelContext],
    ) -> None:
        """Check out ``ref``; on failure remove ``.git`` and raise."""
        argv = [self.config.git_binary, "-C", dest, "checkout", "--quiet", ref]
        cmd = self._command(argv, cancel)
        if self.config.verbose:
            cmd.stdout = cmd.stderr = INHERIT

        try:
            exit_code = self._start_and_wait("checkout", cmd)
        except CloneCancelledError as e:
            e.phase = "checkout"
            raise
        except KeyboardInterrupt:
            raise self._interrupted("checkout", cmd, cancel) from None
        if exit_code == 0:
            return

        reporter.report(CloneEvent(kind=CloneEventType.CLONE_FAILED, ref=ref))
        error = CheckoutError(ref, argv, exit_code)

        # Leave no half-initialized repository behind
        git_dir = Path(dest) / ".git"
        try:
            if git_dir.exists():
                shutil.rmtree(git_dir)
        except OSError as e:
            logger.error("Failed to remove %s after checkout failure: %s", git_dir, e)
            raise CheckoutError(ref, argv, exit_code) from e

        raise error
