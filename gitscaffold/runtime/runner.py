"""Process runner abstraction.

A ``Runner`` builds ``Command`` descriptors that are not started yet. The
caller decides where output goes, whether to pipe stderr, and when to start
and wait. Tests inject a runner that produces canned output instead of
invoking git.
"""

import logging
import os
import subprocess
from typing import IO, Any, List, Optional, Protocol, Tuple

from gitscaffold.runtime.cancel import CancelContext
from gitscaffold.runtime.errors import CloneCancelledError

logger = logging.getLogger("gitscaffold.runtime.runner")

# Output destinations understood by Command.stdout / Command.stderr
INHERIT = None
DISCARD = subprocess.DEVNULL


class ExecutableHandle(Protocol):
    """Not-yet-started external command."""

    argv: List[str]
    stdout: Any
    stderr: Any

    def stderr_pipe(self) -> IO[bytes]:
        """Return a readable stream connected to the command's stderr."""
        ...

    def start(self) -> None:
        """Start the command without waiting for it."""
        ...

    def wait(self) -> int:
        """Wait for the command to exit and return its exit code."""
        ...

    def run(self) -> int:
        """Start the command and wait for it."""
        ...

    def combined_output(self) -> Tuple[int, bytes]:
        """Run the command and return its exit code and stdout+stderr."""
        ...

    def kill(self) -> None:
        """Terminate a started command and reap it."""
        ...


class Runner(Protocol):
    """Factory for executable handles."""

    def command(
        self,
        name: str,
        *args: str,
        cwd: Optional[str] = None,
        cancel: Optional[CancelContext] = None,
    ) -> ExecutableHandle:
        """Build a command descriptor for ``name`` with ``args``."""
        ...


class Command:
    """``subprocess.Popen`` wrapper with a construct/start/wait lifecycle.

    Output is discarded unless ``stdout``/``stderr`` are changed before
    ``start()``. Assign ``INHERIT`` to pass output through to the terminal.
    """

    def __init__(
        self,
        argv: List[str],
        cwd: Optional[str] = None,
        cancel: Optional[CancelContext] = None,
    ):
        self.argv = argv
        self.cwd = cwd
        self.stdout: Any = DISCARD
        self.stderr: Any = DISCARD
        self._cancel = cancel
        self._process: Optional[subprocess.Popen] = None
        self._parent_fds: List[int] = []
        self._unregister = None

    def stderr_pipe(self) -> IO[bytes]:
        """Connect stderr to a pipe and return its read end.

        Must be called before ``start()``. The write end is closed in this
        process once the child has started, so reads hit EOF when the child
        exits.

        Returns:
            IO[bytes]: Binary stream of the command's stderr.
        """
        if self._process is not None:
            raise RuntimeError("stderr_pipe after process started")
        read_fd, write_fd = os.pipe()
        self.stderr = write_fd
        self._parent_fds.append(write_fd)
        # Unbuffered so each read returns as soon as git writes a line
        return os.fdopen(read_fd, "rb", buffering=0)

    def start(self) -> None:
        """Start the process.

        Raises:
            CloneCancelledError: If the cancel context is already cancelled.
            OSError: If the executable cannot be started.
        """
        if self._process is not None:
            raise RuntimeError("process already started")

        logger.debug("Starting command: %s", " ".join(self.argv))
        try:
            if self._cancel is not None:
                self._cancel.raise_if_cancelled()
            self._process = subprocess.Popen(
                self.argv,
                cwd=self.cwd,
                stdin=subprocess.DEVNULL,
                stdout=self.stdout,
                stderr=self.stderr,
            )
        finally:
            self._close_parent_fds()

        if self._cancel is not None:
            self._unregister = self._cancel.register(self._terminate)

    def wait(self) -> int:
        """Wait for the process to exit.

        Returns:
            int: Process exit code.

        Raises:
            CloneCancelledError: If the process ended because of cancellation.
        """
        process = self._started()
        try:
            returncode = process.wait()
        finally:
            if self._unregister is not None:
                self._unregister()
                self._unregister = None

        if self._cancel is not None and self._cancel.cancelled:
            raise CloneCancelledError(
                f"command {' '.join(self.argv)} cancelled"
            )
        return returncode

    def run(self) -> int:
        """Start the process and wait for it.

        Returns:
            int: Process exit code.
        """
        self.start()
        return self.wait()

    def combined_output(self) -> Tuple[int, bytes]:
        """Run the process capturing stdout and stderr together.

        Returns:
            Tuple[int, bytes]: Exit code and combined output.
        """
        self.stdout = subprocess.PIPE
        self.stderr = subprocess.STDOUT
        self.start()
        output, _ = self._started().communicate()
        return self.wait(), output

    def kill(self) -> None:
        """Terminate the process if it is still running and reap it."""
        if self._process is None:
            return
        if self._process.poll() is None:
            self._terminate()
        try:
            self._process.wait()
        finally:
            if self._unregister is not None:
                self._unregister()
                self._unregister = None

    def _started(self) -> subprocess.Popen:
        if self._process is None:
            raise RuntimeError("process not started")
        return self._process

    def _terminate(self) -> None:
        if self._process is not None and self._process.poll() is None:
            logger.debug("Terminating command: %s", " ".join(self.argv))
            self._process.terminate()

    def _close_parent_fds(self) -> None:
        for fd in self._parent_fds:
            try:
                os.close(fd)
            except OSError:
                pass
        self._parent_fds = []


class SubprocessRunner:
    """Runner that executes real binaries through ``subprocess``."""

    def command(
        self,
        name: str,
        *args: str,
        cwd: Optional[str] = None,
        cancel: Optional[CancelContext] = None,
    ) -> Command:
        """Build a ``Command`` for ``name`` with ``args``.

        Construction never fails; errors surface from ``start()``.

        Args:
            name: Executable name or path.
            *args: Arguments.
            cwd: Working directory (current directory if None).
            cancel: Context whose cancellation terminates the process.
        """
        return Command([name, *args], cwd=cwd, cancel=cancel)
