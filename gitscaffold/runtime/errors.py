"""Error types raised by the clone pipeline.

Every failure of a fetch surfaces as a ``CloneError`` subclass carrying the
phase that failed (``clone``, ``checkout``, ``submodule update``, ...), so
callers can report which step went wrong without parsing messages.
"""

from typing import List, Optional


class CloneError(RuntimeError):
    """Base class for clone pipeline failures.

    Attributes:
        phase: Name of the phase that failed.
        cancelled: True when the failure was caused by cancellation.
    """

    cancelled = False

    def __init__(self, message: str, phase: Optional[str] = None) -> None:
        self.phase = phase
        super().__init__(message)


class CloneConstructionError(CloneError):
    """Raised before any subprocess runs (bad input, stream or start failure)."""


class GitCommandError(CloneError):
    """Raised when a git command exits with a non-zero status."""

    def __init__(self, phase: str, command: List[str], exit_code: int) -> None:
        self.command = command
        self.exit_code = exit_code
        super().__init__(
            f"git {phase}: command {' '.join(command)} exited with code {exit_code}",
            phase=phase,
        )


class CheckoutError(GitCommandError):
    """Raised when checking out the requested ref fails."""

    def __init__(self, ref: str, command: List[str], exit_code: int) -> None:
        super().__init__("checkout", command, exit_code)
        self.ref = ref
        self.args = (f"git checkout {ref!r} failed with exit code {exit_code}",)


class CloneParseError(CloneError):
    """Raised when git's progress output cannot be parsed or read."""


class CloneCancelledError(CloneError):
    """Raised when a fetch is cancelled through its ``CancelContext``."""

    cancelled = True


class FetchError(CloneError):
    """Raised by the fetch facade, wrapping the underlying clone failure."""

    def __init__(self, message: str, cause: CloneError) -> None:
        super().__init__(message, phase=cause.phase)
        self.cancelled = cause.cancelled
