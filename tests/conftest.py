"""Shared test doubles for the clone pipeline."""

from __future__ import annotations

import io
import sys
from typing import Callable, Dict, List, Optional, Tuple

import pytest

from gitscaffold.runtime.cancel import CancelContext
from gitscaffold.runtime.events import CloneEvent
from gitscaffold.runtime.progress import ProgressRow
from gitscaffold.runtime.runner import DISCARD, Command


class RecordingReporter:
    """In-memory reporter for assertions."""

    def __init__(self) -> None:
        self.events: List[CloneEvent] = []

    def report(self, event: CloneEvent) -> None:
        self.events.append(event)


class FakeCommand:
    """Command double that emits canned stderr and exits with a fixed code."""

    def __init__(
        self,
        argv: List[str],
        stderr_output: bytes = b"",
        exit_code: int = 0,
        on_run: Optional[Callable[[], None]] = None,
    ) -> None:
        self.argv = argv
        self.stdout = DISCARD
        self.stderr = DISCARD
        self.stderr_output = stderr_output
        self.exit_code = exit_code
        self.on_run = on_run
        self.piped = False
        self.started = False
        self.killed = False

    def stderr_pipe(self) -> io.BytesIO:
        self.piped = True
        return io.BytesIO(self.stderr_output)

    def start(self) -> None:
        self.started = True
        if self.on_run is not None:
            self.on_run()

    def wait(self) -> int:
        return self.exit_code

    def run(self) -> int:
        self.start()
        return self.wait()

    def combined_output(self) -> Tuple[int, bytes]:
        self.start()
        return self.exit_code, self.stderr_output

    def kill(self) -> None:
        self.killed = True


class FakeRunner:
    """Runner double keyed by git subcommand (clone, checkout, submodule)."""

    def __init__(self, **behaviour: Tuple[bytes, int]) -> None:
        self.behaviour: Dict[str, Tuple[bytes, int]] = behaviour
        self.hooks: Dict[str, Callable[[], None]] = {}
        self.commands: List[FakeCommand] = []

    @staticmethod
    def phase_of(argv: List[str]) -> str:
        for phase in ("clone", "checkout", "submodule"):
            if phase in argv:
                return phase
        return argv[0]

    def command(
        self,
        name: str,
        *args: str,
        cwd: Optional[str] = None,
        cancel: Optional[CancelContext] = None,
    ) -> FakeCommand:
        argv = [name, *args]
        phase = self.phase_of(argv)
        output, exit_code = self.behaviour.get(phase, (b"", 0))
        cmd = FakeCommand(argv, output, exit_code, on_run=self.hooks.get(phase))
        self.commands.append(cmd)
        return cmd

    def argvs(self) -> List[List[str]]:
        return [cmd.argv for cmd in self.commands]


class ScriptRunner:
    """Runner that spawns a real Python process writing ``stderr_text``."""

    def __init__(self, stderr_text: str = "", exit_code: int = 0, sleep: float = 0.0) -> None:
        self.stderr_text = stderr_text
        self.exit_code = exit_code
        self.sleep = sleep
        self.calls: List[List[str]] = []

    def command(
        self,
        name: str,
        *args: str,
        cwd: Optional[str] = None,
        cancel: Optional[CancelContext] = None,
    ) -> Command:
        self.calls.append([name, *args])
        code = (
            "import sys, time\n"
            f"sys.stderr.write({self.stderr_text!r})\n"
            "sys.stderr.flush()\n"
            f"time.sleep({self.sleep!r})\n"
            f"sys.exit({self.exit_code!r})\n"
        )
        return Command([sys.executable, "-c", code], cwd=cwd, cancel=cancel)


class MockTracker:
    """Tracker double recording the max percent per row, labels and calls."""

    def __init__(self) -> None:
        self.perc: Dict[str, int] = {}
        self.label: Dict[str, str] = {}
        self.calls: List[Tuple[str, int, str]] = []
        self.clears = 0
        self.renders = 0

    def set(self, row_id: str, percent: int, label: str) -> None:
        self.calls.append((row_id, percent, label))
        old = self.perc.get(row_id)
        if old is None or percent > old:
            self.perc[row_id] = percent
            self.label[row_id] = label

    def render(self) -> None:
        self.renders += 1

    def clear(self) -> None:
        self.clears += 1

    def progress_rows(self) -> List[ProgressRow]:
        return [ProgressRow(m, p, self.label[m]) for m, p in self.perc.items()]


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def tracker() -> MockTracker:
    return MockTracker()


@pytest.fixture
def fake_runner_factory() -> Callable[..., FakeRunner]:
    return FakeRunner


@pytest.fixture
def script_runner_factory() -> Callable[..., ScriptRunner]:
    return ScriptRunner
