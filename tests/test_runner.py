"""Tests for the subprocess runner and cancellation context."""

from __future__ import annotations

import sys
import unittest

import pytest

from gitscaffold.runtime.cancel import CancelContext
from gitscaffold.runtime.errors import CloneCancelledError
from gitscaffold.runtime.runner import DISCARD, Command, SubprocessRunner


def _python(code: str, cancel=None) -> Command:
    return SubprocessRunner().command(sys.executable, "-c", code, cancel=cancel)


def test_command_is_not_started_on_construction() -> None:
    cmd = _python("raise SystemExit(3)")

    assert cmd.argv[1:] == ["-c", "raise SystemExit(3)"]
    assert cmd.stdout is DISCARD
    assert cmd.stderr is DISCARD
    assert cmd.run() == 3


def test_stderr_pipe_streams_child_stderr() -> None:
    cmd = _python("import sys; sys.stderr.write('line one\\nline two\\n')")

    with cmd.stderr_pipe() as stream:
        cmd.start()
        data = stream.read()

    assert cmd.wait() == 0
    assert data.splitlines() == [b"line one", b"line two"]


def test_stderr_pipe_after_start_is_rejected() -> None:
    cmd = _python("pass")
    cmd.run()

    with pytest.raises(RuntimeError, match="after process started"):
        cmd.stderr_pipe()


def test_combined_output() -> None:
    cmd = _python("import sys; print('out'); sys.stdout.flush(); sys.stderr.write('err\\n'); sys.exit(2)")

    exit_code, output = cmd.combined_output()

    assert exit_code == 2
    assert b"out" in output
    assert b"err" in output


def test_command_runs_in_working_directory(tmp_path) -> None:
    cmd = SubprocessRunner().command(
        sys.executable, "-c", "import os; print(os.getcwd())", cwd=str(tmp_path)
    )

    exit_code, output = cmd.combined_output()

    assert exit_code == 0
    assert output.decode().strip() == str(tmp_path.resolve())


def test_wait_before_start_is_rejected() -> None:
    with pytest.raises(RuntimeError, match="not started"):
        _python("pass").wait()


def test_start_fails_for_missing_executable(tmp_path) -> None:
    cmd = SubprocessRunner().command(str(tmp_path / "missing-binary"))

    with pytest.raises(OSError):
        cmd.start()


def test_cancel_terminates_process() -> None:
    cancel = CancelContext()
    cmd = _python("import time; time.sleep(30)", cancel=cancel)
    cmd.start()

    cancel.cancel()

    with pytest.raises(CloneCancelledError):
        cmd.wait()


def test_start_after_cancel_is_rejected() -> None:
    cancel = CancelContext()
    cancel.cancel()
    cmd = _python("pass", cancel=cancel)
    cmd.stderr_pipe().close()

    with pytest.raises(CloneCancelledError):
        cmd.start()


def test_kill_reaps_running_process() -> None:
    cmd = _python("import time; time.sleep(30)")
    cmd.start()

    cmd.kill()

    assert cmd._process.returncode is not None


def test_kill_before_start_is_a_noop() -> None:
    _python("pass").kill()


class TestCancelContext(unittest.TestCase):
    def test_callbacks_run_once(self):
        cancel = CancelContext()
        calls = []

        unregister = cancel.register(lambda: calls.append("removed"))
        cancel.register(lambda: calls.append("kept"))
        unregister()
        cancel.cancel()
        cancel.cancel()

        self.assertTrue(cancel.cancelled)
        self.assertEqual(calls, ["kept"])

    def test_late_callbacks_run_immediately(self):
        cancel = CancelContext()
        cancel.cancel()
        calls = []

        cancel.register(lambda: calls.append("late"))

        self.assertEqual(calls, ["late"])
        with self.assertRaises(CloneCancelledError):
            cancel.raise_if_cancelled()

    def test_dead_process_callbacks_are_tolerated(self):
        cancel = CancelContext()

        def _gone():
            raise ProcessLookupError("no such process")

        cancel.register(_gone)
        cancel.cancel()

        self.assertTrue(cancel.cancelled)

    def test_fresh_context_is_not_cancelled(self):
        cancel = CancelContext()

        self.assertFalse(cancel.cancelled)
        cancel.raise_if_cancelled()
