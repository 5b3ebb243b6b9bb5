"""Tests for progress trackers."""

from __future__ import annotations

import io
import logging

from rich.console import Console

from gitscaffold.runtime.progress import (
    LogProgressTracker,
    NoopProgressTracker,
    ProgressRow,
    RichProgressTracker,
    get_progress_tracker,
)


def _terminal_console() -> Console:
    return Console(file=io.StringIO(), force_terminal=True, width=100)


def test_rich_tracker_rows_are_monotonic() -> None:
    tracker = RichProgressTracker(console=_terminal_console())

    tracker.set("modA", 10, "modA (Cloning from ref: main)")
    tracker.set("modA", 50, "modA (Cloning from ref: main)")
    tracker.set("modB", 0, "modB")
    tracker.set("modA", 30, "modA (Cloning from ref: main)")
    tracker.render()

    assert tracker.progress_rows() == [
        ProgressRow("modA", 50, "modA (Cloning from ref: main)"),
        ProgressRow("modB", 0, "modB"),
    ]
    tracker.clear()


def test_rich_tracker_draws_and_clears() -> None:
    console = _terminal_console()
    tracker = RichProgressTracker(console=console)

    tracker.set("foo", 100, "foo (Cloning from ref: dev)")
    tracker.render()
    tracker.clear()

    assert "foo (Cloning from ref: dev)" in console.file.getvalue()
    assert tracker.progress_rows() == []

    # A new layer starts a fresh display
    tracker.set("bar", 0, "bar")
    assert [row.module for row in tracker.progress_rows()] == ["bar"]
    tracker.clear()


def test_rich_tracker_caps_rows() -> None:
    tracker = RichProgressTracker(max_tracked=2, console=_terminal_console())

    for name in ("a", "b", "c"):
        tracker.set(name, 0, name)
    tracker.set("a", 40, "a")

    assert [(row.module, row.percent) for row in tracker.progress_rows()] == [("a", 40), ("b", 0)]
    tracker.clear()


def test_log_tracker_logs_completed_rows_once(caplog) -> None:
    tracker = LogProgressTracker(max_tracked=5)

    with caplog.at_level(logging.INFO, logger="gitscaffold.runtime.progress"):
        tracker.set("foo", 50, "foo (Cloning from ref: main)")
        tracker.set("foo", 100, "foo (Cloning from ref: main)")
        tracker.set("foo", 100, "foo (Cloning from ref: main)")
        tracker.render()

    messages = [r.getMessage() for r in caplog.records]
    assert messages == ["Progress: foo (Cloning from ref: main) - 100%"]
    assert tracker.progress_rows() == [ProgressRow("foo", 100, "foo (Cloning from ref: main)")]


def test_log_tracker_clear_forgets_rows() -> None:
    tracker = LogProgressTracker(max_tracked=1)

    tracker.set("a", 10, "a")
    tracker.set("b", 10, "b")
    assert [row.module for row in tracker.progress_rows()] == ["a"]

    tracker.clear()
    tracker.set("b", 10, "b")
    assert [row.module for row in tracker.progress_rows()] == ["b"]


def test_log_tracker_uses_given_logger(caplog) -> None:
    log = logging.getLogger("gitscaffold.tests.progress")
    tracker = LogProgressTracker(log=log)

    with caplog.at_level(logging.INFO, logger="gitscaffold.tests.progress"):
        tracker.set("bar", 100, "bar")

    assert [r.name for r in caplog.records] == ["gitscaffold.tests.progress"]


def test_noop_tracker() -> None:
    tracker = NoopProgressTracker()

    tracker.set("a", 100, "a")
    tracker.render()
    tracker.clear()

    assert tracker.progress_rows() == []


def test_get_progress_tracker_picks_by_terminal() -> None:
    assert isinstance(get_progress_tracker(_terminal_console()), RichProgressTracker)
    assert isinstance(
        get_progress_tracker(Console(file=io.StringIO()), max_tracked=3), LogProgressTracker
    )
