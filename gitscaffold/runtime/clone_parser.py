"""Streaming parser for git clone / submodule progress output.

git writes human-oriented progress to stderr. This module classifies each
line against three patterns and turns it into ``CloneEvent`` objects:

* ``Submodule '<name>' (<url>) registered for path '<path>'``
* ``Cloning into '<path>'...``
* ``Receiving objects: <n>%``

The parser is an explicit two-state machine. ``ParserState`` is Idle while
no module is active and InModule once a ``Cloning into`` line has been seen.
``CloneParser.feed`` is a pure transition function, so ordering rules can be
tested without any subprocess plumbing.
"""

import logging
import os
import re
from dataclasses import dataclass, replace
from typing import IO, Iterator, List, Tuple

from gitscaffold.runtime.errors import CloneParseError
from gitscaffold.runtime.events import CloneEvent, CloneEventType, Reporter

logger = logging.getLogger("gitscaffold.runtime.clone_parser")

SUBMODULE_PATTERN = re.compile(
    r"^Submodule ['\"]?([^'\"]+)['\"]? \(([^)]+)\) registered for path ['\"]?(.+?)['\"]?$"
)
CLONING_PATTERN = re.compile(r"Cloning into ['\"]?(.+?)['\"]?\.{3}")
# Capture anything up to '%' so malformed numbers fail loudly
RECEIVING_PATTERN = re.compile(r"Receiving objects:\s+(\S+?)%")

_LINE_BREAK = re.compile(rb"\r\n|\r|\n")
_READ_CHUNK = 4096


@dataclass(frozen=True)
class ParserState:
    """Parser position within git's output.

    Attributes:
        parent: Scope of the most recent submodule declaration.
        module: Active module, empty while idle.
    """

    parent: str = "."
    module: str = ""

    @property
    def active(self) -> bool:
        """True when a module is being cloned."""
        return bool(self.module)


def iter_lines(stream: IO[bytes]) -> Iterator[str]:
    """Yield decoded lines from a binary stream.

    Lines end at ``\\n``, ``\\r\\n`` or a bare ``\\r`` (git redraws progress
    counters with carriage returns). A trailing partial line is yielded at
    EOF.

    Raises:
        CloneParseError: If reading the stream fails.
    """
    pending = b""
    while True:
        try:
            chunk = stream.read(_READ_CHUNK)
        except (OSError, ValueError) as e:
            raise CloneParseError(f"scan stderr: {e}") from e
        if not chunk:
            break
        pending += chunk
        # A chunk ending in '\r' may be the first half of '\r\n'
        held = b""
        if pending.endswith(b"\r"):
            pending, held = pending[:-1], b"\r"
        parts = _LINE_BREAK.split(pending)
        pending = parts.pop() + held
        for part in parts:
            if part:
                yield part.decode("utf-8", errors="replace")
    pending = pending.rstrip(b"\r")
    if pending:
        yield pending.decode("utf-8", errors="replace")


class CloneParser:
    """Turns git progress output into clone events.

    Args:
        dest: Destination root the clone writes into.
        ref: Ref the overall operation targets; attached to events.
    """

    def __init__(self, dest: str, ref: str) -> None:
        self.dest = dest
        self.ref = ref

    def feed(self, state: ParserState, line: str) -> Tuple[ParserState, List[CloneEvent]]:
        """Classify one line and compute the next state.

        Args:
            state: Current parser state.
            line: One line of git output, without line terminator.

        Returns:
            Tuple[ParserState, List[CloneEvent]]: Next state and the events
            the line produced, in order.

        Raises:
            CloneParseError: If a progress percentage is not an integer in
                the 0-100 range.
        """
        match = SUBMODULE_PATTERN.search(line)
        if match:
            return self._on_submodule(state, *match.groups())

        match = CLONING_PATTERN.search(line)
        if match:
            return self._on_cloning(state, match.group(1))

        match = RECEIVING_PATTERN.search(line)
        if match:
            return state, [self._on_receiving(state, match.group(1))]

        return state, []

    def parse(self, stream: IO[bytes], reporter: Reporter) -> ParserState:
        """Scan ``stream`` to EOF, reporting events as lines arrive.

        Args:
            stream: Binary stream of git's stderr.
            reporter: Receives every event synchronously.

        Returns:
            ParserState: State after the last line.

        Raises:
            CloneParseError: On a read error or malformed progress line.
        """
        state = ParserState()
        for line in iter_lines(stream):
            state, events = self.feed(state, line)
            for event in events:
                reporter.report(event)
        return state

    def _on_submodule(
        self, state: ParserState, name: str, url: str, full_path: str
    ) -> Tuple[ParserState, List[CloneEvent]]:
        parent = full_path[: -len(name)] if full_path.endswith(name) else full_path
        logger.debug("Submodule %s registered under %r", name, parent)
        event = CloneEvent(
            kind=CloneEventType.SUBMODULE_DISCOVERED,
            parent=parent,
            name=name,
            url=url,
            ref=self.ref,
        )
        return replace(state, parent=parent), [event]

    def _on_cloning(
        self, state: ParserState, raw_path: str
    ) -> Tuple[ParserState, List[CloneEvent]]:
        events: List[CloneEvent] = []
        if state.active:
            # git does not always print a final 100% line per module
            events.append(self._progress(state.module, 100))

        module = self._module_id(raw_path, state.parent)
        events.append(
            CloneEvent(
                kind=CloneEventType.SUBMODULE_CLONE_START,
                parent=state.parent,
                module=module,
                ref=self.ref,
            )
        )
        events.append(self._progress(module, 0))
        return replace(state, module=module), events

    def _on_receiving(self, state: ParserState, raw_percent: str) -> CloneEvent:
        # int() alone would accept "4_2" and non-ASCII digits
        if not (raw_percent.isascii() and raw_percent.isdigit()):
            raise CloneParseError(f"failed to parse integer from {raw_percent!r}")
        percent = int(raw_percent)
        if not 0 <= percent <= 100:
            raise CloneParseError(f"progress {percent}% out of range")
        return self._progress(state.module, percent)

    def _module_id(self, raw_path: str, parent: str) -> str:
        scope = os.path.normpath(os.path.join(self.dest, parent))
        parts = raw_path.split(scope)
        if len(parts) > 1:
            return parts[-1].lstrip(os.sep)
        return raw_path

    def _progress(self, module: str, percent: int) -> CloneEvent:
        return CloneEvent(
            kind=CloneEventType.PROGRESS,
            module=module,
            ref=self.ref,
            progress=percent,
        )
