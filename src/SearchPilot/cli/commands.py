"""Command implementations for the SearchPilot CLI.

Encapsulates what each command does with the session controller, separated
from CLI parameter handling and output formatting.
"""

from __future__ import annotations

import queue
import sys
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, TextIO

import click

from SearchPilot.core.errors import CapabilityUnavailableError, FetchError
from SearchPilot.core.location import Location
from SearchPilot.core.models import Failed, Loading
from SearchPilot.renderers.base import OutputWriter
from SearchPilot.services.controller import ControllerEvent, SearchSessionController, SearchSnapshot
from SearchPilot.utils.log import log
from SearchPilot.voice.capture import VoiceState

SHELL_HELP = """Commands:
  <text>   search for <text>
  :n / :p  next / previous page
  :g N     go to page N
  :s N     run related search N
  :v       toggle voice input
  :r       retry the current search
  :q       quit"""


class EventWaiter:
    """Collect controller events so the CLI can block until a fetch settles."""

    def __init__(self, controller: SearchSessionController) -> None:
        self._events: queue.Queue[tuple[ControllerEvent, SearchSnapshot]] = queue.Queue()
        self._unsubscribe = controller.subscribe(lambda event, snap: self._events.put((event, snap)))
        self._controller = controller

    def close(self) -> None:
        self._unsubscribe()

    def drain(self) -> None:
        while True:
            try:
                self._events.get_nowait()
            except queue.Empty:
                return

    def wait_until(self, predicate: Callable[[SearchSnapshot], bool], timeout: Optional[float]) -> bool:
        """Wait for an event whose snapshot satisfies ``predicate``.

        Args:
            predicate: Condition on the published snapshot.
            timeout: Seconds to wait; None waits indefinitely.

        Returns:
            True when observed before ``timeout`` seconds elapsed.
        """
        if predicate(self._controller.snapshot()):
            return True
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            remaining = None
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
            try:
                _, snap = self._events.get(timeout=remaining)
            except queue.Empty:
                return False
            if predicate(snap):
                return True

    def wait_settled(self, timeout: float) -> bool:
        return self.wait_until(lambda snap: not isinstance(snap.fetch_state, Loading), timeout)


@dataclass(slots=True)
class SearchCommand:
    """Run one search (optionally from an address) and write the settled result."""

    controller: SearchSessionController
    output_writer: OutputWriter
    settle_timeout: float

    def execute(self, *, query: Optional[str] = None, location: Optional[Location] = None) -> SearchSnapshot:
        """Dispatch the search and wait for it to settle.

        Args:
            query: Plain query text (page 1).
            location: Address to load instead, carrying page and session hint.

        Returns:
            The settled snapshot.

        Raises:
            ValueError: If neither a non-empty query nor a location query is given.
            FetchError: If the search failed or did not settle in time.
        """
        waiter = EventWaiter(self.controller)
        try:
            if location is not None:
                dispatched = self.controller.load_location(location)
            else:
                dispatched = self.controller.submit(query or "")
            if not dispatched:
                raise ValueError("Query text must not be empty")
            if not waiter.wait_settled(self.settle_timeout):
                raise FetchError(f"No response within {self.settle_timeout:.0f}s")
        finally:
            waiter.close()

        snapshot = self.controller.snapshot()
        self.output_writer.write_snapshot(snapshot)
        if isinstance(snapshot.fetch_state, Failed):
            raise FetchError(snapshot.fetch_state.message)
        log.info("Location: %s", snapshot.location.to_path())
        return snapshot


@dataclass(slots=True)
class ShellCommand:
    """Interactive loop: plain text searches, ``:``-commands navigate."""

    controller: SearchSessionController
    output_writer: OutputWriter
    settle_timeout: float
    stream: Optional[TextIO] = None
    voice_timeout: Optional[float] = 60.0
    _waiter: Optional[EventWaiter] = field(default=None, init=False, repr=False)

    def execute(self) -> None:
        stream = self.stream or sys.stdin
        self._waiter = EventWaiter(self.controller)
        click.echo(SHELL_HELP)
        try:
            while True:
                click.echo("search> ", nl=False)
                line = stream.readline()
                if not line:
                    break
                if not self.handle(line.strip()):
                    break
        finally:
            self._waiter.close()
            self._waiter = None

    def handle(self, line: str) -> bool:
        """Handle one input line; returns False when the shell should exit."""
        if not line:
            return True
        if not line.startswith(":"):
            return self._run(lambda: self.controller.submit(line))

        command, _, arg = line[1:].partition(" ")
        command = command.lower()
        if command in ("q", "quit", "exit"):
            return False
        if command == "n":
            return self._run(self.controller.next_page)
        if command == "p":
            return self._run(self.controller.prev_page)
        if command == "r":
            return self._run(self.controller.retry)
        if command == "g":
            page = _parse_int(arg)
            return self._run(lambda: page is not None and self.controller.goto_page(page))
        if command == "s":
            return self._run_suggestion(arg)
        if command == "v":
            return self._run_voice()
        click.echo(SHELL_HELP)
        return True

    def _run(self, action: Callable[[], bool]) -> bool:
        assert self._waiter is not None
        self._waiter.drain()
        if not action():
            click.echo("Nothing to do.")
            return True
        self._show_settled()
        return True

    def _run_suggestion(self, arg: str) -> bool:
        suggestions = self.controller.snapshot().suggested_queries
        index = _parse_int(arg)
        if index is None or not 1 <= index <= len(suggestions):
            click.echo("No such suggestion.")
            return True
        return self._run(lambda: self.controller.click_suggestion(suggestions[index - 1]))

    def _run_voice(self) -> bool:
        assert self._waiter is not None
        self._waiter.drain()
        before = self.controller.fetch_state
        try:
            self.controller.voice_toggle()
        except CapabilityUnavailableError as e:
            click.echo(e.message)
            return True

        if self.controller.snapshot().voice_state is not VoiceState.IDLE:
            finished = self._waiter.wait_until(
                lambda snap: snap.voice_state is VoiceState.IDLE,
                self.voice_timeout,
            )
            if not finished:
                self.controller.voice_toggle()
                click.echo("Voice input timed out.")
                return True
        snapshot = self.controller.snapshot()
        if snapshot.voice_error:
            click.echo(snapshot.voice_error)
        if snapshot.fetch_state is not before:
            self._show_settled()
        return True

    def _show_settled(self) -> None:
        assert self._waiter is not None
        if not self._waiter.wait_settled(self.settle_timeout):
            click.echo("Still waiting for the search service...")
            return
        self.output_writer.write_snapshot(self.controller.snapshot())


def _parse_int(value: str) -> Optional[int]:
    try:
        return int(value.strip())
    except ValueError:
        return None
