"""Speech recognizer implementations for environments without a browser."""

from __future__ import annotations

import sys
import threading
from typing import Callable, Optional, TextIO

import click

from SearchPilot.core.errors import CapabilityUnavailableError


class UnavailableRecognizer:
    """Recognizer for environments with no speech-to-text capability."""

    available = False

    def start(
        self,
        on_interim: Callable[[str], None],
        on_final: Callable[[str], None],
        on_error: Callable[[str], None],
    ) -> None:
        raise CapabilityUnavailableError()

    def stop(self) -> None:
        return


class ConsoleRecognizer:
    """Dictation stand-in for terminals: one typed line is the final transcript.

    The line is read on a background thread so ``stop()`` can abandon the
    capture. A blocking ``readline`` cannot be interrupted, though: after
    ``stop()`` the reader still consumes the next line from ``stream`` and
    discards it. Callers sharing the stream with other input (the shell does)
    should wait for the capture to finish rather than stop it on a timer.
    """

    available = True

    def __init__(self, stream: Optional[TextIO] = None, *, prompt: str = "(listening) ") -> None:
        self._stream = stream
        self._prompt = prompt
        self._active = threading.Event()

    def start(
        self,
        on_interim: Callable[[str], None],
        on_final: Callable[[str], None],
        on_error: Callable[[str], None],
    ) -> None:
        self._active.set()
        thread = threading.Thread(
            target=self._read_line,
            args=(on_interim, on_final, on_error),
            name="searchpilot-voice",
            daemon=True,
        )
        thread.start()

    def stop(self) -> None:
        self._active.clear()

    def _read_line(
        self,
        on_interim: Callable[[str], None],
        on_final: Callable[[str], None],
        on_error: Callable[[str], None],
    ) -> None:
        stream = self._stream or sys.stdin
        if self._prompt:
            click.echo(self._prompt, nl=False)
        try:
            line = stream.readline()
        except (OSError, ValueError) as e:
            if self._active.is_set():
                on_error(str(e))
            return
        if not self._active.is_set():
            return
        text = line.rstrip("\n")
        if text:
            on_interim(text)
        on_final(text)


def build_recognizer(provider: str):
    """Build the recognizer configured by ``voice.provider``.

    Raises:
        ValueError: If the provider name is unknown.
    """
    if provider == "none":
        return UnavailableRecognizer()
    if provider == "console":
        return ConsoleRecognizer()
    raise ValueError(f"Unsupported voice provider: {provider}")
