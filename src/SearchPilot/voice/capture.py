"""Voice capture state machine.

Wraps a speech-to-text capability behind ``IDLE -> LISTENING ->
TRANSCRIBING -> IDLE`` and turns a finalized, non-empty transcript into a
submitted query after a short display delay.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Callable, Optional, Protocol

from SearchPilot.core.errors import CapabilityUnavailableError, VoiceCaptureError
from SearchPilot.utils.log import log

DEFAULT_SUBMIT_DELAY = 0.5


class VoiceState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    TRANSCRIBING = "transcribing"


class SpeechRecognizer(Protocol):
    """Speech-to-text capability.

    Implementations call ``on_interim`` with partial text while listening,
    ``on_final`` once with the finalized transcript, or ``on_error`` with a
    description of a recognizer failure.
    """

    available: bool

    def start(
        self,
        on_interim: Callable[[str], None],
        on_final: Callable[[str], None],
        on_error: Callable[[str], None],
    ) -> None:
        """Begin recognition."""
        raise NotImplementedError

    def stop(self) -> None:
        """Stop recognition; no callbacks may fire afterwards."""
        raise NotImplementedError


class Cancellable(Protocol):
    def cancel(self) -> None:
        raise NotImplementedError


Scheduler = Callable[[float, Callable[[], None]], Cancellable]


def timer_scheduler(delay: float, callback: Callable[[], None]) -> Cancellable:
    """Run ``callback`` after ``delay`` seconds on a daemon timer thread."""
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


class VoiceCaptureManager:
    """Drive a speech recognizer and submit finalized transcripts as queries.

    Recognizer callbacks are accepted only for the capture that is currently
    active; callbacks arriving after ``stop()`` or from an earlier capture are
    ignored.
    """

    def __init__(
        self,
        recognizer: SpeechRecognizer,
        on_submit: Callable[[str], None],
        *,
        submit_delay: float = DEFAULT_SUBMIT_DELAY,
        scheduler: Scheduler = timer_scheduler,
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> None:
        """Initialize the manager.

        Args:
            recognizer: Speech-to-text capability.
            on_submit: Receives the transcript to submit as a fresh query.
            submit_delay: Seconds between finalizing and submitting, so the
                recognized text can be shown first.
            scheduler: Runs a callback after a delay and returns a handle
                with ``cancel()``.
            on_error: Receives recognizer failures as ``VoiceCaptureError``.
        """
        self._recognizer = recognizer
        self._on_submit = on_submit
        self._on_error = on_error
        self._submit_delay = submit_delay
        self._scheduler = scheduler
        self._lock = threading.RLock()
        self._listeners: list[Callable[[VoiceState, str], None]] = []
        self._state = VoiceState.IDLE
        self._transcript = ""
        self._generation = 0
        self._pending: Optional[Cancellable] = None

    @property
    def state(self) -> VoiceState:
        return self._state

    @property
    def transcript(self) -> str:
        """Display-only buffer with the latest interim or final transcript."""
        return self._transcript

    @property
    def supported(self) -> bool:
        return bool(getattr(self._recognizer, "available", False))

    def subscribe(self, listener: Callable[[VoiceState, str], None]) -> Callable[[], None]:
        """Register a listener for state/transcript changes; returns an unsubscribe callable."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def start(self) -> None:
        """Begin listening.

        Raises:
            CapabilityUnavailableError: If no speech-to-text capability exists.
        """
        if not self.supported:
            raise CapabilityUnavailableError()
        with self._lock:
            if self._state is not VoiceState.IDLE:
                log.debug("Voice start ignored in state %s", self._state.value)
                return
            self._generation += 1
            generation = self._generation
            self._transcript = ""
            self._set_state(VoiceState.LISTENING)

        try:
            self._recognizer.start(
                lambda text: self._handle_interim(generation, text),
                lambda text: self._handle_final(generation, text),
                lambda message: self._handle_error(generation, message),
            )
        except CapabilityUnavailableError:
            self._reset()
            raise
        except Exception as e:  # noqa: BLE001 - recognizer failure becomes a voice error
            self._handle_error(generation, str(e))

    def stop(self) -> None:
        """Return to IDLE without submitting. Idempotent; safe from any state."""
        with self._lock:
            was_active = self._state is not VoiceState.IDLE or self._pending is not None
            self._generation += 1
            if self._pending is not None:
                self._pending.cancel()
                self._pending = None
        if was_active:
            self._recognizer.stop()
        self._reset()

    cancel = stop

    def toggle(self) -> None:
        """Start when idle, stop otherwise."""
        if self._state is VoiceState.IDLE:
            self.start()
        else:
            self.stop()

    def _handle_interim(self, generation: int, text: str) -> None:
        with self._lock:
            if generation != self._generation or self._state is not VoiceState.LISTENING:
                return
            self._transcript = text
            self._notify()

    def _handle_final(self, generation: int, text: str) -> None:
        with self._lock:
            if generation != self._generation or self._state is not VoiceState.LISTENING:
                return
            self._transcript = (text or "").strip()
            self._set_state(VoiceState.TRANSCRIBING)
            transcript = self._transcript
            if not transcript:
                log.debug("Voice transcript empty; nothing to submit")
                self._set_state(VoiceState.IDLE)
                return
            log.info("Voice transcript: %r", transcript)
            handle = self._scheduler(self._submit_delay, lambda: self._submit(generation, transcript))
            # A synchronous scheduler has already submitted by now.
            if self._state is VoiceState.TRANSCRIBING:
                self._pending = handle

    def _submit(self, generation: int, transcript: str) -> None:
        with self._lock:
            if generation != self._generation or self._state is not VoiceState.TRANSCRIBING:
                return
            self._pending = None
        self._on_submit(transcript)
        with self._lock:
            if generation == self._generation and self._state is VoiceState.TRANSCRIBING:
                self._set_state(VoiceState.IDLE)

    def _handle_error(self, generation: int, message: str) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._generation += 1
        log.warning("Voice capture failed: %s", message)
        self._recognizer.stop()
        self._reset()
        if self._on_error is not None:
            self._on_error(VoiceCaptureError(message or "Voice capture failed. Please try again."))

    def _reset(self) -> None:
        with self._lock:
            self._pending = None
            if self._state is not VoiceState.IDLE:
                self._set_state(VoiceState.IDLE)

    def _set_state(self, state: VoiceState) -> None:
        self._state = state
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._state, self._transcript)
