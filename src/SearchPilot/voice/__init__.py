"""Voice input: capture state machine and speech recognizer implementations."""

from __future__ import annotations

from SearchPilot.voice.capture import SpeechRecognizer, VoiceCaptureManager, VoiceState
from SearchPilot.voice.recognizers import ConsoleRecognizer, UnavailableRecognizer, build_recognizer

__all__ = [
    "ConsoleRecognizer",
    "SpeechRecognizer",
    "UnavailableRecognizer",
    "VoiceCaptureManager",
    "VoiceState",
    "build_recognizer",
]
