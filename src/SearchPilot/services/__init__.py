"""Search service layer for SearchPilot.

Provides the session tracker, results fetcher and session controller, and a
factory that wires them from configuration.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from SearchPilot.services.controller import ControllerEvent, SearchSessionController, SearchSnapshot
from SearchPilot.services.fetcher import ResultsFetcher, classify_error
from SearchPilot.services.session import SessionTracker

if TYPE_CHECKING:
    from SearchPilot.config import AppConfig
    from SearchPilot.storage.session_store import KeyValueStore
    from SearchPilot.voice.capture import SpeechRecognizer


def create_search_controller(
    config: AppConfig,
    store: KeyValueStore,
    recognizer: SpeechRecognizer | None = None,
) -> SearchSessionController:
    """Create a session controller with configured backend and voice input.

    Args:
        config: Application configuration.
        store: Persistence for the last query and session id.
        recognizer: Speech recognizer; built from ``voice.provider`` when None.

    Returns:
        Configured SearchSessionController. Call ``close()`` when done.
    """
    from SearchPilot.sources.backend.client import SearchApiClient
    from SearchPilot.voice.capture import VoiceCaptureManager
    from SearchPilot.voice.recognizers import build_recognizer

    client = SearchApiClient(
        config.api.base_url,
        timeout=config.api.timeout,
        max_attempts=config.api.max_attempts,
    )
    fetcher = ResultsFetcher(client=client, page_size=config.api.page_size)
    controller = SearchSessionController(
        fetcher,
        SessionTracker(store),
        use_voice_endpoint=config.voice.use_voice_endpoint,
        close_fetcher=True,
    )
    voice = VoiceCaptureManager(
        recognizer if recognizer is not None else build_recognizer(config.voice.provider),
        controller.submit_voice,
        submit_delay=config.voice.submit_delay,
        on_error=controller.report_voice_error,
    )
    controller.attach_voice(voice)
    return controller


__all__ = [
    "ControllerEvent",
    "ResultsFetcher",
    "SearchSessionController",
    "SearchSnapshot",
    "SessionTracker",
    "classify_error",
    "create_search_controller",
]
