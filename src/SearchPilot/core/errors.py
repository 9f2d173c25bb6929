"""Error taxonomy shared by the fetcher, voice capture and controller."""

from __future__ import annotations

from enum import Enum

NETWORK_UNREACHABLE_MESSAGE = "Backend unreachable. Please check your connection and try again."
SERVICE_UNAVAILABLE_MESSAGE = "Could not connect to the search service. Please try again later."
GENERIC_FAILURE_MESSAGE = "Search failed. Please try again."
CAPABILITY_UNAVAILABLE_MESSAGE = "Voice input is not supported in this environment."


class ErrorKind(str, Enum):
    """Failure classes surfaced in ``Failed`` fetch states."""

    CAPABILITY_UNAVAILABLE = "capability_unavailable"
    NETWORK_UNREACHABLE = "network_unreachable"
    SERVICE_UNAVAILABLE = "service_unavailable"
    SERVICE_ERROR = "service_error"
    UNKNOWN = "unknown"


class SearchPilotError(Exception):
    """Base class for SearchPilot errors."""

    kind: ErrorKind = ErrorKind.UNKNOWN
    retryable: bool = True

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class CapabilityUnavailableError(SearchPilotError):
    """The execution environment lacks a required capability (e.g. speech)."""

    kind = ErrorKind.CAPABILITY_UNAVAILABLE
    retryable = False

    def __init__(self, message: str = CAPABILITY_UNAVAILABLE_MESSAGE) -> None:
        super().__init__(message)


class VoiceCaptureError(SearchPilotError):
    """A speech recognizer failed mid-capture; the user may try again."""


class FetchError(SearchPilotError):
    """A backend call failed."""


class NetworkUnreachableError(FetchError):
    """The backend did not respond (connection failure or timeout)."""

    kind = ErrorKind.NETWORK_UNREACHABLE

    def __init__(self, message: str = NETWORK_UNREACHABLE_MESSAGE) -> None:
        super().__init__(message)


class ServiceError(FetchError):
    """The backend responded with an HTTP error.

    Attributes:
        status: HTTP status code (0 when the transport reported no status).
        detail: Backend-provided message, if the body carried one.
    """

    def __init__(self, status: int, detail: str | None = None) -> None:
        self.status = status
        self.detail = detail
        super().__init__(_service_message(status, detail))
        if status in (0, 404):
            self.kind = ErrorKind.SERVICE_UNAVAILABLE
        else:
            self.kind = ErrorKind.SERVICE_ERROR


def _service_message(status: int, detail: str | None) -> str:
    """Pick the user-visible message for an HTTP failure."""
    if status in (0, 404):
        return SERVICE_UNAVAILABLE_MESSAGE
    if detail:
        return detail
    if status >= 500:
        return f"The search service returned an error (HTTP {status})."
    return GENERIC_FAILURE_MESSAGE
