"""Search session controller.

Single entry point for the presentation layer. It turns user intents into
query transitions, resolves the backend session, dispatches fetches and
publishes render-ready snapshots to subscribers.

Every fetch is tagged with a request number and a ``(text, page, session_id)``
token. A completion is applied only if both still identify the authoritative
request; anything else is a stale response and is dropped.
"""

from __future__ import annotations

import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Mapping, Optional, Sequence, Union

from SearchPilot.core.errors import (
    GENERIC_FAILURE_MESSAGE,
    CapabilityUnavailableError,
    ErrorKind,
    SearchPilotError,
)
from SearchPilot.core.location import Location
from SearchPilot.core.models import (
    Failed,
    FetchState,
    Idle,
    Loading,
    PaginationView,
    Query,
    QueryAnalysis,
    Success,
)
from SearchPilot.core.pagination import PaginationPlanner
from SearchPilot.core.query import QueryState
from SearchPilot.services.fetcher import ResultsFetcher
from SearchPilot.services.session import SessionTracker
from SearchPilot.utils.log import log
from SearchPilot.voice.capture import VoiceCaptureManager, VoiceState

RequestToken = tuple[str, int, Optional[str]]

FETCH_WORKERS = 4


class ControllerEvent(str, Enum):
    """Events published to subscribers after the snapshot changed."""

    SUBMIT = "submit"
    GOTO_PAGE = "goto_page"
    CLICK_SUGGESTION = "click_suggestion"
    VOICE_TOGGLE = "voice_toggle"
    VOICE_CHANGED = "voice_changed"
    VOICE_ERROR = "voice_error"
    FETCH_COMPLETED = "fetch_completed"
    FETCH_DROPPED = "fetch_dropped"


@dataclass(frozen=True, slots=True)
class SearchSnapshot:
    """Render-ready view of the controller state."""

    query: Optional[str] = None
    page: int = 1
    session_id: Optional[str] = None
    fetch_state: FetchState = field(default_factory=Idle)
    analysis: QueryAnalysis = field(default_factory=QueryAnalysis.empty)
    pagination: Optional[PaginationView] = None
    suggested_queries: Sequence[str] = ()
    ranking_factors: Mapping[str, str] = field(default_factory=dict)
    elapsed_ms: Optional[float] = None
    voice_state: VoiceState = VoiceState.IDLE
    voice_transcript: str = ""
    voice_error: Optional[str] = None
    location: Location = field(default_factory=Location)


@dataclass(frozen=True, slots=True)
class _Request:
    request_id: int
    token: RequestToken
    query: Query
    voice: bool = False


Listener = Callable[[ControllerEvent, SearchSnapshot], None]


class SearchSessionController:
    """Compose query state, session tracking, fetching, pagination and voice."""

    def __init__(
        self,
        fetcher: ResultsFetcher,
        sessions: SessionTracker,
        *,
        voice: Optional[VoiceCaptureManager] = None,
        executor: Optional[Executor] = None,
        use_voice_endpoint: bool = False,
        close_fetcher: bool = False,
    ) -> None:
        """Initialize the controller.

        Args:
            fetcher: Issues the backend calls.
            sessions: Remembers the last query and its session id.
            voice: Optional voice capture manager whose ``on_submit`` calls
                ``submit_voice``.
            executor: Runs fetches; a private pool when omitted. Fetches are
                not serialized: a superseded fetch never delays the next one.
            use_voice_endpoint: Fetch voice queries through ``/voice-search``.
            close_fetcher: Close ``fetcher`` (and its HTTP client) on ``close()``.
        """
        self._fetcher = fetcher
        self._sessions = sessions
        self._planner = PaginationPlanner(fetcher.page_size)
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=FETCH_WORKERS,
            thread_name_prefix="searchpilot-fetch",
        )
        self._use_voice_endpoint = use_voice_endpoint
        self._close_fetcher = close_fetcher

        self._lock = threading.RLock()
        self._listeners: list[Listener] = []
        self._state = QueryState()
        self._fetch_state: FetchState = Idle()
        self._pagination: Optional[PaginationView] = None
        self._voice_error: Optional[str] = None
        self._request_seq = 0
        self._active: Optional[tuple[int, RequestToken]] = None
        self._inflight: Optional[tuple[int, Future]] = None
        self._closed = False

        self._voice: Optional[VoiceCaptureManager] = None
        self._voice_unsubscribe: Optional[Callable[[], None]] = None
        if voice is not None:
            self.attach_voice(voice)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def snapshot(self) -> SearchSnapshot:
        with self._lock:
            query = self._state.query
            fetch_state = self._fetch_state
            success = fetch_state if isinstance(fetch_state, Success) else None
            voice = self._voice
            return SearchSnapshot(
                query=query.text if query else None,
                page=query.page if query else 1,
                session_id=self._state.location.sid,
                fetch_state=fetch_state,
                analysis=success.analysis if success else QueryAnalysis.empty(),
                pagination=self._pagination if success else None,
                suggested_queries=tuple(success.result_set.suggested_queries) if success else (),
                ranking_factors=dict(success.result_set.ranking_factors) if success else {},
                elapsed_ms=success.elapsed_ms if success else None,
                voice_state=voice.state if voice else VoiceState.IDLE,
                voice_transcript=voice.transcript if voice else "",
                voice_error=self._voice_error,
                location=self._state.location,
            )

    @property
    def fetch_state(self) -> FetchState:
        return self._fetch_state

    @property
    def location(self) -> Location:
        return self._state.location

    def submit(self, text: str) -> bool:
        """Submit new query text; empty text is rejected silently."""
        with self._lock:
            query = self._state.submit(text)
            if query is None:
                log.debug("Rejected empty query submission")
                return False
            request = self._prepare(query, self._sessions.resolve_session(query.text))
        return self._launch(request, ControllerEvent.SUBMIT)

    def goto_page(self, page: int) -> bool:
        """Fetch another page of the current query; out-of-range pages are rejected."""
        with self._lock:
            query = self._state.set_page(page)
            if query is None:
                log.debug("Rejected page change to %s (total_pages=%s)", page, self._state.total_pages)
                return False
            request = self._prepare(query, self._sessions.resolve_session(query.text))
        return self._launch(request, ControllerEvent.GOTO_PAGE)

    def next_page(self) -> bool:
        with self._lock:
            current = self._state.query
        return current is not None and self.goto_page(current.page + 1)

    def prev_page(self) -> bool:
        with self._lock:
            current = self._state.query
        return current is not None and self.goto_page(current.page - 1)

    def click_suggestion(self, text: str) -> bool:
        """Run a suggested query from page 1."""
        with self._lock:
            query = self._state.submit(text)
            if query is None:
                return False
            request = self._prepare(query, self._sessions.resolve_session(query.text))
        return self._launch(request, ControllerEvent.CLICK_SUGGESTION)

    def retry(self) -> bool:
        """Resubmit the current query with the same page and session."""
        with self._lock:
            query = self._state.query
            if query is None:
                return False
            request = self._prepare(query, self._sessions.resolve_session(query.text))
        return self._launch(request, ControllerEvent.SUBMIT)

    def load_location(self, location: Union[Location, str]) -> bool:
        """Run the search described by an address (first load or back/forward).

        An address ``sid`` is only a hint: it is used when it does not
        contradict the remembered query text.

        Args:
            location: Parsed location or a query string / URL.

        Returns:
            True when a fetch was dispatched.
        """
        if isinstance(location, str):
            location = Location.parse(location)
        with self._lock:
            try:
                query = Query.create(location.q, location.page)
            except ValueError:
                log.debug("Ignoring location without a query: %s", location)
                return False
            session_id = self._sessions.seed_from_location(location)
            self._state.restore(query, sid=session_id)
            request = self._prepare(query, session_id)
        return self._launch(request, ControllerEvent.SUBMIT)

    def voice_toggle(self) -> None:
        """Start or stop voice capture.

        Raises:
            CapabilityUnavailableError: If speech recognition is not supported.
        """
        with self._lock:
            self._voice_error = None
            voice = self._voice
        try:
            if voice is None:
                raise CapabilityUnavailableError()
            voice.toggle()
        except CapabilityUnavailableError as e:
            with self._lock:
                self._voice_error = e.message
            self._publish(ControllerEvent.VOICE_ERROR)
            raise
        self._publish(ControllerEvent.VOICE_TOGGLE)

    def submit_voice(self, transcript: str) -> bool:
        """Submit a voice transcript as a fresh query, never a continuation."""
        with self._lock:
            query = self._state.submit(transcript)
            if query is None:
                return False
            self._sessions.clear()
            request = self._prepare(query, None, voice=self._use_voice_endpoint)
        return self._launch(request, ControllerEvent.SUBMIT)

    def attach_voice(self, voice: VoiceCaptureManager) -> None:
        """Observe a voice manager so its state shows up in snapshots."""
        unsubscribe = voice.subscribe(lambda state, transcript: self._publish(ControllerEvent.VOICE_CHANGED))
        with self._lock:
            previous = self._voice_unsubscribe
            self._voice = voice
            self._voice_unsubscribe = unsubscribe
        if previous is not None:
            previous()

    def report_voice_error(self, error: Exception) -> None:
        """Surface a transient voice failure to the presentation layer."""
        with self._lock:
            self._voice_error = error.message if isinstance(error, SearchPilotError) else str(error)
        self._publish(ControllerEvent.VOICE_ERROR)

    def close(self) -> None:
        """Stop voice capture and release the fetch executor."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._active = None
            unsubscribe = self._voice_unsubscribe
            self._voice_unsubscribe = None
            voice = self._voice
        if unsubscribe is not None:
            unsubscribe()
        if voice is not None:
            voice.stop()
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
        if self._close_fetcher:
            self._fetcher.close()

    def __enter__(self) -> SearchSessionController:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _prepare(self, query: Query, session_id: Optional[str], *, voice: bool = False) -> Optional[_Request]:
        """Make ``query`` authoritative and enter ``Loading``. Caller holds the lock."""
        if self._closed:
            log.debug("Controller closed; ignoring query %r", query.text)
            return None
        self._request_seq += 1
        request = _Request(
            request_id=self._request_seq,
            token=(query.text, query.page, session_id),
            query=query,
            voice=voice,
        )
        self._active = (request.request_id, request.token)
        self._state.set_session(session_id)
        self._fetch_state = Loading()
        self._pagination = None
        log.debug("Dispatch #%d token=%s", request.request_id, request.token)
        return request

    def _launch(self, request: Optional[_Request], event: ControllerEvent) -> bool:
        if request is None:
            return False
        self._publish(event)
        try:
            if request.voice:
                future = self._executor.submit(self._fetcher.fetch_voice, request.query.text)
            else:
                future = self._executor.submit(self._fetcher.fetch, request.query, request.token[2])
        except RuntimeError as e:
            log.debug("Fetch #%d not started: %s", request.request_id, e)
            return False
        future.add_done_callback(lambda f: self._complete(request, f))
        self._supersede(request.request_id, future)
        return True

    def _supersede(self, request_id: int, future: Future) -> None:
        """Cancel the older of the tracked fetch and ``future`` if it is still queued.

        A fetch that already started runs to completion and is dropped as stale.
        """
        with self._lock:
            previous = self._inflight
            if previous is not None and previous[0] > request_id:
                superseded: Optional[Future] = future
            else:
                self._inflight = (request_id, future)
                superseded = previous[1] if previous is not None else None
        if superseded is not None and superseded.cancel():
            log.debug("Cancelled queued fetch superseded by #%d", max(request_id, previous[0]))

    def _complete(self, request: _Request, future: Future) -> None:
        if future.cancelled():
            return
        try:
            result = future.result()
        except Exception as e:  # noqa: BLE001 - an unexpected fetcher error still ends the cycle
            log.error("Fetch #%d raised unexpectedly: %s", request.request_id, e)
            result = Failed(kind=ErrorKind.UNKNOWN, message=GENERIC_FAILURE_MESSAGE)

        with self._lock:
            stale = self._active != (request.request_id, request.token)
            if stale:
                log.debug("Dropping stale response #%d token=%s", request.request_id, request.token)
            else:
                self._apply(request, result)
        self._publish(ControllerEvent.FETCH_DROPPED if stale else ControllerEvent.FETCH_COMPLETED)

    def _apply(self, request: _Request, result: FetchState) -> None:
        text, page, _ = request.token
        self._fetch_state = result
        if not isinstance(result, Success):
            return

        result_set = result.result_set
        self._pagination = self._planner.plan(result_set.total_count, page)
        self._state.set_total_pages(self._pagination.total_pages)
        session_id = result_set.session_id or request.token[2]
        self._sessions.record_session(text, session_id)
        self._state.set_session(session_id)
        if result.is_empty:
            log.info("No results for %r", text)

    def _publish(self, event: ControllerEvent) -> None:
        snapshot = self.snapshot()
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event, snapshot)
            except Exception as e:  # noqa: BLE001 - listener failure must be isolated
                log.warning("Controller listener failed on %s: %s", event.value, e)
