"""Tests for SearchSessionController orchestration."""

from __future__ import annotations

import sys
import threading
import unittest
from concurrent.futures import Executor, Future
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from SearchPilot.core.errors import CapabilityUnavailableError, ErrorKind
from SearchPilot.core.location import Location
from SearchPilot.core.models import (
    Failed,
    Loading,
    Query,
    QueryAnalysis,
    ResultItem,
    ResultSet,
    SearchSession,
    Success,
)
from SearchPilot.services.controller import ControllerEvent, SearchSessionController
from SearchPilot.services.session import SessionTracker
from SearchPilot.storage.session_store import InMemoryKeyValueStore
from SearchPilot.voice.capture import VoiceCaptureManager, VoiceState
from SearchPilot.voice.recognizers import UnavailableRecognizer


def _success(total: int, session_id: str | None, page_items: int = 10, suggestions=()) -> Success:
    items = tuple(ResultItem(f"Hit {i}", f"https://example.org/{i}", "...") for i in range(min(total, page_items)))
    return Success(
        result_set=ResultSet(items=items, total_count=total, session_id=session_id, suggested_queries=suggestions),
        analysis=QueryAnalysis.empty(),
        elapsed_ms=12.0,
    )


class _StubFetcher:
    """Returns canned states keyed by query text."""

    page_size = 10

    def __init__(self, responses=None) -> None:
        self.responses = dict(responses or {})
        self.calls: list[tuple[str, int, str | None]] = []
        self.voice_calls: list[str] = []
        self.closed = False

    def fetch(self, query: Query, session_id=None):
        self.calls.append((query.text, query.page, session_id))
        return self.responses.get(query.text, _success(0, None))

    def fetch_voice(self, text: str):
        self.voice_calls.append(text)
        return self.responses.get(text, _success(0, None))

    def close(self) -> None:
        self.closed = True


class _ImmediateExecutor(Executor):
    def submit(self, fn, *args, **kwargs):
        future: Future = Future()
        future.set_result(fn(*args, **kwargs))
        return future


class _ManualExecutor(Executor):
    """Holds fetches until the test completes them, in any order."""

    def __init__(self) -> None:
        self.jobs: list[tuple[Future, object, tuple]] = []

    def submit(self, fn, *args, **kwargs):
        future: Future = Future()
        self.jobs.append((future, fn, args))
        return future

    def start(self, index: int = 0) -> None:
        self.jobs[index][0].set_running_or_notify_cancel()

    def run(self, index: int = 0) -> None:
        future, fn, args = self.jobs.pop(index)
        if not future.running() and not future.set_running_or_notify_cancel():
            return
        future.set_result(fn(*args))


class _FakeRecognizer:
    available = True

    def __init__(self) -> None:
        self.callbacks = None
        self.stop_calls = 0

    def start(self, on_interim, on_final, on_error) -> None:
        self.callbacks = (on_interim, on_final, on_error)

    def stop(self) -> None:
        self.stop_calls += 1

    def final(self, text: str) -> None:
        self.callbacks[1](text)


class _Handle:
    def __init__(self, callback) -> None:
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class _ManualScheduler:
    def __init__(self) -> None:
        self.handles: list[_Handle] = []

    def __call__(self, delay, callback) -> _Handle:
        handle = _Handle(callback)
        self.handles.append(handle)
        return handle

    def fire(self) -> None:
        for handle in list(self.handles):
            if not handle.cancelled:
                handle.callback()
        self.handles.clear()


class TestSearchSessionController(unittest.TestCase):
    def _controller(self, fetcher: _StubFetcher, executor: Executor | None = None, **kwargs):
        sessions = SessionTracker(InMemoryKeyValueStore())
        controller = SearchSessionController(fetcher, sessions, executor=executor or _ImmediateExecutor(), **kwargs)
        self.addCleanup(controller.close)
        events: list[ControllerEvent] = []
        controller.subscribe(lambda event, snapshot: events.append(event))
        return controller, sessions, events

    def test_first_search_and_paging(self) -> None:
        fetcher = _StubFetcher({"mars": _success(23, "s1")})
        controller, sessions, events = self._controller(fetcher)

        self.assertTrue(controller.submit(" mars "))

        snapshot = controller.snapshot()
        self.assertIsInstance(snapshot.fetch_state, Success)
        self.assertEqual(snapshot.pagination.total_pages, 3)
        self.assertEqual(list(snapshot.pagination.pages), [1, 2, 3])
        self.assertTrue(snapshot.pagination.has_next)
        self.assertFalse(snapshot.pagination.has_prev)
        self.assertEqual(snapshot.location, Location(q="mars", page=1, sid="s1"))
        self.assertEqual(sessions.current(), SearchSession("mars", "s1"))
        self.assertEqual(events, [ControllerEvent.SUBMIT, ControllerEvent.FETCH_COMPLETED])

        self.assertTrue(controller.next_page())
        self.assertEqual(fetcher.calls[-1], ("mars", 2, "s1"))
        self.assertEqual(controller.location.to_query_string(), "q=mars&page=2&sid=s1")

    def test_out_of_range_page_is_rejected(self) -> None:
        fetcher = _StubFetcher({"mars": _success(23, "s1")})
        controller, _, _ = self._controller(fetcher)
        controller.submit("mars")

        self.assertFalse(controller.goto_page(4))
        self.assertFalse(controller.goto_page(0))
        self.assertFalse(controller.prev_page())
        self.assertEqual(len(fetcher.calls), 1)

    def test_empty_submit_is_rejected(self) -> None:
        fetcher = _StubFetcher()
        controller, _, events = self._controller(fetcher)

        self.assertFalse(controller.submit("   "))
        self.assertEqual(fetcher.calls, [])
        self.assertEqual(events, [])

    def test_new_query_drops_previous_session(self) -> None:
        fetcher = _StubFetcher({"mars": _success(23, "s1"), "venus": _success(4, "s2")})
        controller, sessions, _ = self._controller(fetcher)
        controller.submit("mars")

        controller.submit("venus")

        self.assertEqual(fetcher.calls[-1], ("venus", 1, None))
        self.assertEqual(sessions.current(), SearchSession("venus", "s2"))

    def test_stale_response_is_dropped(self) -> None:
        executor = _ManualExecutor()
        fetcher = _StubFetcher({"cats": _success(5, "s-cats"), "dogs": _success(7, "s-dogs")})
        controller, sessions, events = self._controller(fetcher, executor)

        controller.submit("cats")
        executor.start(0)
        controller.submit("dogs")
        executor.run(0)

        snapshot = controller.snapshot()
        self.assertEqual(snapshot.query, "dogs")
        self.assertIsInstance(snapshot.fetch_state, Loading)
        self.assertIsNone(snapshot.pagination)
        self.assertIsNone(sessions.current())
        self.assertEqual(events[-1], ControllerEvent.FETCH_DROPPED)

        executor.run(0)

        snapshot = controller.snapshot()
        self.assertEqual(snapshot.fetch_state.result_set.session_id, "s-dogs")
        self.assertEqual(sessions.current(), SearchSession("dogs", "s-dogs"))
        self.assertEqual(events[-1], ControllerEvent.FETCH_COMPLETED)

    def test_resubmitting_same_query_drops_older_response(self) -> None:
        executor = _ManualExecutor()
        fetcher = _StubFetcher({"cats": _success(5, "s-cats")})
        controller, _, events = self._controller(fetcher, executor)

        controller.submit("cats")
        executor.start(0)
        controller.submit("cats")
        executor.run(0)

        self.assertIsInstance(controller.fetch_state, Loading)
        self.assertEqual(events[-1], ControllerEvent.FETCH_DROPPED)

    def test_queued_superseded_fetch_is_cancelled(self) -> None:
        executor = _ManualExecutor()
        fetcher = _StubFetcher({"cats": _success(5, "s-cats"), "dogs": _success(7, "s-dogs")})
        controller, _, _ = self._controller(fetcher, executor)

        controller.submit("cats")
        controller.submit("dogs")

        self.assertTrue(executor.jobs[0][0].cancelled())
        executor.run(0)
        executor.run(0)

        self.assertEqual(fetcher.calls, [("dogs", 1, None)])
        self.assertEqual(controller.snapshot().query, "dogs")
        self.assertIsInstance(controller.fetch_state, Success)

    def test_failure_then_retry(self) -> None:
        failed = Failed(ErrorKind.SERVICE_UNAVAILABLE, "Could not connect to the search service. Please try again later.")
        fetcher = _StubFetcher({"mars": failed})
        controller, sessions, _ = self._controller(fetcher)

        controller.submit("mars")
        snapshot = controller.snapshot()
        self.assertEqual(snapshot.fetch_state, failed)
        self.assertIsNone(snapshot.pagination)
        self.assertIsNone(sessions.current())

        fetcher.responses["mars"] = _success(3, "s1")
        self.assertTrue(controller.retry())
        self.assertEqual(fetcher.calls, [("mars", 1, None), ("mars", 1, None)])
        self.assertIsInstance(controller.fetch_state, Success)

    def test_zero_results_is_not_an_error(self) -> None:
        controller, _, _ = self._controller(_StubFetcher())

        controller.submit("xyzzy")

        snapshot = controller.snapshot()
        self.assertTrue(snapshot.fetch_state.is_empty)
        self.assertEqual(snapshot.pagination.total_pages, 0)
        self.assertFalse(snapshot.pagination.has_next)

    def test_suggestion_starts_at_first_page(self) -> None:
        fetcher = _StubFetcher({"mars": _success(23, "s1", suggestions=("mars rover",))})
        controller, _, events = self._controller(fetcher)
        controller.submit("mars")
        controller.goto_page(3)

        self.assertEqual(tuple(controller.snapshot().suggested_queries), ("mars rover",))
        self.assertTrue(controller.click_suggestion("mars rover"))
        self.assertEqual(fetcher.calls[-1], ("mars rover", 1, None))
        self.assertIn(ControllerEvent.CLICK_SUGGESTION, events)

    def test_load_location_uses_address_session_hint(self) -> None:
        fetcher = _StubFetcher({"mars": _success(23, None)})
        controller, sessions, _ = self._controller(fetcher)

        self.assertTrue(controller.load_location("/search?q=mars&page=2&sid=shared"))

        self.assertEqual(fetcher.calls, [("mars", 2, "shared")])
        self.assertEqual(sessions.current(), SearchSession("mars", "shared"))
        self.assertEqual(controller.location.sid, "shared")

    def test_load_location_without_query_does_nothing(self) -> None:
        fetcher = _StubFetcher()
        controller, _, _ = self._controller(fetcher)

        self.assertFalse(controller.load_location("page=3"))
        self.assertEqual(fetcher.calls, [])

    def test_listener_failure_is_isolated(self) -> None:
        controller, _, events = self._controller(_StubFetcher({"mars": _success(1, "s1")}))

        def _broken(event, snapshot):
            raise RuntimeError("render failed")

        controller.subscribe(_broken)
        controller.submit("mars")

        self.assertIsInstance(controller.fetch_state, Success)
        self.assertEqual(events[-1], ControllerEvent.FETCH_COMPLETED)

    def test_closed_controller_ignores_submissions(self) -> None:
        fetcher = _StubFetcher()
        controller = SearchSessionController(
            fetcher,
            SessionTracker(InMemoryKeyValueStore()),
            executor=_ImmediateExecutor(),
            close_fetcher=True,
        )

        controller.close()
        controller.close()

        self.assertFalse(controller.submit("mars"))
        self.assertTrue(fetcher.closed)


class _BlockingFetcher(_StubFetcher):
    """Holds fetches for "slow" until released."""

    def __init__(self, responses) -> None:
        super().__init__(responses)
        self.release = threading.Event()

    def fetch(self, query: Query, session_id=None):
        if query.text == "slow":
            self.release.wait(timeout=5.0)
        return super().fetch(query, session_id)


class TestControllerConcurrency(unittest.TestCase):
    def test_new_query_settles_while_superseded_fetch_runs(self) -> None:
        fetcher = _BlockingFetcher({"slow": _success(3, "s-slow"), "fast": _success(4, "s-fast")})
        controller = SearchSessionController(fetcher, SessionTracker(InMemoryKeyValueStore()))
        self.addCleanup(controller.close)
        self.addCleanup(fetcher.release.set)
        completed = threading.Event()

        def _listener(event, snapshot) -> None:
            if event is ControllerEvent.FETCH_COMPLETED and snapshot.query == "fast":
                completed.set()

        controller.subscribe(_listener)
        controller.submit("slow")
        controller.submit("fast")

        self.assertTrue(completed.wait(timeout=1.0))
        self.assertFalse(fetcher.release.is_set())
        self.assertEqual(controller.snapshot().fetch_state.result_set.session_id, "s-fast")


class TestControllerVoice(unittest.TestCase):
    def setUp(self) -> None:
        self.fetcher = _StubFetcher({"jupiter": _success(12, "s9")})
        self.sessions = SessionTracker(InMemoryKeyValueStore())
        self.controller = SearchSessionController(self.fetcher, self.sessions, executor=_ImmediateExecutor())
        self.addCleanup(self.controller.close)
        self.recognizer = _FakeRecognizer()
        self.scheduler = _ManualScheduler()
        self.voice = VoiceCaptureManager(
            self.recognizer,
            self.controller.submit_voice,
            scheduler=self.scheduler,
            on_error=self.controller.report_voice_error,
        )
        self.controller.attach_voice(self.voice)

    def test_voice_transcript_is_a_fresh_query(self) -> None:
        self.controller.submit("jupiter")
        self.assertEqual(self.sessions.current(), SearchSession("jupiter", "s9"))

        self.controller.voice_toggle()
        self.assertEqual(self.controller.snapshot().voice_state, VoiceState.LISTENING)
        self.recognizer.final(" jupiter ")
        self.assertEqual(self.controller.snapshot().voice_transcript, "jupiter")
        self.scheduler.fire()

        self.assertEqual(self.fetcher.calls[-1], ("jupiter", 1, None))
        self.assertEqual(self.controller.snapshot().voice_state, VoiceState.IDLE)

    def test_voice_endpoint_when_enabled(self) -> None:
        controller = SearchSessionController(
            self.fetcher,
            self.sessions,
            executor=_ImmediateExecutor(),
            use_voice_endpoint=True,
        )
        self.addCleanup(controller.close)

        self.assertTrue(controller.submit_voice("jupiter"))
        self.assertEqual(self.fetcher.voice_calls, ["jupiter"])
        self.assertEqual(controller.location.sid, "s9")

    def test_close_stops_active_capture(self) -> None:
        self.controller.voice_toggle()

        self.controller.close()

        self.assertEqual(self.voice.state, VoiceState.IDLE)
        self.assertEqual(self.recognizer.stop_calls, 1)

    def test_recognizer_error_is_reported(self) -> None:
        self.controller.voice_toggle()
        self.recognizer.callbacks[2]("microphone busy")

        snapshot = self.controller.snapshot()
        self.assertEqual(snapshot.voice_error, "microphone busy")
        self.assertEqual(snapshot.voice_state, VoiceState.IDLE)


class TestControllerWithoutVoice(unittest.TestCase):
    def test_toggle_without_manager_raises(self) -> None:
        controller = SearchSessionController(
            _StubFetcher(),
            SessionTracker(InMemoryKeyValueStore()),
            executor=_ImmediateExecutor(),
        )
        self.addCleanup(controller.close)

        with self.assertRaises(CapabilityUnavailableError):
            controller.voice_toggle()
        self.assertEqual(controller.snapshot().voice_error, "Voice input is not supported in this environment.")

    def test_toggle_with_unavailable_recognizer_raises(self) -> None:
        controller = SearchSessionController(
            _StubFetcher(),
            SessionTracker(InMemoryKeyValueStore()),
            executor=_ImmediateExecutor(),
        )
        self.addCleanup(controller.close)
        controller.attach_voice(VoiceCaptureManager(UnavailableRecognizer(), controller.submit_voice))

        with self.assertRaises(CapabilityUnavailableError):
            controller.voice_toggle()
        self.assertEqual(controller.snapshot().voice_state, VoiceState.IDLE)


if __name__ == "__main__":
    unittest.main()
