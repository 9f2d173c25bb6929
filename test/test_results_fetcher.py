"""Tests for ResultsFetcher: degraded analysis and error classification."""

from __future__ import annotations

import json
import sys
import threading
import time
import unittest
from pathlib import Path

import requests

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from SearchPilot.core.errors import ErrorKind
from SearchPilot.core.models import Failed, Query, QueryAnalysis, Success
from SearchPilot.services.fetcher import ResultsFetcher, classify_error


def _http_error(status: int, body=None) -> requests.exceptions.HTTPError:
    resp = requests.Response()
    resp.status_code = status
    resp._content = json.dumps(body).encode("utf-8") if body is not None else b""
    return requests.exceptions.HTTPError(f"HTTP {status}", response=resp)


def _results(count: int, total: int | None = None, session_id: str | None = "s1") -> dict:
    return {
        "results": [{"title": f"Hit {i}", "url": f"https://example.org/{i}", "snippet": "..."} for i in range(count)],
        "totalResults": count if total is None else total,
        "sessionId": session_id,
    }


class _StubClient:
    def __init__(self, *, analysis=None, search=None, voice=None) -> None:
        self.timeout = 1.0
        self.analysis = analysis if analysis is not None else {"phrases": [], "stemmedWords": ["mar"]}
        self.search_result = search
        self.voice_result = voice
        self.search_calls: list[tuple] = []
        self.voice_calls: list[str] = []
        self.closed = False

    def process_query(self, text):
        if isinstance(self.analysis, Exception):
            raise self.analysis
        return self.analysis

    def search(self, text, *, page, page_size, session_id=None):
        self.search_calls.append((text, page, page_size, session_id))
        if isinstance(self.search_result, Exception):
            raise self.search_result
        return self.search_result

    def voice_search(self, text):
        self.voice_calls.append(text)
        return self.voice_result

    def close(self) -> None:
        self.closed = True


class _SlowAnalysisClient(_StubClient):
    """Analysis call that hangs until released."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.release = threading.Event()

    def process_query(self, text):
        self.release.wait(timeout=5.0)
        return super().process_query(text)


class TestResultsFetcher(unittest.TestCase):
    def _fetcher(self, client: _StubClient) -> ResultsFetcher:
        fetcher = ResultsFetcher(client, page_size=10)
        self.addCleanup(fetcher.close)
        return fetcher

    def test_success_with_analysis(self) -> None:
        client = _StubClient(search=_results(5))

        state = self._fetcher(client).fetch(Query("mars", 1), "s0")

        self.assertIsInstance(state, Success)
        self.assertEqual(len(state.result_set.items), 5)
        self.assertEqual(tuple(state.analysis.stemmed_terms), ("mar",))
        self.assertGreaterEqual(state.elapsed_ms, 0)
        self.assertEqual(client.search_calls, [("mars", 1, 10, "s0")])

    def test_analysis_failure_degrades_to_empty_analysis(self) -> None:
        client = _StubClient(analysis=requests.exceptions.ConnectionError("down"), search=_results(5))

        state = self._fetcher(client).fetch(Query("mars", 1))

        self.assertIsInstance(state, Success)
        self.assertEqual(state.analysis, QueryAnalysis.empty())
        self.assertEqual(len(state.result_set.items), 5)

    def test_slow_analysis_does_not_delay_results(self) -> None:
        client = _SlowAnalysisClient(search=_results(5))
        fetcher = self._fetcher(client)
        self.addCleanup(client.release.set)

        started = time.monotonic()
        state = fetcher.fetch(Query("mars", 1))

        self.assertLess(time.monotonic() - started, 1.0)
        self.assertIsInstance(state, Success)
        self.assertEqual(len(state.result_set.items), 5)
        self.assertEqual(state.analysis, QueryAnalysis.empty())

    def test_rejects_negative_analysis_grace(self) -> None:
        with self.assertRaises(ValueError):
            ResultsFetcher(_StubClient(), analysis_grace=-1)

    def test_not_found_is_service_unavailable(self) -> None:
        client = _StubClient(search=_http_error(404))

        state = self._fetcher(client).fetch(Query("mars", 1))

        self.assertIsInstance(state, Failed)
        self.assertEqual(state.kind, ErrorKind.SERVICE_UNAVAILABLE)
        self.assertTrue(state.message.startswith("Could not connect to the search service"))

    def test_zero_results_is_empty_success(self) -> None:
        client = _StubClient(search=_results(0, session_id=None))

        state = self._fetcher(client).fetch(Query("xyzzy", 1))

        self.assertIsInstance(state, Success)
        self.assertTrue(state.is_empty)

    def test_malformed_payload_is_unknown_failure(self) -> None:
        client = _StubClient(search={"status": "ok"})

        state = self._fetcher(client).fetch(Query("mars", 1))

        self.assertEqual(state.kind, ErrorKind.UNKNOWN)

    def test_voice_fetch_uses_voice_endpoint(self) -> None:
        client = _StubClient(voice=_results(3))

        state = self._fetcher(client).fetch_voice("jupiter")

        self.assertIsInstance(state, Success)
        self.assertEqual(client.voice_calls, ["jupiter"])
        self.assertEqual(client.search_calls, [])

    def test_close_closes_client(self) -> None:
        client = _StubClient(search=_results(1))
        fetcher = ResultsFetcher(client)

        fetcher.close()

        self.assertTrue(client.closed)

    def test_rejects_bad_page_size(self) -> None:
        with self.assertRaises(ValueError):
            ResultsFetcher(_StubClient(), page_size=0)


class TestClassifyError(unittest.TestCase):
    def test_server_error_uses_body_message(self) -> None:
        failed = classify_error(_http_error(500, {"message": "Index rebuilding"}))

        self.assertEqual(failed, Failed(ErrorKind.SERVICE_ERROR, "Index rebuilding"))

    def test_server_error_without_body(self) -> None:
        failed = classify_error(_http_error(503))

        self.assertEqual(failed.kind, ErrorKind.SERVICE_ERROR)
        self.assertIn("503", failed.message)

    def test_client_error_without_body_is_generic(self) -> None:
        failed = classify_error(_http_error(400))

        self.assertEqual(failed.kind, ErrorKind.SERVICE_ERROR)
        self.assertEqual(failed.message, "Search failed. Please try again.")

    def test_not_found_ignores_body(self) -> None:
        failed = classify_error(_http_error(404, {"message": "No handler"}))

        self.assertEqual(failed.kind, ErrorKind.SERVICE_UNAVAILABLE)

    def test_connection_failure_is_network_unreachable(self) -> None:
        self.assertEqual(
            classify_error(requests.exceptions.ConnectionError("refused")).kind,
            ErrorKind.NETWORK_UNREACHABLE,
        )
        self.assertEqual(classify_error(requests.exceptions.ReadTimeout("slow")).kind, ErrorKind.NETWORK_UNREACHABLE)

    def test_anything_else_is_unknown(self) -> None:
        self.assertEqual(classify_error(KeyError("x")).kind, ErrorKind.UNKNOWN)


if __name__ == "__main__":
    unittest.main()
