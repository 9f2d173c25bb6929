"""Results fetching: query analysis plus one page of search results.

The analysis call and the search call are independent. Analysis failures
degrade to an empty analysis; search failures end the fetch in ``Failed``.
"""

from __future__ import annotations

import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Callable, Optional

import requests

from SearchPilot.core.errors import (
    GENERIC_FAILURE_MESSAGE,
    ErrorKind,
    FetchError,
    NetworkUnreachableError,
    ServiceError,
)
from SearchPilot.core.models import Failed, FetchState, Query, QueryAnalysis, ResultSet, Success
from SearchPilot.sources.backend.client import SearchApiClient
from SearchPilot.sources.backend.parser import extract_error_message, parse_analysis, parse_result_set
from SearchPilot.utils.log import log

DEFAULT_PAGE_SIZE = 10
ANALYSIS_GRACE = 0.25


@dataclass(slots=True)
class ResultsFetcher:
    """Issue the analysis and search calls for one query/page/session tuple.

    Attributes:
        client: Backend HTTP client.
        page_size: Results requested per page.
        analysis_grace: Seconds the analysis call may still take once the
            search call has settled; 0 keeps only an analysis that already
            finished. The fetch never waits longer than this for analysis.
    """

    client: SearchApiClient
    page_size: int = DEFAULT_PAGE_SIZE
    analysis_grace: float = ANALYSIS_GRACE
    _pool: ThreadPoolExecutor = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.page_size <= 0:
            raise ValueError("page_size must be positive")
        if self.analysis_grace < 0:
            raise ValueError("analysis_grace must be >= 0")
        self._pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="searchpilot-analysis")

    def fetch(self, query: Query, session_id: Optional[str] = None) -> FetchState:
        """Fetch analysis and results for ``query``.

        Args:
            query: Query text and page.
            session_id: Session to continue, or None for a fresh ordering.

        Returns:
            ``Success`` with the result set, analysis and elapsed time, or
            ``Failed`` with the classified search-call error.
        """
        log.debug("Fetch start: query=%r page=%d session_id=%s", query.text, query.page, session_id)
        return self._run(
            query.text,
            lambda: self.client.search(
                query.text,
                page=query.page,
                page_size=self.page_size,
                session_id=session_id,
            ),
        )

    def fetch_voice(self, text: str) -> FetchState:
        """Fetch page 1 through the backend's voice search endpoint."""
        log.debug("Voice fetch start: query=%r", text)
        return self._run(text, lambda: self.client.voice_search(text))

    def close(self) -> None:
        """Stop the analysis worker pool and close the HTTP client."""
        self._pool.shutdown(wait=False, cancel_futures=True)
        self.client.close()

    def _run(self, text: str, search_call: Callable[[], object]) -> FetchState:
        started = time.perf_counter()
        analysis_future = self._pool.submit(self.client.process_query, text)

        try:
            result_set = parse_result_set(search_call())
        except Exception as e:  # noqa: BLE001 - every search failure becomes a Failed state
            analysis_future.cancel()
            failed = classify_error(e)
            log.warning("Search call failed: query=%r kind=%s error=%s", text, failed.kind.value, e)
            return failed
        elapsed_ms = (time.perf_counter() - started) * 1000.0

        analysis = self._await_analysis(analysis_future, text)
        log.info(
            "Fetched %d of %d results for %r in %.0f ms",
            len(result_set.items),
            result_set.total_count,
            text,
            elapsed_ms,
        )
        return Success(result_set=result_set, analysis=analysis, elapsed_ms=elapsed_ms)

    def _await_analysis(self, future: Future, text: str) -> QueryAnalysis:
        try:
            return parse_analysis(future.result(timeout=self.analysis_grace))
        except FutureTimeoutError:
            future.cancel()
            log.warning("Query analysis still pending for %r; continuing without it", text)
        except Exception as e:  # noqa: BLE001 - analysis is best-effort
            log.warning("Query analysis failed for %r; continuing without it: %s", text, e)
        return QueryAnalysis.empty()


def classify_error(error: Exception) -> Failed:
    """Map a search-call exception to a ``Failed`` state.

    Args:
        error: Exception raised while issuing or decoding the search call.

    Returns:
        Failed state with error kind and user-facing message.
    """
    if isinstance(error, FetchError):
        return Failed(kind=error.kind, message=error.message)

    if isinstance(error, requests.exceptions.HTTPError):
        response = error.response
        status = getattr(response, "status_code", None)
        if not isinstance(status, int):
            status = 0
        detail = None
        if response is not None:
            try:
                detail = extract_error_message(response.json())
            except ValueError:
                detail = None
        service_error = ServiceError(status, detail)
        return Failed(kind=service_error.kind, message=service_error.message)

    if isinstance(error, (requests.exceptions.ConnectionError, requests.exceptions.Timeout)):
        unreachable = NetworkUnreachableError()
        return Failed(kind=unreachable.kind, message=unreachable.message)

    return Failed(kind=ErrorKind.UNKNOWN, message=GENERIC_FAILURE_MESSAGE)
