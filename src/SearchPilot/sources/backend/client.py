"""Search backend API client.

Calls the backend's query-analysis and search endpoints over HTTP, with
bounded timeouts and backoff for connection-level failures.
"""

from __future__ import annotations

import random
import time
from typing import Any, Optional

import requests

from SearchPilot.utils.log import log

DEFAULT_BASE_URL = "http://localhost:8080/api"
DEFAULT_TIMEOUT = 10.0
MAX_ATTEMPTS = 3
BASE_PAUSE = 0.5
MAX_SLEEP = 4.0

HEADERS = {
    "User-Agent": "search-pilot/0.1",
    "Accept": "application/json",
}

# Only failures where the backend never answered are retried.
RETRYABLE_ERRORS = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
)


class SearchApiClient:
    """Low-level HTTP client for the search backend.

    Responsible only for making network requests and returning decoded JSON.
    Normalization and error classification are handled elsewhere.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = MAX_ATTEMPTS,
        session: Optional[requests.Session] = None,
    ) -> None:
        """Initialize the client with a reusable HTTP session.

        Args:
            base_url: API root, e.g. ``http://localhost:8080/api``.
            timeout: Per-request timeout in seconds.
            max_attempts: Attempts for connection failures; 1 disables retry.
            session: Optional pre-built session (tests inject a mock).
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self._session = session or requests.Session()

    def close(self) -> None:
        """Close the underlying HTTP session and release pooled connections."""
        self._session.close()

    def __enter__(self) -> SearchApiClient:
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager and close session."""
        self.close()

    def process_query(self, text: str) -> Any:
        """Fetch the backend's analysis of ``text`` (phrases, stems, operator).

        Analysis is optional for a search, so it gets a single attempt.
        """
        return self._get_json("process-query", {"query": text}, attempts=1)

    def search(
        self,
        text: str,
        *,
        page: int,
        page_size: int,
        session_id: Optional[str] = None,
    ) -> Any:
        """Fetch one page of ranked results.

        Both ``size`` and ``pageSize`` are sent so either backend naming works.

        Args:
            text: Query text.
            page: 1-based page number.
            page_size: Results per page.
            session_id: Backend ordering session to continue, if any.

        Returns:
            Decoded JSON payload.
        """
        params = {
            "query": text,
            "page": str(page),
            "size": str(page_size),
            "pageSize": str(page_size),
        }
        if session_id:
            params["sessionId"] = session_id
        return self._get_json("search", params)

    def voice_search(self, text: str) -> Any:
        """Run the backend's voice search endpoint (always page 1)."""
        return self._get_json("voice-search", {"query": text})

    def _get_json(self, endpoint: str, params: dict[str, str], *, attempts: Optional[int] = None) -> Any:
        """GET ``endpoint`` and decode its JSON body.

        Args:
            endpoint: Path below ``base_url``.
            params: Query parameters.
            attempts: Override for ``max_attempts``.

        Raises:
            requests.exceptions.HTTPError: For non-2xx responses.
            requests.exceptions.RequestException: When all attempts failed.
            ValueError: When the body is not valid JSON.
        """
        url = f"{self.base_url}/{endpoint}"
        resp = self._get_with_retry(url, params=params, attempts=attempts or self.max_attempts)
        resp.raise_for_status()
        log.debug("Backend response ok: endpoint=%s status=%s bytes=%s", endpoint, resp.status_code, len(resp.content))
        return resp.json()

    def _get_with_retry(self, url: str, *, params: dict[str, str], attempts: int) -> requests.Response:
        """Issue GET request, retrying connection failures and timeouts.

        HTTP error statuses are returned to the caller untouched.

        Args:
            url: Endpoint URL.
            params: Query parameters.
            attempts: Total attempts before giving up.

        Returns:
            requests.Response from the first attempt that got an answer.

        Raises:
            requests.exceptions.RequestException: Last error when all attempts failed.
        """
        last_err: Exception | None = None
        for attempt in range(1, attempts + 1):
            try:
                log.debug("Backend request attempt %d/%d to %s", attempt, attempts, url)
                return self._session.get(url, params=params, headers=HEADERS, timeout=self.timeout)
            except RETRYABLE_ERRORS as e:
                last_err = e

            if attempt < attempts:
                log.debug("Backend retrying after attempt %d (error=%s)", attempt, last_err)
                self._sleep_backoff(attempt)

        assert last_err is not None
        raise last_err

    @staticmethod
    def _sleep_backoff(attempt: int) -> None:
        """Sleep with exponential backoff and a little jitter.

        Args:
            attempt: Current attempt index (1-based).
        """
        delay = min(BASE_PAUSE * (2 ** (attempt - 1)) + random.uniform(0, 0.25), MAX_SLEEP)
        time.sleep(delay)
