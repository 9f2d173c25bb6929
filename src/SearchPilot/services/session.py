"""Session tracking for session-consistent pagination.

The backend issues an opaque session id so that paging through one query
keeps a stable result ordering. The id is only valid for the query text that
produced it; a different query text invalidates it before the next fetch.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Optional

from SearchPilot.core.models import SearchSession
from SearchPilot.utils.log import log

if TYPE_CHECKING:
    from SearchPilot.core.location import Location
    from SearchPilot.storage.session_store import KeyValueStore

LAST_QUERY_KEY = "last_query"
SESSION_ID_KEY = "session_id"


class SessionTracker:
    """Remember the last searched query and the session id bound to it."""

    def __init__(self, store: KeyValueStore) -> None:
        """Initialize the tracker.

        Args:
            store: Persistence capability shared across page loads.
        """
        self._store = store
        self._lock = threading.RLock()

    def current(self) -> Optional[SearchSession]:
        """Return the remembered session, or None when nothing is stored."""
        with self._lock:
            query = self._store.get(LAST_QUERY_KEY)
            if query is None:
                return None
            return SearchSession(query=query, session_id=self._store.get(SESSION_ID_KEY))

    def resolve_session(self, new_query_text: str) -> Optional[str]:
        """Return the session id to send with the next fetch for this text.

        A changed query text clears the remembered id and returns None.

        Args:
            new_query_text: Trimmed text of the query about to be fetched.

        Returns:
            Remembered session id when the text is unchanged, otherwise None.
        """
        with self._lock:
            remembered = self.current()
            if remembered is None:
                return None
            if remembered.query == new_query_text:
                return remembered.session_id
            if remembered.session_id is not None:
                log.debug(
                    "Query changed (%r -> %r); dropping session %s",
                    remembered.query,
                    new_query_text,
                    remembered.session_id,
                )
                self._remember(SearchSession(query=remembered.query))
            return None

    def record_session(self, query_text: str, session_id: Optional[str]) -> None:
        """Store the query and the session id returned by a successful fetch."""
        self._remember(SearchSession(query=query_text, session_id=session_id or None))
        log.debug("Recorded session: query=%r session_id=%s", query_text, session_id)

    def seed_from_location(self, location: Location) -> Optional[str]:
        """Use an address-bar ``sid`` as a first-load hint.

        Query-text equality stays authoritative: the hint is adopted only when
        nothing is remembered yet or the remembered text equals the address
        query. A differing remembered session is never overridden.

        Args:
            location: Parsed address state.

        Returns:
            Session id that will be resolved for ``location.q``.
        """
        if not location.q:
            return None
        with self._lock:
            remembered = self.current()
            # Unknown, or the same text still waiting for its first session.
            if location.sid and remembered in (None, SearchSession(query=location.q)):
                self._remember(SearchSession(query=location.q, session_id=location.sid))
                log.debug("Adopted session hint from address: %s", location.sid)
            return self.resolve_session(location.q)

    def _remember(self, session: SearchSession) -> None:
        with self._lock:
            self._store.set_many({LAST_QUERY_KEY: session.query, SESSION_ID_KEY: session.session_id})

    def clear(self) -> None:
        """Forget the remembered query and session id."""
        with self._lock:
            self._store.delete_many([LAST_QUERY_KEY, SESSION_ID_KEY])
