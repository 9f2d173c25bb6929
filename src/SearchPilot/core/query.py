from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional

from SearchPilot.core.location import Location
from SearchPilot.core.models import Query


@dataclass(slots=True)
class QueryState:
    """Current query, page and the address that mirrors them.

    Transitions return the accepted ``Query`` or ``None`` when rejected. A
    rejected transition leaves the state untouched; callers never see an error
    for invalid local input.

    Attributes:
        query: Authoritative query, or None before the first search.
        total_pages: Last known page count for ``query``; None when unknown.
        location: Address state (``q``/``page``/``sid``) for the routing layer.
    """

    query: Optional[Query] = None
    total_pages: Optional[int] = None
    location: Location = field(default_factory=Location)

    def submit(self, text: str) -> Optional[Query]:
        """Start a new query at page 1; empty text is rejected."""
        try:
            query = Query.create(text, 1)
        except ValueError:
            return None
        self._accept(query, sid=None)
        return query

    def set_page(self, page: int) -> Optional[Query]:
        """Move the active query to ``page`` when it is within range."""
        if self.query is None or page < 1:
            return None
        if self.total_pages is not None and page > self.total_pages:
            return None
        query = replace(self.query, page=page)
        self._accept(query, sid=self.location.sid)
        return query

    def restore(self, query: Query, sid: Optional[str] = None) -> Query:
        """Adopt a query coming from the address bar or a retry."""
        self._accept(query, sid=sid)
        return query

    def set_total_pages(self, total_pages: Optional[int]) -> None:
        self.total_pages = total_pages

    def set_session(self, sid: Optional[str]) -> None:
        """Publish the backend session id in the address."""
        self.location = replace(self.location, sid=sid or None)

    def _accept(self, query: Query, *, sid: Optional[str]) -> None:
        if self.query is None or self.query.text != query.text:
            self.total_pages = None
        self.query = query
        self.location = Location(q=query.text, page=query.page, sid=sid or None)
