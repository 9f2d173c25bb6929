from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Sequence, Union

from SearchPilot.core.errors import ErrorKind


class Operator(str, Enum):
    """Boolean operator detected by the backend's query analysis."""

    AND = "AND"
    OR = "OR"
    NOT = "NOT"

    @classmethod
    def parse(cls, value: object) -> Optional[Operator]:
        """Map a raw payload value to an operator, or None when absent/unknown."""
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


@dataclass(frozen=True, slots=True)
class Query:
    """One user-initiated search action.

    Attributes:
        text: Trimmed, non-empty query text.
        page: 1-based page number.
    """

    text: str
    page: int = 1

    def __post_init__(self) -> None:
        if not self.text or self.text != self.text.strip():
            raise ValueError("Query text must be trimmed and non-empty")
        if self.page < 1:
            raise ValueError("Query page must be >= 1")

    @classmethod
    def create(cls, text: str, page: int = 1) -> Query:
        """Build a query from raw user text.

        Raises:
            ValueError: If the trimmed text is empty or page < 1.
        """
        return cls(text=(text or "").strip(), page=page)


@dataclass(frozen=True, slots=True)
class SearchSession:
    """Last searched query text and the backend session bound to it."""

    query: str
    session_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ResultItem:
    """One ranked hit. Identity is its position within the page."""

    title: str
    url: str
    snippet: str
    score: Optional[float] = None


@dataclass(frozen=True, slots=True)
class ResultSet:
    """Normalized search response for one page.

    Attributes:
        items: Ranked results for the requested page.
        total_count: Total matches across all pages.
        session_id: Backend ordering session, when issued.
        suggested_queries: Follow-up queries proposed by the backend.
        ranking_factors: Factor name to human-readable description.
        current_page: Page echoed by the backend, if any.
        page_size: Page size echoed by the backend, if any.
    """

    items: Sequence[ResultItem] = ()
    total_count: int = 0
    session_id: Optional[str] = None
    suggested_queries: Sequence[str] = ()
    ranking_factors: Mapping[str, str] = field(default_factory=dict)
    current_page: Optional[int] = None
    page_size: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "ranking_factors", MappingProxyType(dict(self.ranking_factors)))


@dataclass(frozen=True, slots=True)
class QueryAnalysis:
    """Backend breakdown of the raw query, used for highlighting and badges."""

    phrases: Sequence[str] = ()
    stemmed_terms: Sequence[str] = ()
    operator: Optional[Operator] = None
    original_query: Optional[str] = None
    is_phrase_query: bool = False

    @classmethod
    def empty(cls) -> QueryAnalysis:
        """Return the degraded analysis used when the analysis call fails."""
        return cls()


@dataclass(frozen=True, slots=True)
class PaginationView:
    """Derived pagination state for the current page."""

    total_pages: int
    has_next: bool
    has_prev: bool
    window_start: int
    window_end: int
    start_item: int
    end_item: int

    @property
    def pages(self) -> range:
        """Page numbers to render, inclusive of both window bounds."""
        if self.total_pages == 0:
            return range(0)
        return range(self.window_start, self.window_end + 1)


@dataclass(frozen=True, slots=True)
class Idle:
    """No query has been issued yet."""


@dataclass(frozen=True, slots=True)
class Loading:
    """A fetch for the current query is in flight."""


@dataclass(frozen=True, slots=True)
class Success:
    """Search call completed.

    A zero-match result is still a success; ``is_empty`` marks that display state.
    """

    result_set: ResultSet
    analysis: QueryAnalysis
    elapsed_ms: float

    @property
    def is_empty(self) -> bool:
        return self.result_set.total_count == 0 and not self.result_set.items


@dataclass(frozen=True, slots=True)
class Failed:
    """Search call failed; resubmitting the same query retries it."""

    kind: ErrorKind
    message: str


FetchState = Union[Idle, Loading, Success, Failed]
