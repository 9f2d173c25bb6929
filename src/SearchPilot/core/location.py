"""Navigable location exposed to the routing collaborator.

The address carries ``q`` (search text), ``page`` (1-based) and ``sid``
(backend session id, only once the backend issued one).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlsplit


@dataclass(frozen=True, slots=True)
class Location:
    """Shareable address state for the current search."""

    q: str = ""
    page: int = 1
    sid: Optional[str] = None

    def to_query_string(self) -> str:
        """Encode as ``q=..&page=..[&sid=..]``; empty when no query is set."""
        if not self.q:
            return ""
        params: dict[str, str] = {"q": self.q, "page": str(self.page)}
        if self.sid:
            params["sid"] = self.sid
        return urlencode(params)

    def to_path(self, base: str = "/search") -> str:
        qs = self.to_query_string()
        return f"{base}?{qs}" if qs else base

    @classmethod
    def parse(cls, value: str) -> Location:
        """Decode a query string or full URL/path.

        Missing or invalid ``page`` values fall back to 1, matching what the
        results view does with a hand-edited address.

        Args:
            value: ``q=mars&page=2``, ``/search?q=mars`` or a full URL.

        Returns:
            Parsed location; ``q`` is trimmed.
        """
        raw = value or ""
        if "?" in raw or "://" in raw:
            raw = urlsplit(raw).query
        params = parse_qs(raw.lstrip("?"), keep_blank_values=True)

        q = (params.get("q") or [""])[0].strip()
        page = _parse_page((params.get("page") or [""])[0])
        sid = (params.get("sid") or [""])[0].strip() or None
        return cls(q=q, page=page, sid=sid)


def _parse_page(value: str) -> int:
    try:
        page = int(value)
    except (TypeError, ValueError):
        return 1
    return page if page >= 1 else 1
