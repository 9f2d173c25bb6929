"""Parse backend JSON payloads into SearchPilot models.

Payloads are normalized defensively: unknown keys are ignored and malformed
optional fields degrade to their empty values. Only a payload that is not an
object, or lacks ``results`` and ``totalResults`` entirely, is rejected.
"""

from __future__ import annotations

from typing import Any, Mapping

from SearchPilot.core.models import Operator, QueryAnalysis, ResultItem, ResultSet


def parse_analysis(payload: Any) -> QueryAnalysis:
    """Parse a ``/process-query`` payload.

    Args:
        payload: Decoded JSON.

    Returns:
        QueryAnalysis; an empty analysis when the payload is not an object.
    """
    if not isinstance(payload, Mapping):
        return QueryAnalysis.empty()
    original = payload.get("originalQuery")
    return QueryAnalysis(
        phrases=tuple(_str_list(payload.get("phrases"))),
        stemmed_terms=tuple(_str_list(payload.get("stemmedWords", payload.get("stemmedTerms")))),
        operator=Operator.parse(payload.get("operator")),
        original_query=original if isinstance(original, str) else None,
        is_phrase_query=bool(payload.get("isPhraseQuery", False)),
    )


def parse_result_set(payload: Any) -> ResultSet:
    """Parse a ``/search`` or ``/voice-search`` payload.

    Args:
        payload: Decoded JSON.

    Returns:
        Normalized ResultSet.

    Raises:
        ValueError: If the payload is not a search response.
    """
    if not isinstance(payload, Mapping) or ("results" not in payload and "totalResults" not in payload):
        raise ValueError("Malformed search response")

    raw_items = payload.get("results")
    items = tuple(
        _parse_item(item) for item in (raw_items if isinstance(raw_items, list) else []) if isinstance(item, Mapping)
    )
    total = _as_int(payload.get("totalResults"))
    if total is None or total < 0:
        total = len(items)

    session_id = payload.get("sessionId")
    return ResultSet(
        items=items,
        total_count=total,
        session_id=str(session_id) if session_id not in (None, "") else None,
        suggested_queries=tuple(q.strip() for q in _str_list(payload.get("suggestedQueries")) if q.strip()),
        ranking_factors=_str_map(payload.get("rankingFactors")),
        current_page=_as_int(payload.get("currentPage")),
        page_size=_as_int(payload.get("pageSize")),
    )


def extract_error_message(payload: Any) -> str | None:
    """Pull a user-facing message out of an error body, if it has one."""
    if not isinstance(payload, Mapping):
        return None
    for key in ("message", "error", "detail"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _parse_item(raw: Mapping[str, Any]) -> ResultItem:
    score = raw.get("score")
    return ResultItem(
        title=_as_str(raw.get("title")),
        url=_as_str(raw.get("url")),
        snippet=_as_str(raw.get("snippet", raw.get("description"))),
        score=float(score) if isinstance(score, (int, float)) and not isinstance(score, bool) else None,
    )


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _str_map(value: Any) -> dict[str, str]:
    if not isinstance(value, Mapping):
        return {}
    return {str(k): str(v) for k, v in value.items() if v is not None}
