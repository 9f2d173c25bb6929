"""JSON output renderers.

Renders a ``SearchSnapshot`` into JSON-serializable objects and provides the
JsonOutputWriter used by the CLI.
"""

from __future__ import annotations

import json
from typing import Any

import click

from SearchPilot.core.models import Failed, Idle, Loading, Success
from SearchPilot.renderers.base import OutputWriter
from SearchPilot.services.controller import SearchSnapshot


def render_json(snapshot: SearchSnapshot) -> dict[str, Any]:
    """Render a snapshot into a JSON-serializable dict.

    Args:
        snapshot: Controller snapshot.

    Returns:
        Dict with ``status`` (idle/loading/success/empty/failed), the query,
        location and, depending on status, results or error details.
    """
    state = snapshot.fetch_state
    out: dict[str, Any] = {
        "query": snapshot.query,
        "page": snapshot.page,
        "sessionId": snapshot.session_id,
        "location": snapshot.location.to_query_string(),
        "voice": {
            "state": snapshot.voice_state.value,
            "transcript": snapshot.voice_transcript,
            "error": snapshot.voice_error,
        },
    }

    if isinstance(state, Idle):
        out["status"] = "idle"
    elif isinstance(state, Loading):
        out["status"] = "loading"
    elif isinstance(state, Failed):
        out["status"] = "failed"
        out["error"] = {"kind": state.kind.value, "message": state.message}
    elif isinstance(state, Success):
        result_set = state.result_set
        analysis = snapshot.analysis
        view = snapshot.pagination
        out["status"] = "empty" if state.is_empty else "success"
        out["elapsedMs"] = round(state.elapsed_ms, 1)
        out["totalResults"] = result_set.total_count
        out["results"] = [
            {"title": item.title, "url": item.url, "snippet": item.snippet, "score": item.score}
            for item in result_set.items
        ]
        out["analysis"] = {
            "phrases": list(analysis.phrases),
            "stemmedTerms": list(analysis.stemmed_terms),
            "operator": analysis.operator.value if analysis.operator else None,
        }
        out["pagination"] = (
            {
                "totalPages": view.total_pages,
                "hasNext": view.has_next,
                "hasPrev": view.has_prev,
                "windowStart": view.window_start,
                "windowEnd": view.window_end,
                "startItem": view.start_item,
                "endItem": view.end_item,
            }
            if view is not None
            else None
        )
        out["suggestedQueries"] = list(snapshot.suggested_queries)
        out["rankingFactors"] = dict(snapshot.ranking_factors)
    return out


class JsonOutputWriter(OutputWriter):
    """Print each snapshot as one JSON document on stdout."""

    def write_snapshot(self, snapshot: SearchSnapshot) -> None:
        click.echo(json.dumps(render_json(snapshot), ensure_ascii=False, indent=2))
