"""Console text output renderers.

Renders a ``SearchSnapshot`` into a human-friendly text block and provides the
ConsoleOutputWriter used by the CLI.
"""

from __future__ import annotations

from SearchPilot.core.models import Failed, Idle, Loading, PaginationView, Success
from SearchPilot.renderers.base import OutputWriter
from SearchPilot.services.controller import SearchSnapshot
from SearchPilot.utils.log import log


def _page_bar(view: PaginationView, current: int) -> str:
    """Render ``< Previous  1 [2] 3  Next >`` style navigation."""
    parts: list[str] = []
    if view.has_prev:
        parts.append("< Previous")
    for page in view.pages:
        parts.append(f"[{page}]" if page == current else str(page))
    if view.has_next:
        parts.append("Next >")
    return "  ".join(parts)


def render_text(snapshot: SearchSnapshot) -> str:
    """Render a snapshot into a human-readable text block.

    Args:
        snapshot: Controller snapshot.

    Returns:
        A formatted string ready to be printed.
    """
    state = snapshot.fetch_state
    lines: list[str] = []

    if isinstance(state, Idle):
        return "Type a query to search.\n"
    if isinstance(state, Loading):
        return f'Searching for "{snapshot.query}" (page {snapshot.page})...\n'
    if isinstance(state, Failed):
        return f"Error: {state.message}\n"
    assert isinstance(state, Success)

    result_set = state.result_set
    lines.append(f'Search Results for: "{snapshot.query}"')

    analysis = snapshot.analysis
    badges: list[str] = []
    if analysis.operator is not None:
        badges.append(f"Operator: {analysis.operator.value}")
    if analysis.phrases:
        badges.append("Phrases: " + ", ".join(f'"{p}"' for p in analysis.phrases))
    if analysis.stemmed_terms:
        badges.append("Stemmed: " + ", ".join(analysis.stemmed_terms))
    if badges:
        lines.append("   " + " | ".join(badges))

    if state.is_empty:
        lines.append("No results found.")
    else:
        view = snapshot.pagination
        if view is not None:
            lines.append(
                f"Showing {view.start_item}-{view.end_item} of {result_set.total_count} results "
                f"({state.elapsed_ms:.0f} ms)"
            )
        lines.append("")
        offset = view.start_item if view is not None and view.start_item else 1
        for idx, item in enumerate(result_set.items, start=offset):
            lines.append(f"{idx}. {item.title}")
            lines.append(f"   {item.url}")
            if item.snippet:
                lines.append(f"   {item.snippet}")
            if item.score is not None:
                lines.append(f"   Score: {item.score:.4f}")
            lines.append("")
        if view is not None and view.total_pages > 1:
            lines.append(_page_bar(view, snapshot.page))

    if snapshot.suggested_queries:
        lines.append("Related searches:")
        for idx, suggestion in enumerate(snapshot.suggested_queries, start=1):
            lines.append(f"   {idx}) {suggestion}")
    if snapshot.ranking_factors:
        lines.append("Ranking factors:")
        for name, description in snapshot.ranking_factors.items():
            lines.append(f"   {name}: {description}")

    return "\n".join(lines).rstrip() + "\n"


class ConsoleOutputWriter(OutputWriter):
    """Write snapshots to console via logging."""

    def write_snapshot(self, snapshot: SearchSnapshot) -> None:
        for line in render_text(snapshot).splitlines():
            log.info(line)
