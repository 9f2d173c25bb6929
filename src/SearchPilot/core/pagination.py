"""Pagination planning for result pages.

Derives total pages, a bounded sliding window of page numbers and
next/previous eligibility from the total result count and page size.
"""

from __future__ import annotations

from dataclasses import dataclass

from SearchPilot.core.models import PaginationView

WINDOW_SIZE = 5


def total_pages(total_count: int, page_size: int) -> int:
    """Return ``ceil(total_count / page_size)``; zero results yield zero pages.

    Raises:
        ValueError: If ``page_size`` is not positive or ``total_count`` is negative.
    """
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    if total_count < 0:
        raise ValueError("total_count must be >= 0")
    return -(-total_count // page_size)


def page_window(current_page: int, pages: int, window_size: int = WINDOW_SIZE) -> tuple[int, int]:
    """Return the inclusive ``(start, end)`` window of page buttons.

    The window is centered on ``current_page`` when possible and pinned to the
    first or last ``window_size`` pages near either edge.

    Args:
        current_page: Active page (1-based).
        pages: Total number of pages.
        window_size: Maximum number of page buttons.

    Returns:
        Inclusive window bounds; ``(1, 0)`` when there are no pages.
    """
    half = window_size // 2
    if pages <= window_size:
        return 1, pages
    if current_page <= half + 1:
        return 1, window_size
    if current_page >= pages - half:
        return pages - window_size + 1, pages
    return current_page - half, current_page + half


def plan(total_count: int, page_size: int, current_page: int) -> PaginationView:
    """Compute the pagination view for one fetched page.

    Args:
        total_count: Total matches reported by the backend.
        page_size: Results per page.
        current_page: Active page (1-based).

    Returns:
        Fully derived pagination view.
    """
    pages = total_pages(total_count, page_size)
    start, end = page_window(current_page, pages)
    return PaginationView(
        total_pages=pages,
        has_next=current_page < pages,
        has_prev=current_page > 1,
        window_start=start,
        window_end=end,
        start_item=(current_page - 1) * page_size + 1 if total_count > 0 else 0,
        end_item=min(current_page * page_size, total_count),
    )


@dataclass(frozen=True, slots=True)
class PaginationPlanner:
    """Pagination planner bound to a fixed page size."""

    page_size: int

    def __post_init__(self) -> None:
        if self.page_size <= 0:
            raise ValueError("page_size must be positive")

    def plan(self, total_count: int, current_page: int) -> PaginationView:
        return plan(total_count, self.page_size, current_page)
