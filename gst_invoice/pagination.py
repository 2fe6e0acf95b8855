"""Splitting invoice table rows across pages."""

from __future__ import annotations

import math
from typing import List, Sequence

from .pdf_constants import (
    CONT_PAGE_TABLE_HEIGHT,
    FIRST_PAGE_TABLE_HEIGHT,
    ITEM_ROW_H,
    SUMMARY_RESERVE,
)


def paginate(
    row_heights: Sequence[float],
    first_capacity: float = FIRST_PAGE_TABLE_HEIGHT,
    continuation_capacity: float = CONT_PAGE_TABLE_HEIGHT,
    summary_reserve: float = SUMMARY_RESERVE,
) -> List[range]:
    """Return the row index range drawn on each page.

    Rows are packed greedily by height. The last page must also fit the
    summary block; when the remaining rows fit but the summary does not, one
    row is carried to the next page so the totals never sit alone under an
    empty table. A single row taller than a page still gets a page of its own.
    """
    total = len(row_heights)
    pages: List[range] = []
    start = 0
    capacity = first_capacity

    while True:
        used = 0.0
        end = start
        while end < total and used + row_heights[end] <= capacity:
            used += row_heights[end]
            end += 1

        if end == total and used + summary_reserve <= capacity:
            pages.append(range(start, end))
            return pages

        if end == total and end - start > 1:
            end -= 1
        if end == start and start < total:
            end = start + 1

        pages.append(range(start, end))
        start = end
        capacity = continuation_capacity


def estimate_page_count(item_count: int) -> int:
    return len(paginate([ITEM_ROW_H] * item_count))


def _rows_per_page(capacity: float) -> int:
    return int(math.floor(capacity / ITEM_ROW_H))


def max_items_for_pages(page_count: int) -> int:
    """Largest single-line item count that still renders in ``page_count`` pages."""
    summary_rows = int(math.ceil(SUMMARY_RESERVE / ITEM_ROW_H))
    capacity = _rows_per_page(FIRST_PAGE_TABLE_HEIGHT)
    if page_count > 1:
        capacity += _rows_per_page(CONT_PAGE_TABLE_HEIGHT) * (page_count - 1)
    return capacity - summary_rows
