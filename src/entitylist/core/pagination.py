"""Slice an ordered record sequence into pages."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, List, Sequence

from ..config import DEFAULT_PAGE_SIZE


@dataclass
class PageSlice:
    """One page of an ordered sequence."""

    items: List[Any] = field(default_factory=list)
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    total_count: int = 0
    total_pages: int = 1

    @property
    def has_more(self) -> bool:
        return self.page < self.total_pages


def total_pages(count: int, page_size: int) -> int:
    if page_size <= 0:
        return 1
    return max(1, math.ceil(count / page_size))


def clamp_page(page: Any, pages: int) -> int:
    """Clamp *page* into ``[1, pages]``; non-numeric input lands on page 1."""
    try:
        number = int(page)
    except (TypeError, ValueError, OverflowError):
        return 1
    return min(max(number, 1), max(pages, 1))


def paginate(items: Sequence[Any], page: int, page_size: int) -> PageSlice:
    pages = total_pages(len(items), page_size)
    current = clamp_page(page, pages)
    start = (current - 1) * page_size
    return PageSlice(
        items=list(items[start:start + page_size]),
        page=current,
        page_size=page_size,
        total_count=len(items),
        total_pages=pages,
    )
