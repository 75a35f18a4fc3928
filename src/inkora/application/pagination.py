"""Client-side pagination over already-fetched lists."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

COMMENTS_PER_PAGE = 10

T = TypeVar("T")


def page_count(total: int, page_size: int = COMMENTS_PER_PAGE) -> int:
    """Number of pages for `total` items; an empty list still has one page."""
    if page_size < 1:
        raise ValueError("page_size must be positive")
    return max(1, math.ceil(total / page_size))


def clamp_page(page: int, total: int, page_size: int = COMMENTS_PER_PAGE) -> int:
    return max(1, min(page, page_count(total, page_size)))


@dataclass(frozen=True)
class PageWindow(Generic[T]):
    """Visible slice of a list plus the state of its pager controls."""

    items: tuple[T, ...]
    page: int
    page_count: int
    total: int
    page_size: int

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.page_count

    @property
    def show_controls(self) -> bool:
        return self.total > self.page_size


def paginate(items: Sequence[T], page: int, page_size: int = COMMENTS_PER_PAGE) -> PageWindow[T]:
    total = len(items)
    current = clamp_page(page, total, page_size)
    start = (current - 1) * page_size
    return PageWindow(
        items=tuple(items[start : start + page_size]),
        page=current,
        page_count=page_count(total, page_size),
        total=total,
        page_size=page_size,
    )
