"""
Offset pagination helpers shared by list queries.
"""

import math
from dataclasses import dataclass
from typing import Generic, List, TypeVar

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    items: List[T]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0

    @property
    def offset(self) -> int:
        return offset_for(self.page, self.page_size)


def offset_for(page: int, page_size: int) -> int:
    return (max(page, 1) - 1) * page_size


def slice_page(items: List[T], page: int, page_size: int) -> Page[T]:
    """Paginate an already-materialized list."""
    start = offset_for(page, page_size)
    return Page(items=items[start:start + page_size], total=len(items), page=page, page_size=page_size)
