"""Shared domain value objects."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

ItemT = TypeVar("ItemT")


@dataclass(slots=True)
class Page(Generic[ItemT]):
    items: Sequence[ItemT]
    page: int
    limit: int
    total: int

    @property
    def has_next(self) -> bool:
        return self.page * self.limit < self.total

    @property
    def has_prev(self) -> bool:
        return self.page > 1


def page_offset(page: int, limit: int) -> int:
    return (max(page, 1) - 1) * limit
