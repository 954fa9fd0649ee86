from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Generic, TypeVar

from gagoforge.models.fields import coerce_int

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """One page of a paginated list endpoint."""

    results: list[T] = field(default_factory=list)
    count: int = 0
    next: str | None = None
    previous: str | None = None

    @property
    def has_next(self) -> bool:
        return bool(self.next)

    def total_pages(self, page_size: int) -> int:
        if page_size <= 0:
            return 0
        return math.ceil(self.count / page_size)

    @classmethod
    def from_api(cls, data, factory: Callable[[dict], T]) -> Page[T]:
        """Accept a paginated envelope or a bare list."""
        if isinstance(data, list):
            items = [factory(d) for d in data if isinstance(d, dict)]
            return cls(results=items, count=len(items))
        if isinstance(data, dict) and isinstance(data.get("results"), list):
            items = [factory(d) for d in data["results"] if isinstance(d, dict)]
            return cls(
                results=items,
                count=coerce_int(data.get("count")) or len(items),
                next=data.get("next") or None,
                previous=data.get("previous") or None,
            )
        return cls()
