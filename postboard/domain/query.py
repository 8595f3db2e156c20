"""
Listing pipeline shared by the repositories: filter -> sort -> paginate.

The functions here are pure; repositories feed them entities read inside a
storage snapshot and hand the resulting Page to the HTTP adapter.
"""
from __future__ import annotations

import locale
import math
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, Optional, Sequence, TypeVar

from postboard.core.errors import ValidationError

T = TypeVar("T")
Predicate = Callable[[Any], bool]

SORT_KEYS = ("createdAt", "name")
SORT_ORDERS = ("asc", "desc")
_SORT_TOKENS = {
    "name_asc": ("name", "asc"),
    "name_desc": ("name", "desc"),
    "created_asc": ("createdAt", "asc"),
    "created_desc": ("createdAt", "desc"),
}


@dataclass(frozen=True)
class PageQuery:
    page: int = 1
    limit: int = 20
    sort_by: str = "createdAt"
    order: str = "desc"

    def __post_init__(self) -> None:
        if isinstance(self.page, bool) or not isinstance(self.page, int) or self.page < 1:
            raise ValidationError("page must be a positive integer", field="page")
        if isinstance(self.limit, bool) or not isinstance(self.limit, int) or self.limit < 1:
            raise ValidationError("limit must be a positive integer", field="limit")
        if self.sort_by not in SORT_KEYS:
            raise ValidationError(f"Unsupported sort key: {self.sort_by}", field="sort")
        if self.order not in SORT_ORDERS:
            raise ValidationError(f"Unsupported sort order: {self.order}", field="order")

    @classmethod
    def from_sort_token(cls, token: str | None, *, page: int = 1, limit: int = 20) -> "PageQuery":
        """Build a query from tokens like ``name_asc`` or ``created_desc``."""
        key = (token or "created_desc").strip().lower()
        if key not in _SORT_TOKENS:
            raise ValidationError(f"Unsupported sort: {token}", field="sort")
        sort_by, order = _SORT_TOKENS[key]
        return cls(page=page, limit=limit, sort_by=sort_by, order=order)


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int
    total: int
    total_pages: int

    def to_dict(self) -> dict[str, int]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "totalPages": self.total_pages,
        }


@dataclass(frozen=True)
class Page(Generic[T]):
    data: list[T]
    pagination: Pagination

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": [item.to_dict() for item in self.data],
            "pagination": self.pagination.to_dict(),
        }


def apply_filters(items: Iterable[T], predicates: Iterable[Optional[Predicate]]) -> list[T]:
    active = [p for p in predicates if p is not None]
    return [item for item in items if all(p(item) for p in active)]


def _name_key(item: Any) -> tuple:
    name = getattr(item, "name", None)
    if name is None:
        raise ValidationError("Records in this collection cannot be sorted by name", field="sort")
    return (locale.strxfrm(name.casefold()), name, item.id)


def _created_key(item: Any) -> tuple:
    return (item.created_at, item.id)


def sort_items(items: Sequence[T], sort_by: str = "createdAt", order: str = "desc") -> list[T]:
    key = _name_key if sort_by == "name" else _created_key
    return sorted(items, key=key, reverse=(order == "desc"))


def paginate(items: Sequence[T], page: int, limit: int) -> Page[T]:
    total = len(items)
    total_pages = math.ceil(total / limit)
    offset = (page - 1) * limit
    return Page(
        data=list(items[offset : offset + limit]),
        pagination=Pagination(page=page, limit=limit, total=total, total_pages=total_pages),
    )


def run_query(items: Iterable[T], predicates: Iterable[Optional[Predicate]], query: PageQuery) -> Page[T]:
    filtered = apply_filters(items, predicates)
    ordered = sort_items(filtered, query.sort_by, query.order)
    return paginate(ordered, query.page, query.limit)
