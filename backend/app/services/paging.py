"""Filtered, sorted, paginated reads with a total count.

Every list endpoint (inventory, history, recent movements) goes through
``fetch_page`` so offset math, text search and counting behave the same way.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Generic, Iterable, Literal, Optional, Sequence, TypeVar

from sqlalchemy import or_
from sqlalchemy.orm import Query

from app.core.errors import ValidationError

T = TypeVar("T")

Direction = Literal["asc", "desc"]


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    page_size: int = 10

    def __post_init__(self):
        if self.page < 1:
            raise ValidationError("page must be >= 1", field="page")
        if self.page_size < 1:
            raise ValidationError("page_size must be > 0", field="page_size")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def last_index(self) -> int:
        # inclusive end of the requested range
        return self.offset + self.page_size - 1


@dataclass
class Page(Generic[T]):
    rows: list[T]
    total_count: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return page_count(self.total_count, self.page_size)

    @property
    def start_item(self) -> int:
        if self.total_count == 0:
            return 0
        return (self.page - 1) * self.page_size + 1

    @property
    def end_item(self) -> int:
        return min(self.page * self.page_size, self.total_count)


@dataclass(frozen=True)
class SortSpec:
    field: str
    direction: Direction = "desc"
    # extra columns appended so equal keys still come back in a stable order
    tiebreakers: Sequence[Any] = field(default_factory=tuple)


def page_count(total_count: int, page_size: int) -> int:
    if page_size < 1:
        raise ValidationError("page_size must be > 0", field="page_size")
    return math.ceil(total_count / page_size)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def text_filter(columns: Iterable[Any], term: Optional[str]):
    """Case-insensitive substring match OR-ed across ``columns``.

    Returns None when there is nothing to filter on.
    """
    term = (term or "").strip()
    cols = list(columns)
    if not term or not cols:
        return None
    pattern = f"%{_escape_like(term)}%"
    return or_(*[c.ilike(pattern, escape="\\") for c in cols])


def order_clauses(model, sort: SortSpec, allowed: Sequence[str]) -> list[Any]:
    if sort.field not in allowed:
        raise ValidationError(
            f"cannot sort by '{sort.field}', expected one of: {', '.join(allowed)}",
            field="sort",
        )
    if sort.direction not in ("asc", "desc"):
        raise ValidationError("direction must be 'asc' or 'desc'", field="direction")

    col = getattr(model, sort.field)
    clauses = [col.asc() if sort.direction == "asc" else col.desc()]
    clauses.extend(sort.tiebreakers)
    return clauses


def fetch_page(
    query: Query,
    request: PageRequest,
    *,
    order_by: Sequence[Any] = (),
    search: Optional[str] = None,
    search_fields: Sequence[Any] = (),
) -> Page:
    """Apply search, count the filtered set, then slice one page out of it."""
    clause = text_filter(search_fields, search)
    if clause is not None:
        query = query.filter(clause)

    total = query.order_by(None).count()

    rows = []
    if total > request.offset:
        rows = (
            query.order_by(*order_by)
            .offset(request.offset)
            .limit(request.page_size)
            .all()
        )

    return Page(rows=rows, total_count=total, page=request.page, page_size=request.page_size)
