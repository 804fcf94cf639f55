from __future__ import annotations

from collections.abc import Collection, Mapping, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from .filters import FieldSpec, FilterItem, FilterSet, QueryParams, from_wire_params, normalize
from .filters import to_wire_params

MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 1000

SORT_PARAM = "sort"
PAGE_PARAM = "pg"
SIZE_PARAM = "sz"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class Sorting:
    column: str | None = None
    direction: SortDirection | None = None

    def __post_init__(self) -> None:
        if (self.column is None) != (self.direction is None):
            raise ValueError("sort column and direction must be set together")

    @property
    def active(self) -> bool:
        return self.column is not None

    def to_param(self) -> str | None:
        if self.column is None or self.direction is None:
            return None
        return f"{self.column}:{self.direction.value}"

    @classmethod
    def parse(cls, raw: str | None, columns: Collection[str] | None = None) -> Sorting:
        """Parse ``field:direction``; a missing direction means ascending."""

        if not raw or not raw.strip():
            return cls()
        column, _, direction = raw.strip().partition(":")
        if columns is not None and column not in columns:
            return cls()
        try:
            parsed = SortDirection(direction.lower()) if direction else SortDirection.ASC
        except ValueError:
            return cls()
        return cls(column, parsed)


UNSORTED = Sorting()


def clamp_page_size(size: int) -> int:
    return max(MIN_PAGE_SIZE, min(MAX_PAGE_SIZE, int(size)))


def parse_page_size(text: str, default: int) -> int:
    """Page size from free text input; garbage falls back to ``default``."""

    try:
        value = int(str(text).strip())
    except ValueError:
        value = default
    return clamp_page_size(value)


@dataclass(frozen=True)
class Pagination:
    page_number: int = 0
    page_size: int = 50

    def __post_init__(self) -> None:
        if self.page_number < 0:
            raise ValueError("page_number must be >= 0")
        if not MIN_PAGE_SIZE <= self.page_size <= MAX_PAGE_SIZE:
            raise ValueError(f"page_size must be between {MIN_PAGE_SIZE} and {MAX_PAGE_SIZE}")


@dataclass(frozen=True)
class NavigationState:
    """Everything that determines what a list view requests."""

    sorting: Sorting = UNSORTED
    filters: FilterSet = ()
    pagination: Pagination = field(default_factory=Pagination)


@dataclass(frozen=True)
class SetSort:
    column: str


@dataclass(frozen=True)
class SetFilters:
    filters: FilterSet
    fields: tuple[FieldSpec, ...] | None = None


@dataclass(frozen=True)
class SetPageSize:
    size: int


@dataclass(frozen=True)
class SetPage:
    page: int


Action = SetSort | SetFilters | SetPageSize | SetPage


def toggle_sort(sorting: Sorting, column: str) -> Sorting:
    """asc -> desc -> unsorted on the same column; any other column starts at asc."""

    if sorting.column == column:
        if sorting.direction is SortDirection.ASC:
            return Sorting(column, SortDirection.DESC)
        if sorting.direction is SortDirection.DESC:
            return UNSORTED
    return Sorting(column, SortDirection.ASC)


def reduce(state: NavigationState, action: Action) -> NavigationState:
    first_page = replace(state.pagination, page_number=0)
    if isinstance(action, SetSort):
        sorting = toggle_sort(state.sorting, action.column)
        return replace(state, sorting=sorting, pagination=first_page)
    if isinstance(action, SetFilters):
        filters = tuple(action.filters)
        if action.fields is not None:
            filters = normalize(filters, action.fields)
        return replace(state, filters=filters, pagination=first_page)
    if isinstance(action, SetPageSize):
        size = clamp_page_size(action.size)
        if size == state.pagination.page_size:
            return state
        return replace(state, pagination=Pagination(page_number=0, page_size=size))
    if isinstance(action, SetPage):
        page = max(0, int(action.page))
        return replace(state, pagination=replace(state.pagination, page_number=page))
    raise TypeError(f"unknown navigation action: {action!r}")


def to_query(state: NavigationState, fields: Sequence[FieldSpec]) -> QueryParams:
    params = to_wire_params(state.filters, fields)
    sort = state.sorting.to_param()
    if sort:
        params[SORT_PARAM] = sort
    params[PAGE_PARAM] = str(state.pagination.page_number)
    params[SIZE_PARAM] = str(state.pagination.page_size)
    return params


def _first_int(raw: Any) -> int | None:
    if raw is None:
        return None
    if isinstance(raw, (list, tuple)):
        raw = raw[0] if raw else None
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return None


def from_query(
    params: Mapping[str, Any],
    fields: Sequence[FieldSpec],
    *,
    columns: Collection[str],
    default: NavigationState,
) -> NavigationState:
    raw_sort = params.get(SORT_PARAM)
    if isinstance(raw_sort, (list, tuple)):
        raw_sort = raw_sort[0] if raw_sort else None
    sorting = Sorting.parse(raw_sort, columns) if raw_sort is not None else default.sorting
    page = _first_int(params.get(PAGE_PARAM))
    size = _first_int(params.get(SIZE_PARAM))
    pagination = Pagination(
        page_number=max(0, page) if page is not None else default.pagination.page_number,
        page_size=clamp_page_size(size) if size is not None else default.pagination.page_size,
    )
    return NavigationState(
        sorting=sorting,
        filters=from_wire_params(params, fields),
        pagination=pagination,
    )


def with_filter(filters: FilterSet, item: FilterItem) -> FilterSet:
    """Replace (or add) the item for ``item.field``."""

    return tuple(f for f in filters if f.field != item.field) + (item,)


def without_filter(filters: FilterSet, name: str) -> FilterSet:
    return tuple(f for f in filters if f.field != name)
