"""Client-side evaluation for views whose endpoint returns the full list."""

from __future__ import annotations

import datetime as dt
from collections.abc import Callable, Mapping, Sequence
from typing import Any, TypeVar

from ..api.types import Page, Paging, SortOrder, count_pages
from .filters import FieldKind, FieldSpec, FilterItem, field_table, normalize
from .navigation import NavigationState, SortDirection

T = TypeVar("T")


def _as_naive(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def matches(item: FilterItem, spec: FieldSpec, value: Any) -> bool:
    if value is None:
        return False
    if spec.kind is FieldKind.STRING:
        text = str(value).lower()
        if item.operator == "equals":
            return text == item.value
        if item.operator == "startsWith":
            return text.startswith(item.value)
        if item.operator == "endsWith":
            return text.endswith(item.value)
        return item.value in text
    if spec.kind is FieldKind.STRING_SET:
        text = str(value).lower()
        if item.operator == "isAnyOf":
            return text in item.value
        return text == item.value
    if spec.kind is FieldKind.NUMBER:
        if item.operator == "isAnyOf":
            return value in item.value
        return value == item.value
    if not isinstance(value, dt.datetime):
        return False
    stamp = _as_naive(value)
    if item.operator == "after":
        return stamp >= item.value
    if item.operator == "before":
        return stamp <= item.value
    low, high = item.value
    return low <= stamp <= high


def _sort_key(value: Any) -> tuple[int, Any]:
    # Missing values sort first, like an empty string or a zero timestamp.
    if value is None:
        return (0, 0)
    if isinstance(value, dt.datetime):
        return (1, _as_naive(value).timestamp())
    if isinstance(value, str):
        return (1, value.lower())
    return (1, value)


def apply_local(
    rows: Sequence[T],
    state: NavigationState,
    fields: Sequence[FieldSpec],
    sort_getters: Mapping[str, Callable[[T], Any]],
) -> Page[T]:
    table = field_table(fields)
    selected = list(rows)
    for item in normalize(state.filters, fields):
        spec = table.get(item.field)
        if spec is None or spec.getter is None:
            continue
        getter = spec.getter
        selected = [row for row in selected if matches(item, spec, getter(row))]

    sorting = state.sorting
    sort_getter = sort_getters.get(sorting.column) if sorting.column else None
    if sort_getter is not None:
        selected.sort(
            key=lambda row: _sort_key(sort_getter(row)),
            reverse=sorting.direction is SortDirection.DESC,
        )

    page_number = state.pagination.page_number
    page_size = state.pagination.page_size
    start = page_number * page_size
    orders = ()
    if sorting.column and sorting.direction:
        orders = (SortOrder(sorting.column, sorting.direction.value),)
    return Page(
        data=selected[start : start + page_size],
        total_items=len(selected),
        total_pages=count_pages(len(selected), page_size),
        paging=Paging(page_number=page_number, page_size=page_size, sorting=orders),
    )
