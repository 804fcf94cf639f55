"""Translation between generic filter items and the compact query-string form.

A view describes its filterable fields with ``FieldSpec`` entries. Filter items
use grid-style operators (``contains``, ``isAnyOf``, ``between`` ...), the
server expects wildcard strings, repeated keys for value sets and split date
bounds::

    targetHost contains ".example.com"   ->  th=*.example.com*
    userName isAnyOf ("alice", "bob")    ->  un=alice&un=bob
    targetPort isAnyOf (80, 443)         ->  tp=80&tp=443
    openedAt between (d1, d2)            ->  oa=...T00:00:00.000&ob=...T23:59:59.999

``from_wire_params(to_wire_params(f))`` equals ``normalize(f)``.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import urlencode

QueryParams = dict[str, str | list[str]]

WILDCARD = "*"
DAY_END = dt.time(23, 59, 59, 999000)


class FieldKind(str, Enum):
    STRING = "string"
    STRING_SET = "stringSet"
    NUMBER = "number"
    DATE = "date"


STRING_OPERATORS = ("equals", "startsWith", "endsWith", "contains")
STRING_SET_OPERATORS = ("equals", "isAnyOf")
NUMBER_OPERATORS = ("equals", "isAnyOf")
DATE_OPERATORS = ("after", "before", "between")

OPERATORS: dict[FieldKind, tuple[str, ...]] = {
    FieldKind.STRING: STRING_OPERATORS,
    FieldKind.STRING_SET: STRING_SET_OPERATORS,
    FieldKind.NUMBER: NUMBER_OPERATORS,
    FieldKind.DATE: DATE_OPERATORS,
}


@dataclass(frozen=True)
class FieldSpec:
    """One filterable field of a view.

    ``keys`` holds a single wire key, or ``(lower, upper)`` for date fields.
    ``getter`` extracts the field from a row for views evaluated locally.
    """

    name: str
    kind: FieldKind
    keys: tuple[str, ...]
    getter: Callable[[Any], Any] | None = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        expected = 2 if self.kind is FieldKind.DATE else 1
        if len(self.keys) != expected:
            raise ValueError(f"{self.name}: {self.kind.value} field needs {expected} wire key(s)")


@dataclass(frozen=True)
class FilterItem:
    field: str
    operator: str
    value: Any = None


FilterSet = tuple[FilterItem, ...]


# -- strings ---------------------------------------------------------------


def _string_operator(leading: bool, trailing: bool) -> str:
    if leading and trailing:
        return "contains"
    if leading:
        return "endsWith"
    if trailing:
        return "startsWith"
    return "equals"


def _normalize_string(item: FilterItem) -> FilterItem | None:
    if item.operator not in STRING_OPERATORS or item.value is None:
        return None
    text = str(item.value).strip().lower()
    leading = text.startswith(WILDCARD) or item.operator in {"endsWith", "contains"}
    trailing = text.endswith(WILDCARD) or item.operator in {"startsWith", "contains"}
    core = text.strip(WILDCARD)
    if not core:
        return None
    return FilterItem(item.field, _string_operator(leading, trailing), core)


def encode_string(operator: str, value: str) -> str:
    leading = WILDCARD if operator in {"endsWith", "contains"} else ""
    trailing = WILDCARD if operator in {"startsWith", "contains"} else ""
    return f"{leading}{value}{trailing}"


def decode_string(name: str, raw: str | None) -> FilterItem | None:
    if raw is None:
        return None
    text = raw.strip()
    core = text.strip(WILDCARD)
    if not core:
        return None
    operator = _string_operator(text.startswith(WILDCARD), text.endswith(WILDCARD))
    return FilterItem(name, operator, core.lower())


# -- string sets -----------------------------------------------------------


def _string_set(values: Iterable[Any]) -> tuple[str, ...]:
    seen: list[str] = []
    for value in values:
        if value is None:
            continue
        for part in str(value).split(","):
            text = part.strip().lower()
            if text and text not in seen:
                seen.append(text)
    return tuple(seen)


def _string_set_item(name: str, values: tuple[str, ...]) -> FilterItem | None:
    if not values:
        return None
    if len(values) == 1:
        return FilterItem(name, "equals", values[0])
    return FilterItem(name, "isAnyOf", values)


def _normalize_string_set(item: FilterItem) -> FilterItem | None:
    if item.operator not in STRING_SET_OPERATORS:
        return None
    value = item.value
    if isinstance(value, (list, tuple, set, frozenset)):
        return _string_set_item(item.field, _string_set(value))
    return _string_set_item(item.field, _string_set([value]))


# -- numbers ---------------------------------------------------------------


def _to_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _int_set(values: Iterable[Any]) -> tuple[int, ...]:
    seen: list[int] = []
    for value in values:
        number = _to_int(value)
        if number is not None and number not in seen:
            seen.append(number)
    return tuple(seen)


def _number_item(name: str, numbers: tuple[int, ...]) -> FilterItem | None:
    if not numbers:
        return None
    if len(numbers) == 1:
        return FilterItem(name, "equals", numbers[0])
    return FilterItem(name, "isAnyOf", numbers)


def _normalize_number(item: FilterItem) -> FilterItem | None:
    if item.operator not in NUMBER_OPERATORS:
        return None
    value = item.value
    if isinstance(value, (list, tuple, set, frozenset)):
        return _number_item(item.field, _int_set(value))
    return _number_item(item.field, _int_set([value]))


# -- dates -----------------------------------------------------------------


def _to_local_naive(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


def lower_bound(value: dt.date | dt.datetime | None) -> dt.datetime | None:
    """Day-only values start at ``00:00:00.000``."""

    if value is None:
        return None
    if isinstance(value, dt.datetime):
        return _to_local_naive(value)
    return dt.datetime.combine(value, dt.time.min)


def upper_bound(value: dt.date | dt.datetime | None) -> dt.datetime | None:
    """Day-only values end at ``23:59:59.999``."""

    if value is None:
        return None
    if isinstance(value, dt.datetime):
        return _to_local_naive(value)
    return dt.datetime.combine(value, DAY_END)


def format_timestamp(value: dt.datetime) -> str:
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}"


def parse_timestamp_param(raw: str | None) -> dt.date | dt.datetime | None:
    """Parse a wire/CLI timestamp; a bare ``YYYY-MM-DD`` stays a ``date``."""

    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    if len(text) == 10:
        try:
            return dt.date.fromisoformat(text)
        except ValueError:
            return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return dt.datetime.fromisoformat(text)
    except ValueError:
        return None


def _as_date(value: Any) -> dt.date | dt.datetime | None:
    if isinstance(value, (dt.date, dt.datetime)):
        return value
    if isinstance(value, str):
        return parse_timestamp_param(value)
    return None


def _date_item(
    name: str, lower: dt.datetime | None, upper: dt.datetime | None
) -> FilterItem | None:
    if lower is not None and upper is not None:
        return FilterItem(name, "between", (lower, upper))
    if lower is not None:
        return FilterItem(name, "after", lower)
    if upper is not None:
        return FilterItem(name, "before", upper)
    return None


def _normalize_date(item: FilterItem) -> FilterItem | None:
    if item.operator == "after":
        return _date_item(item.field, lower_bound(_as_date(item.value)), None)
    if item.operator == "before":
        return _date_item(item.field, None, upper_bound(_as_date(item.value)))
    if item.operator == "between":
        if not isinstance(item.value, (list, tuple)) or len(item.value) != 2:
            return None
        low, high = item.value
        return _date_item(
            item.field, lower_bound(_as_date(low)), upper_bound(_as_date(high))
        )
    return None


# -- filter sets -----------------------------------------------------------

_NORMALIZERS: dict[FieldKind, Callable[[FilterItem], FilterItem | None]] = {
    FieldKind.STRING: _normalize_string,
    FieldKind.STRING_SET: _normalize_string_set,
    FieldKind.NUMBER: _normalize_number,
    FieldKind.DATE: _normalize_date,
}


def field_table(fields: Sequence[FieldSpec]) -> dict[str, FieldSpec]:
    return {spec.name: spec for spec in fields}


def normalize_item(item: FilterItem, spec: FieldSpec) -> FilterItem | None:
    return _NORMALIZERS[spec.kind](item)


def normalize(filters: Iterable[FilterItem], fields: Sequence[FieldSpec]) -> FilterSet:
    """Canonical form: known fields only, one item per field, field-table order.

    When a field appears more than once the last item wins.
    """

    table = field_table(fields)
    by_field: dict[str, FilterItem] = {}
    for item in filters:
        spec = table.get(item.field)
        if spec is None:
            continue
        normalized = normalize_item(item, spec)
        if normalized is None:
            by_field.pop(item.field, None)
            continue
        by_field[item.field] = normalized
    return tuple(by_field[spec.name] for spec in fields if spec.name in by_field)


def to_wire_params(filters: Iterable[FilterItem], fields: Sequence[FieldSpec]) -> QueryParams:
    table = field_table(fields)
    params: QueryParams = {}
    for item in normalize(filters, fields):
        spec = table[item.field]
        if spec.kind is FieldKind.STRING:
            params[spec.keys[0]] = encode_string(item.operator, item.value)
        elif spec.kind in (FieldKind.NUMBER, FieldKind.STRING_SET):
            if item.operator == "isAnyOf":
                params[spec.keys[0]] = [str(v) for v in item.value]
            else:
                params[spec.keys[0]] = str(item.value)
        else:
            lower_key, upper_key = spec.keys
            if item.operator == "between":
                low, high = item.value
                params[lower_key] = format_timestamp(low)
                params[upper_key] = format_timestamp(high)
            elif item.operator == "after":
                params[lower_key] = format_timestamp(item.value)
            else:
                params[upper_key] = format_timestamp(item.value)
    return params


def _all_values(raw: Any) -> list[str]:
    if raw is None:
        return []
    values = [raw] if isinstance(raw, (str, int)) else list(raw)
    parts: list[str] = []
    for value in values:
        parts.extend(p for p in str(value).split(",") if p.strip())
    return parts


def _first_value(raw: Any) -> str | None:
    if raw is None:
        return None
    if isinstance(raw, str):
        return raw
    values = list(raw)
    return str(values[0]) if values else None


def from_wire_params(params: Mapping[str, Any], fields: Sequence[FieldSpec]) -> FilterSet:
    """Rebuild a filter set from query params; unrelated keys are ignored."""

    items: list[FilterItem] = []
    for spec in fields:
        if spec.kind is FieldKind.STRING:
            item = decode_string(spec.name, _first_value(params.get(spec.keys[0])))
        elif spec.kind is FieldKind.NUMBER:
            item = _number_item(spec.name, _int_set(_all_values(params.get(spec.keys[0]))))
        elif spec.kind is FieldKind.STRING_SET:
            item = _string_set_item(spec.name, _string_set(_all_values(params.get(spec.keys[0]))))
        else:
            lower_key, upper_key = spec.keys
            item = _date_item(
                spec.name,
                lower_bound(parse_timestamp_param(_first_value(params.get(lower_key)))),
                upper_bound(parse_timestamp_param(_first_value(params.get(upper_key)))),
            )
        if item is not None:
            items.append(item)
    return normalize(items, fields)


def encode_query(params: Mapping[str, Any]) -> str:
    """Render params as a query string, keeping ``*`` and ``:`` readable."""

    return urlencode(params, doseq=True, safe="*:")
