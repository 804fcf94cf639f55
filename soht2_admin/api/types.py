from __future__ import annotations

import datetime as dt
import math
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")


def parse_timestamp(value: Any) -> dt.datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return dt.datetime.fromisoformat(text)
    except ValueError:
        return None


def _int_or_none(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass
class Soht2User:
    username: str
    role: str | None = None
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None
    allowed_targets: list[str] = field(default_factory=list)

    @property
    def is_admin(self) -> bool:
        return (self.role or "").upper() == "ADMIN"

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Soht2User:
        targets = data.get("allowedTargets") or []
        return cls(
            username=str(data.get("username") or ""),
            role=data.get("role"),
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
            allowed_targets=[str(t) for t in targets] if isinstance(targets, list) else [],
        )


@dataclass
class Soht2Connection:
    id: str
    username: str | None = None
    client_host: str | None = None
    target_host: str | None = None
    target_port: int | None = None
    opened_at: dt.datetime | None = None
    closed_at: dt.datetime | None = None
    bytes_read: int | None = None
    bytes_written: int | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Soht2Connection:
        # Older servers send a flat ``username``, newer ones nest the user.
        user = data.get("user")
        username = user.get("username") if isinstance(user, dict) else data.get("username")
        return cls(
            id=str(data.get("id") or ""),
            username=username,
            client_host=data.get("clientHost"),
            target_host=data.get("targetHost"),
            target_port=_int_or_none(data.get("targetPort")),
            opened_at=parse_timestamp(data.get("openedAt")),
            closed_at=parse_timestamp(data.get("closedAt")),
            bytes_read=_int_or_none(data.get("bytesRead")),
            bytes_written=_int_or_none(data.get("bytesWritten")),
        )


@dataclass(frozen=True)
class SortOrder:
    field: str
    direction: str | None = None


@dataclass(frozen=True)
class Paging:
    page_number: int
    page_size: int
    sorting: tuple[SortOrder, ...] = ()

    @classmethod
    def from_json(cls, data: Any) -> Paging | None:
        if not isinstance(data, dict):
            return None
        orders: list[SortOrder] = []
        for item in data.get("sorting") or []:
            if isinstance(item, dict) and item.get("field"):
                direction = item.get("direction")
                orders.append(
                    SortOrder(
                        field=str(item["field"]),
                        direction=str(direction).lower() if direction else None,
                    )
                )
        return cls(
            page_number=_int_or_none(data.get("pageNumber")) or 0,
            page_size=_int_or_none(data.get("pageSize")) or 0,
            sorting=tuple(orders),
        )


@dataclass
class Page(Generic[T]):
    data: list[T]
    total_items: int
    total_pages: int
    paging: Paging | None = None

    @classmethod
    def from_json(cls, payload: Any, parse_item: Callable[[dict[str, Any]], T]) -> Page[T]:
        if not isinstance(payload, dict):
            raise ValueError("page payload must be an object")
        paging = Paging.from_json(payload.get("paging"))
        raw_items = payload.get("data") or []
        items = [parse_item(item) for item in raw_items if isinstance(item, dict)]
        total_items = _int_or_none(payload.get("totalItems"))
        if total_items is None:
            total_items = len(items)
        total_pages = _int_or_none(payload.get("totalPages"))
        if total_pages is None:
            total_pages = count_pages(total_items, paging.page_size if paging else 0)
        return cls(data=items, total_items=total_items, total_pages=total_pages, paging=paging)


def count_pages(total_items: int, page_size: int) -> int:
    if page_size <= 0:
        return 0
    return math.ceil(total_items / page_size)
