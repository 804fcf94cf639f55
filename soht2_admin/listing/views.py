from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from ..api.endpoints import ConnectionApi, UserApi
from ..api.http_client import Soht2Client
from ..api.types import Page, Soht2Connection, Soht2User
from .filters import FieldKind, FieldSpec, QueryParams
from .local import apply_local
from .navigation import (
    Action,
    NavigationState,
    Pagination,
    SetFilters,
    SetSort,
    SortDirection,
    Sorting,
    clamp_page_size,
    from_query,
    reduce,
    to_query,
)

Fetcher = Callable[[Soht2Client, NavigationState], Page[Any]]


class UserSortColumn(str, Enum):
    USERNAME = "username"
    ROLE = "role"
    CREATED_AT = "createdAt"
    UPDATED_AT = "updatedAt"


class ConnectionSortColumn(str, Enum):
    ID = "id"
    USERNAME = "username"
    CLIENT_HOST = "clientHost"
    TARGET_HOST = "targetHost"
    TARGET_PORT = "targetPort"
    OPENED_AT = "openedAt"


class HistorySortColumn(str, Enum):
    USER_NAME = "userName"
    CONNECTION_ID = "connectionId"
    CLIENT_HOST = "clientHost"
    TARGET_HOST = "targetHost"
    TARGET_PORT = "targetPort"
    OPENED_AT = "openedAt"
    CLOSED_AT = "closedAt"
    BYTES_READ = "bytesRead"
    BYTES_WRITTEN = "bytesWritten"


@dataclass(frozen=True)
class ViewSpec:
    """Field table, sort columns, defaults and data source of one list view."""

    name: str
    title: str
    fields: tuple[FieldSpec, ...]
    columns: tuple[str, ...]
    default_state: NavigationState
    fetch: Fetcher = field(compare=False, repr=False)

    def check_action(self, action: Action) -> None:
        if isinstance(action, SetSort) and action.column not in self.columns:
            raise ValueError(f"{self.name}: cannot sort by {action.column!r}")

    def apply(self, state: NavigationState, action: Action) -> NavigationState:
        """Reduce ``action``; filters are always normalized against this view's fields."""

        self.check_action(action)
        if isinstance(action, SetFilters) and action.fields is None:
            action = replace(action, fields=self.fields)
        return reduce(state, action)

    def initial_state(self, page_size: int | None = None) -> NavigationState:
        if page_size is None:
            return self.default_state
        return replace(
            self.default_state,
            pagination=Pagination(page_number=0, page_size=clamp_page_size(page_size)),
        )

    def query(self, state: NavigationState) -> QueryParams:
        return to_query(state, self.fields)

    def parse_query(
        self, params: Mapping[str, Any], default: NavigationState | None = None
    ) -> NavigationState:
        return from_query(
            params, self.fields, columns=self.columns, default=default or self.default_state
        )


# -- accounts --------------------------------------------------------------

USER_FIELDS = (
    FieldSpec("username", FieldKind.STRING, ("un",), getter=lambda u: u.username),
    FieldSpec("role", FieldKind.STRING, ("ro",), getter=lambda u: u.role),
    FieldSpec("createdAt", FieldKind.DATE, ("ca", "cb"), getter=lambda u: u.created_at),
    FieldSpec("updatedAt", FieldKind.DATE, ("ua", "ub"), getter=lambda u: u.updated_at),
)

USER_SORT_GETTERS: dict[str, Callable[[Soht2User], Any]] = {
    UserSortColumn.USERNAME.value: lambda u: u.username,
    UserSortColumn.ROLE.value: lambda u: u.role,
    UserSortColumn.CREATED_AT.value: lambda u: u.created_at,
    UserSortColumn.UPDATED_AT.value: lambda u: u.updated_at,
}


def fetch_users(client: Soht2Client, state: NavigationState) -> Page[Soht2User]:
    rows = UserApi(client).list_users()
    return apply_local(rows, state, USER_FIELDS, USER_SORT_GETTERS)


USERS_VIEW = ViewSpec(
    name="users",
    title="Users",
    fields=USER_FIELDS,
    columns=tuple(c.value for c in UserSortColumn),
    default_state=NavigationState(
        sorting=Sorting(UserSortColumn.USERNAME.value, SortDirection.ASC),
        pagination=Pagination(page_size=10),
    ),
    fetch=fetch_users,
)


# -- live connections ------------------------------------------------------

CONNECTION_FIELDS = (
    FieldSpec("id", FieldKind.STRING, ("id",), getter=lambda c: c.id),
    FieldSpec("username", FieldKind.STRING, ("un",), getter=lambda c: c.username),
    FieldSpec("clientHost", FieldKind.STRING, ("ch",), getter=lambda c: c.client_host),
    FieldSpec("targetHost", FieldKind.STRING, ("th",), getter=lambda c: c.target_host),
    FieldSpec("targetPort", FieldKind.NUMBER, ("tp",), getter=lambda c: c.target_port),
    FieldSpec("openedAt", FieldKind.DATE, ("oa", "ob"), getter=lambda c: c.opened_at),
)

CONNECTION_SORT_GETTERS: dict[str, Callable[[Soht2Connection], Any]] = {
    ConnectionSortColumn.ID.value: lambda c: c.id,
    ConnectionSortColumn.USERNAME.value: lambda c: c.username,
    ConnectionSortColumn.CLIENT_HOST.value: lambda c: c.client_host,
    ConnectionSortColumn.TARGET_HOST.value: lambda c: c.target_host,
    ConnectionSortColumn.TARGET_PORT.value: lambda c: c.target_port,
    ConnectionSortColumn.OPENED_AT.value: lambda c: c.opened_at,
}


def fetch_connections(client: Soht2Client, state: NavigationState) -> Page[Soht2Connection]:
    rows = ConnectionApi(client).list()
    return apply_local(rows, state, CONNECTION_FIELDS, CONNECTION_SORT_GETTERS)


CONNECTIONS_VIEW = ViewSpec(
    name="connections",
    title="Connections",
    fields=CONNECTION_FIELDS,
    columns=tuple(c.value for c in ConnectionSortColumn),
    default_state=NavigationState(pagination=Pagination(page_size=25)),
    fetch=fetch_connections,
)


# -- history ---------------------------------------------------------------

HISTORY_FIELDS = (
    FieldSpec("userName", FieldKind.STRING_SET, ("un",)),
    FieldSpec("connectionId", FieldKind.STRING_SET, ("id",)),
    FieldSpec("clientHost", FieldKind.STRING, ("ch",)),
    FieldSpec("targetHost", FieldKind.STRING, ("th",)),
    FieldSpec("targetPort", FieldKind.NUMBER, ("tp",)),
    FieldSpec("openedAt", FieldKind.DATE, ("oa", "ob")),
    FieldSpec("closedAt", FieldKind.DATE, ("ca", "cb")),
)


def fetch_history(client: Soht2Client, state: NavigationState) -> Page[Soht2Connection]:
    return ConnectionApi(client).history(to_query(state, HISTORY_FIELDS))


HISTORY_VIEW = ViewSpec(
    name="history",
    title="History",
    fields=HISTORY_FIELDS,
    columns=tuple(c.value for c in HistorySortColumn),
    default_state=NavigationState(
        sorting=Sorting(HistorySortColumn.OPENED_AT.value, SortDirection.DESC),
        pagination=Pagination(page_size=50),
    ),
    fetch=fetch_history,
)

VIEWS: dict[str, ViewSpec] = {
    view.name: view for view in (USERS_VIEW, CONNECTIONS_VIEW, HISTORY_VIEW)
}
