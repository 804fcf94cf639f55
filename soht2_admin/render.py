from __future__ import annotations

import datetime as dt
from collections.abc import Sequence

from rich.console import Group
from rich.table import Table
from rich.text import Text

from .api.types import Soht2Connection, Soht2User
from .listing.loader import ListSnapshot
from .listing.navigation import NavigationState
from .listing.views import CONNECTIONS_VIEW, HISTORY_VIEW, USERS_VIEW, ViewSpec


def format_bytes(size: int | None) -> str:
    if size is None:
        return ""
    units = ["B", "KiB", "MiB", "GiB", "TiB"]
    value = float(size)
    for unit in units:
        if value < 1024 or unit == units[-1]:
            if unit == "B":
                return f"{int(value)} {unit}"
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{int(size)} B"


def format_when(value: dt.datetime | None) -> str:
    if value is None:
        return ""
    return value.strftime("%Y-%m-%d %H:%M:%S")


def footer(snapshot: ListSnapshot) -> str:
    page = snapshot.state.pagination.page_number
    pages = max(snapshot.total_pages, 1)
    return f"total rows: {snapshot.total_items} | page {page + 1}/{pages}"


def _header(state: NavigationState, column: str, label: str) -> str:
    if state.sorting.column == column and state.sorting.direction is not None:
        arrow = "^" if state.sorting.direction.value == "asc" else "v"
        return f"{label} {arrow}"
    return label


def users_table(rows: Sequence[Soht2User], state: NavigationState) -> Table:
    table = Table(title=USERS_VIEW.title)
    for column, label in (
        ("username", "Username"),
        ("role", "Role"),
        ("createdAt", "Created"),
        ("updatedAt", "Updated"),
    ):
        table.add_column(_header(state, column, label))
    table.add_column("Allowed targets")
    for user in rows:
        table.add_row(
            user.username,
            user.role or "",
            format_when(user.created_at),
            format_when(user.updated_at),
            ", ".join(user.allowed_targets),
        )
    return table


def connections_table(rows: Sequence[Soht2Connection], state: NavigationState) -> Table:
    table = Table(title=CONNECTIONS_VIEW.title)
    for column, label in (
        ("id", "ID"),
        ("username", "User"),
        ("clientHost", "Client"),
        ("targetHost", "Target host"),
        ("targetPort", "Port"),
        ("openedAt", "Opened"),
    ):
        table.add_column(_header(state, column, label))
    for conn in rows:
        table.add_row(
            conn.id,
            conn.username or "",
            conn.client_host or "",
            conn.target_host or "",
            "" if conn.target_port is None else str(conn.target_port),
            format_when(conn.opened_at),
        )
    return table


def history_table(rows: Sequence[Soht2Connection], state: NavigationState) -> Table:
    table = Table(title=HISTORY_VIEW.title)
    for column, label in (
        ("userName", "User"),
        ("connectionId", "ID"),
        ("clientHost", "Client"),
        ("targetHost", "Target host"),
        ("targetPort", "Port"),
        ("openedAt", "Opened"),
        ("closedAt", "Closed"),
        ("bytesRead", "Read"),
        ("bytesWritten", "Written"),
    ):
        table.add_column(_header(state, column, label))
    for conn in rows:
        table.add_row(
            conn.username or "",
            conn.id,
            conn.client_host or "",
            conn.target_host or "",
            "" if conn.target_port is None else str(conn.target_port),
            format_when(conn.opened_at),
            format_when(conn.closed_at),
            format_bytes(conn.bytes_read),
            format_bytes(conn.bytes_written),
        )
    return table


TABLES = {
    USERS_VIEW.name: users_table,
    CONNECTIONS_VIEW.name: connections_table,
    HISTORY_VIEW.name: history_table,
}


def render_snapshot(view: ViewSpec, snapshot: ListSnapshot) -> Group:
    parts: list[Table | Text] = [TABLES[view.name](snapshot.rows, snapshot.state)]
    parts.append(Text(footer(snapshot), style="dim"))
    if snapshot.last_error is not None:
        # Rows above are from the last successful load.
        parts.append(Text(f"refresh failed: {snapshot.last_error.display_message}", style="yellow"))
    return Group(*parts)
