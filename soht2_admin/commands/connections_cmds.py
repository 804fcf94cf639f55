from __future__ import annotations

import time
from collections.abc import Callable

from rich import print
from rich.live import Live

from soht2_admin.api.errors import ApiError
from soht2_admin.commands.common import (
    build_state,
    date_range,
    fail,
    list_view_cmd,
    text_filter,
)
from soht2_admin.listing.filters import FilterItem
from soht2_admin.listing.views import CONNECTIONS_VIEW
from soht2_admin.render import render_snapshot
from soht2_admin.session import AdminSession


def connection_filters(
    *,
    connection_id: str | None,
    username: str | None,
    client_host: str | None,
    target_host: str | None,
    ports: list[int] | None,
    opened_after: str | None,
    opened_before: str | None,
) -> list[FilterItem | None]:
    return [
        text_filter("id", connection_id),
        text_filter("username", username),
        text_filter("clientHost", client_host),
        text_filter("targetHost", target_host),
        FilterItem("targetPort", "isAnyOf", tuple(ports)) if ports else None,
        date_range(
            "openedAt",
            opened_after,
            opened_before,
            options=("--opened-after", "--opened-before"),
        ),
    ]


def connections_list_cmd(
    session: AdminSession,
    *,
    filters: list[FilterItem | None],
    sort: str | None,
    page: int | None,
    size: int | None,
    reset: bool = False,
) -> None:
    """List open connections."""

    list_view_cmd(
        session,
        view=CONNECTIONS_VIEW.name,
        filters=filters,
        sort=sort,
        page=page,
        size=size,
        reset=reset,
    )


def connections_watch_cmd(
    session: AdminSession,
    *,
    filters: list[FilterItem | None],
    sort: str | None,
    size: int | None,
    interval: float,
    count: int | None,
    reset: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Re-render open connections every ``interval`` seconds until interrupted.

    Returns the number of screen updates after the first render.
    """

    loader = session.connections
    start = session.default_state(loader.view.name) if reset else None
    loader.reset(
        build_state(loader, filters=filters, sort=sort, page=None, size=size, start=start)
    )
    snapshot = loader.snapshot()
    if snapshot.error is not None:
        fail(snapshot.error)
    auto = loader.auto_refresh
    auto.interval_s = interval
    updates = 0
    with Live(render_snapshot(loader.view, snapshot), refresh_per_second=4) as live:
        auto.enable()
        try:
            while count is None or updates < count:
                sleep(interval)
                live.update(render_snapshot(loader.view, loader.snapshot()))
                updates += 1
        except KeyboardInterrupt:
            pass
        finally:
            auto.disable()
    session.save_navigation(loader.view.name)
    return updates


def connections_close_cmd(session: AdminSession, *, connection_id: str) -> None:
    try:
        session.close_connection(connection_id)
    except ApiError as exc:
        fail(exc)
    print(f"[green]Closed connection {connection_id}[/green]")
