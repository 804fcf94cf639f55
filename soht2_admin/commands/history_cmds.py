from __future__ import annotations

from soht2_admin.commands.common import (
    date_range,
    list_view_cmd,
    text_filter,
    value_set_filter,
)
from soht2_admin.listing.filters import FilterItem
from soht2_admin.listing.views import HISTORY_VIEW
from soht2_admin.session import AdminSession


def history_list_cmd(
    session: AdminSession,
    *,
    usernames: list[str] | None,
    connection_ids: list[str] | None,
    client_host: str | None,
    target_host: str | None,
    ports: list[int] | None,
    opened_after: str | None,
    opened_before: str | None,
    closed_after: str | None,
    closed_before: str | None,
    sort: str | None,
    page: int | None,
    size: int | None,
    reset: bool = False,
) -> None:
    """Page through closed and open connections recorded by the server."""

    list_view_cmd(
        session,
        view=HISTORY_VIEW.name,
        filters=[
            value_set_filter("userName", usernames),
            value_set_filter("connectionId", connection_ids),
            text_filter("clientHost", client_host),
            text_filter("targetHost", target_host),
            FilterItem("targetPort", "isAnyOf", tuple(ports)) if ports else None,
            date_range(
                "openedAt",
                opened_after,
                opened_before,
                options=("--opened-after", "--opened-before"),
            ),
            date_range(
                "closedAt",
                closed_after,
                closed_before,
                options=("--closed-after", "--closed-before"),
            ),
        ],
        sort=sort,
        page=page,
        size=size,
        reset=reset,
    )
