from __future__ import annotations

import datetime as dt
from dataclasses import replace
from typing import Any, NoReturn

import typer
from rich import print

from soht2_admin.api.errors import ApiError, TransportError, as_api_error
from soht2_admin.api.http_client import Soht2Client
from soht2_admin.config import Soht2AdminConfig, load_config, read_config_file, write_config_file
from soht2_admin.listing.filters import FilterItem, parse_timestamp_param
from soht2_admin.listing.loader import ListLoader, ListSnapshot
from soht2_admin.listing.navigation import (
    NavigationState,
    SetFilters,
    SetPage,
    SetPageSize,
    Sorting,
    reduce,
)
from soht2_admin.navigation_store import NavigationStore
from soht2_admin.render import render_snapshot
from soht2_admin.session import AdminSession


def read_config_or_exit() -> dict[str, Any]:
    try:
        return read_config_file()
    except ValueError as exc:
        print(f"[red]Invalid config file: {exc}[/red]")
        raise typer.Exit(code=1) from exc


def write_config_or_exit(data: dict[str, Any]) -> None:
    try:
        write_config_file(data)
    except OSError as exc:
        print(f"[red]Failed to write config: {exc}[/red]")
        raise typer.Exit(code=1) from exc


def make_client(config: Soht2AdminConfig) -> Soht2Client:
    return Soht2Client(
        config.url,
        username=config.username,
        password=config.password,
        timeout_s=config.timeout_s,
    )


def resolve_config(
    *, url: str | None, username: str | None, password: str | None
) -> Soht2AdminConfig:
    cfg = load_config()
    if url:
        cfg.url = url
    if username:
        cfg.username = username
    if password:
        cfg.password = password
    return cfg


def open_session(config: Soht2AdminConfig) -> AdminSession:
    return AdminSession(
        make_client(config),
        config=config,
        store=NavigationStore(config.navigation_path),
    )


def fail(exc: ApiError | TransportError) -> NoReturn:
    error = as_api_error(exc)
    print(f"[red]{error.display_message}[/red]")
    raise typer.Exit(code=1) from exc


def parse_date_option(value: str | None, *, option: str) -> dt.date | dt.datetime | None:
    if value is None:
        return None
    parsed = parse_timestamp_param(value)
    if parsed is None:
        raise typer.BadParameter(
            f"expected YYYY-MM-DD or an ISO timestamp, got {value!r}", param_hint=option
        )
    return parsed


def date_range(
    name: str, after: str | None, before: str | None, *, options: tuple[str, str]
) -> FilterItem | None:
    lower = parse_date_option(after, option=options[0])
    upper = parse_date_option(before, option=options[1])
    if lower is not None and upper is not None:
        return FilterItem(name, "between", (lower, upper))
    if lower is not None:
        return FilterItem(name, "after", lower)
    if upper is not None:
        return FilterItem(name, "before", upper)
    return None


def text_filter(name: str, value: str | None) -> FilterItem | None:
    """``*`` at either end of ``value`` selects startsWith/endsWith/contains."""

    if not value:
        return None
    return FilterItem(name, "equals", value)


def value_set_filter(name: str, values: list[str] | None) -> FilterItem | None:
    """Repeated or comma separated options become one ``isAnyOf`` item."""

    if not values:
        return None
    return FilterItem(name, "isAnyOf", tuple(values))


def build_state(
    loader: ListLoader[Any],
    *,
    filters: list[FilterItem | None],
    sort: str | None,
    page: int | None,
    size: int | None,
    start: NavigationState | None = None,
) -> NavigationState:
    """Fold the command line options into the loader's current state.

    Options the user did not give keep their restored value; any filter
    given on the command line replaces the whole restored filter set.
    """

    view = loader.view
    state = start or loader.state
    given = [item for item in filters if item is not None]
    if given:
        state = reduce(state, SetFilters(tuple(given), fields=view.fields))
    if sort is not None:
        sorting = Sorting.parse(sort, view.columns) if sort not in {"", "none"} else Sorting()
        if sort not in {"", "none"} and not sorting.active:
            raise typer.BadParameter(
                f"unknown sort {sort!r}; columns: {', '.join(view.columns)}", param_hint="--sort"
            )
        state = replace(state, sorting=sorting, pagination=replace(state.pagination, page_number=0))
    if size is not None:
        state = reduce(state, SetPageSize(size))
    if page is not None:
        state = reduce(state, SetPage(page - 1))
    return state


def list_view_cmd(
    session: AdminSession,
    *,
    view: str,
    filters: list[FilterItem | None],
    sort: str | None,
    page: int | None,
    size: int | None,
    reset: bool = False,
) -> ListSnapshot:
    """Load one page of ``view`` and print it as a table.

    ``reset`` starts from the view defaults instead of the saved navigation.
    """

    loader = session.loader(view)
    start = session.default_state(view) if reset else None
    state = build_state(
        loader, filters=filters, sort=sort, page=page, size=size, start=start
    )
    loader.reset(state)
    snapshot = loader.snapshot()
    if snapshot.error is not None:
        fail(snapshot.error)
    print(render_snapshot(loader.view, snapshot))
    session.save_navigation(view)
    return snapshot
