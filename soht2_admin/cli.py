from __future__ import annotations

import logging
from typing import List, Optional

import typer
from rich import print

from . import __version__
from .commands import common
from .commands.config_cmds import config_path_cmd, config_set_cmd, config_show_cmd
from .commands.connections_cmds import (
    connection_filters,
    connections_close_cmd,
    connections_list_cmd,
    connections_watch_cmd,
)
from .commands.history_cmds import history_list_cmd
from .commands.users_cmds import (
    users_create_cmd,
    users_delete_cmd,
    users_list_cmd,
    users_passwd_cmd,
    users_update_cmd,
    users_whoami_cmd,
)
from .config import Soht2AdminConfig
from .session import AdminSession

app = typer.Typer(help="soht2-admin: manage users and connections of a SOHT2 server")
users_app = typer.Typer(help="User accounts")
connections_app = typer.Typer(help="Open connections")
history_app = typer.Typer(help="Connection history")
config_app = typer.Typer(help="Client configuration")
app.add_typer(users_app, name="users")
app.add_typer(connections_app, name="connections")
app.add_typer(history_app, name="history")
app.add_typer(config_app, name="config")

SORT_HELP = "Sort as column[:asc|desc]; 'none' clears the saved sort"
PAGE_HELP = "Page number, starting at 1"
SIZE_HELP = "Rows per page (1-1000)"
RESET_HELP = "Ignore the saved sort, filters and page for this view"


@app.callback()
def main_callback(
    ctx: typer.Context,
    url: str = typer.Option(None, help="Server URL (default from config or SOHT2_URL)"),
    user: str = typer.Option(None, "--user", "-u", help="Username for basic auth"),
    password: str = typer.Option(None, "--password", "-p", help="Password for basic auth"),
    log_level: str = typer.Option("WARNING", help="Logging level"),
) -> None:
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = common.resolve_config(url=url, username=user, password=password)


def _config(ctx: typer.Context) -> Soht2AdminConfig:
    if isinstance(ctx.obj, Soht2AdminConfig):
        return ctx.obj
    return common.resolve_config(url=None, username=None, password=None)


def _session(ctx: typer.Context) -> AdminSession:
    return common.open_session(_config(ctx))


@app.command("version")
def version() -> None:
    """Print version."""

    print(__version__)


# -- users -----------------------------------------------------------------


@users_app.command("list")
def users_list(
    ctx: typer.Context,
    username: str = typer.Option(None, help="Username; '*' at either end for a partial match"),
    role: str = typer.Option(None, help="Role, e.g. ADMIN or USER"),
    created_after: str = typer.Option(None, help="Created on or after (YYYY-MM-DD or ISO)"),
    created_before: str = typer.Option(None, help="Created on or before (YYYY-MM-DD or ISO)"),
    sort: str = typer.Option(None, help=SORT_HELP),
    page: int = typer.Option(None, help=PAGE_HELP),
    size: int = typer.Option(None, help=SIZE_HELP),
    reset: bool = typer.Option(False, "--reset", help=RESET_HELP),
) -> None:
    """List user accounts."""

    with _session(ctx) as session:
        users_list_cmd(
            session,
            username=username,
            role=role,
            created_after=created_after,
            created_before=created_before,
            sort=sort,
            page=page,
            size=size,
            reset=reset,
        )


@users_app.command("create")
def users_create(
    ctx: typer.Context,
    username: str = typer.Argument(..., help="New username"),
    password: str = typer.Option(..., prompt=True, hide_input=True, help="Initial password"),
    role: str = typer.Option(None, help="Role (server default when omitted)"),
    target: Optional[List[str]] = typer.Option(
        None, "--target", "-t", help="Allowed target host:port"
    ),
) -> None:
    """Create a user account."""

    with _session(ctx) as session:
        users_create_cmd(
            session, username=username, password=password, role=role, targets=list(target or [])
        )


@users_app.command("update")
def users_update(
    ctx: typer.Context,
    username: str = typer.Argument(..., help="Username to update"),
    password: str = typer.Option(None, help="New password"),
    role: str = typer.Option(None, help="New role"),
    target: Optional[List[str]] = typer.Option(
        None, "--target", "-t", help="Replace allowed targets"
    ),
) -> None:
    """Update password, role or allowed targets of a user."""

    with _session(ctx) as session:
        users_update_cmd(
            session,
            username=username,
            password=password,
            role=role,
            targets=list(target) if target else None,
        )


@users_app.command("delete")
def users_delete(
    ctx: typer.Context,
    username: str = typer.Argument(..., help="Username to delete"),
    force: bool = typer.Option(False, help="Close the user's open connections first"),
    history: bool = typer.Option(False, help="Also remove the user's connection history"),
) -> None:
    """Delete a user account."""

    with _session(ctx) as session:
        users_delete_cmd(session, username=username, force=force, history=history)


@users_app.command("whoami")
def users_whoami(ctx: typer.Context) -> None:
    """Show the authenticated account."""

    with _session(ctx) as session:
        users_whoami_cmd(session)


@users_app.command("passwd")
def users_passwd(
    ctx: typer.Context,
    old: str = typer.Option(..., prompt="Current password", hide_input=True),
    new: str = typer.Option(
        ..., prompt="New password", hide_input=True, confirmation_prompt=True
    ),
) -> None:
    """Change the authenticated account's password."""

    with _session(ctx) as session:
        users_passwd_cmd(session, old=old, new=new)


# -- connections -----------------------------------------------------------


@connections_app.command("list")
def connections_list(
    ctx: typer.Context,
    connection_id: str = typer.Option(None, "--id", help="Connection id; '*' for partial"),
    username: str = typer.Option(None, "--user", help="Username; '*' for partial"),
    client_host: str = typer.Option(None, help="Client host; '*' for partial"),
    target_host: str = typer.Option(None, help="Target host; '*' for partial"),
    port: Optional[List[int]] = typer.Option(None, "--port", help="Target port (repeatable)"),
    opened_after: str = typer.Option(None, help="Opened on or after"),
    opened_before: str = typer.Option(None, help="Opened on or before"),
    sort: str = typer.Option(None, help=SORT_HELP),
    page: int = typer.Option(None, help=PAGE_HELP),
    size: int = typer.Option(None, help=SIZE_HELP),
    reset: bool = typer.Option(False, "--reset", help=RESET_HELP),
) -> None:
    """List open connections."""

    filters = connection_filters(
        connection_id=connection_id,
        username=username,
        client_host=client_host,
        target_host=target_host,
        ports=port,
        opened_after=opened_after,
        opened_before=opened_before,
    )
    with _session(ctx) as session:
        connections_list_cmd(
            session, filters=filters, sort=sort, page=page, size=size, reset=reset
        )


@connections_app.command("watch")
def connections_watch(
    ctx: typer.Context,
    username: str = typer.Option(None, "--user", help="Username; '*' for partial"),
    target_host: str = typer.Option(None, help="Target host; '*' for partial"),
    port: Optional[List[int]] = typer.Option(None, "--port", help="Target port (repeatable)"),
    sort: str = typer.Option(None, help=SORT_HELP),
    size: int = typer.Option(None, help=SIZE_HELP),
    interval: float = typer.Option(None, help="Seconds between refreshes"),
    count: int = typer.Option(None, help="Stop after this many refreshes"),
    reset: bool = typer.Option(False, "--reset", help=RESET_HELP),
) -> None:
    """Keep the open connection list on screen, refreshing periodically."""

    filters = connection_filters(
        connection_id=None,
        username=username,
        client_host=None,
        target_host=target_host,
        ports=port,
        opened_after=None,
        opened_before=None,
    )
    with _session(ctx) as session:
        every = interval if interval and interval > 0 else session.config.refresh_interval_s
        connections_watch_cmd(
            session,
            filters=filters,
            sort=sort,
            size=size,
            interval=every,
            count=count,
            reset=reset,
        )


@connections_app.command("close")
def connections_close(
    ctx: typer.Context,
    connection_id: str = typer.Argument(..., help="Connection id"),
) -> None:
    """Close an open connection."""

    with _session(ctx) as session:
        connections_close_cmd(session, connection_id=connection_id)


# -- history ---------------------------------------------------------------


@history_app.command("list")
def history_list(
    ctx: typer.Context,
    username: Optional[List[str]] = typer.Option(None, "--user", help="Username (repeatable)"),
    connection_id: Optional[List[str]] = typer.Option(
        None, "--id", help="Connection id (repeatable)"
    ),
    client_host: str = typer.Option(None, help="Client host; '*' for partial"),
    target_host: str = typer.Option(None, help="Target host; '*' for partial"),
    port: Optional[List[int]] = typer.Option(None, "--port", help="Target port (repeatable)"),
    opened_after: str = typer.Option(None, help="Opened on or after"),
    opened_before: str = typer.Option(None, help="Opened on or before"),
    closed_after: str = typer.Option(None, help="Closed on or after"),
    closed_before: str = typer.Option(None, help="Closed on or before"),
    sort: str = typer.Option(None, help=SORT_HELP),
    page: int = typer.Option(None, help=PAGE_HELP),
    size: int = typer.Option(None, help=SIZE_HELP),
    reset: bool = typer.Option(False, "--reset", help=RESET_HELP),
) -> None:
    """Page through connection history."""

    with _session(ctx) as session:
        history_list_cmd(
            session,
            usernames=username,
            connection_ids=connection_id,
            client_host=client_host,
            target_host=target_host,
            ports=port,
            opened_after=opened_after,
            opened_before=opened_before,
            closed_after=closed_after,
            closed_before=closed_before,
            sort=sort,
            page=page,
            size=size,
            reset=reset,
        )


# -- config ----------------------------------------------------------------


@config_app.command("path")
def config_path() -> None:
    """Print the config file location."""

    config_path_cmd()


@config_app.command("show")
def config_show() -> None:
    """Show the effective configuration."""

    config_show_cmd()


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Config key, e.g. url or history_page_size"),
    value: str = typer.Argument(..., help="Value to store"),
) -> None:
    """Store a value in the config file."""

    config_set_cmd(key=key, value=value)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
