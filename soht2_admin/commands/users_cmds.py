from __future__ import annotations

from rich import print

from soht2_admin.api.errors import ApiError
from soht2_admin.api.types import Soht2User
from soht2_admin.commands.common import date_range, fail, list_view_cmd, text_filter
from soht2_admin.listing.views import USERS_VIEW
from soht2_admin.session import AdminSession


def _describe(user: Soht2User) -> str:
    targets = ", ".join(user.allowed_targets) or "-"
    return f"{user.username} role={user.role or '-'} targets={targets}"


def users_list_cmd(
    session: AdminSession,
    *,
    username: str | None,
    role: str | None,
    created_after: str | None,
    created_before: str | None,
    sort: str | None,
    page: int | None,
    size: int | None,
    reset: bool = False,
) -> None:
    """List accounts."""

    list_view_cmd(
        session,
        view=USERS_VIEW.name,
        filters=[
            text_filter("username", username),
            text_filter("role", role),
            date_range(
                "createdAt",
                created_after,
                created_before,
                options=("--created-after", "--created-before"),
            ),
        ],
        sort=sort,
        page=page,
        size=size,
        reset=reset,
    )


def users_create_cmd(
    session: AdminSession,
    *,
    username: str,
    password: str,
    role: str | None,
    targets: list[str],
) -> None:
    try:
        user = session.create_user(username, password, role=role, allowed_targets=targets or None)
    except ApiError as exc:
        fail(exc)
    print(f"[green]Created {_describe(user)}[/green]")


def users_update_cmd(
    session: AdminSession,
    *,
    username: str,
    password: str | None,
    role: str | None,
    targets: list[str] | None,
) -> None:
    try:
        user = session.update_user(
            username, password=password, role=role, allowed_targets=targets
        )
    except ApiError as exc:
        fail(exc)
    print(f"[green]Updated {_describe(user)}[/green]")


def users_delete_cmd(
    session: AdminSession, *, username: str, force: bool, history: bool
) -> None:
    try:
        session.delete_user(username, force=force, history=history)
    except ApiError as exc:
        fail(exc)
    suffix = " (history removed)" if history else ""
    print(f"[green]Deleted {username}{suffix}[/green]")


def users_whoami_cmd(session: AdminSession) -> None:
    try:
        user = session.whoami()
    except ApiError as exc:
        fail(exc)
    print(_describe(user))


def users_passwd_cmd(session: AdminSession, *, old: str, new: str) -> None:
    try:
        user = session.change_password(old, new)
    except ApiError as exc:
        fail(exc)
    print(f"[green]Password changed for {user.username}[/green]")
