from __future__ import annotations

from typing import Any
from urllib.parse import quote

from .http_client import Query, Soht2Client
from .types import Page, Soht2Connection, Soht2User


def _path_segment(value: str) -> str:
    return quote(value, safe="")


class UserApi:
    """Wrappers for ``/api/user``."""

    def __init__(self, client: Soht2Client) -> None:
        self.client = client

    def list_users(self) -> list[Soht2User]:
        payload = self.client.get("/api/user")
        return [Soht2User.from_json(item) for item in payload or [] if isinstance(item, dict)]

    def get_self(self) -> Soht2User:
        return Soht2User.from_json(self.client.get("/api/user/self") or {})

    def create_user(
        self,
        username: str,
        password: str,
        *,
        role: str | None = None,
        allowed_targets: list[str] | None = None,
    ) -> Soht2User:
        query: Query = {"username": username, "password": password}
        if role is not None:
            query["role"] = role
        if allowed_targets:
            query["target"] = list(allowed_targets)
        return Soht2User.from_json(self.client.post("/api/user", query) or {})

    def update_user(
        self,
        name: str,
        *,
        password: str | None = None,
        role: str | None = None,
        allowed_targets: list[str] | None = None,
    ) -> Soht2User:
        query: Query = {}
        if password is not None:
            query["password"] = password
        if role is not None:
            query["role"] = role
        if allowed_targets is not None:
            query["target"] = list(allowed_targets)
        payload = self.client.put(f"/api/user/{_path_segment(name)}", query)
        return Soht2User.from_json(payload or {})

    def delete_user(self, name: str, *, force: bool = False, history: bool = False) -> None:
        self.client.delete(
            f"/api/user/{_path_segment(name)}", {"force": force, "history": history}
        )

    def change_password(self, old: str, new: str) -> Soht2User:
        data = self.client.put("/api/user/self", {"old": old, "new": new})
        return Soht2User.from_json(data or {})


class ConnectionApi:
    """Wrappers for ``/api/connection``."""

    def __init__(self, client: Soht2Client) -> None:
        self.client = client

    def list(self) -> list[Soht2Connection]:
        payload = self.client.get("/api/connection")
        return [
            Soht2Connection.from_json(item) for item in payload or [] if isinstance(item, dict)
        ]

    def history(self, query: dict[str, Any] | None = None) -> Page[Soht2Connection]:
        payload = self.client.get("/api/connection/history", query)
        return Page.from_json(payload, Soht2Connection.from_json)

    def close(self, connection_id: str) -> None:
        self.client.delete(f"/api/connection/{_path_segment(connection_id)}")
