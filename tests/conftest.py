from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from soht2_admin.api.http_client import Soht2Client

ENV_VARS = (
    "SOHT2_URL",
    "SOHT2_USERNAME",
    "SOHT2_PASSWORD",
    "SOHT2_TIMEOUT_S",
    "SOHT2_DEBOUNCE_MS",
    "SOHT2_REFRESH_INTERVAL_S",
    "SOHT2_USERS_PAGE_SIZE",
    "SOHT2_CONNECTIONS_PAGE_SIZE",
    "SOHT2_HISTORY_PAGE_SIZE",
)


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SOHT2_ADMIN_CONFIG", str(tmp_path / "config.json"))
    monkeypatch.setenv("SOHT2_NAVIGATION_PATH", str(tmp_path / "navigation.json"))


class FakeTimer:
    def __init__(self, interval: float, function: Callable[[], Any]) -> None:
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        # A real timer thread may still run after cancel(); callers must cope.
        self.fired = True
        self.function()


class FakeTimers:
    """Timer factory that records timers instead of starting threads."""

    def __init__(self) -> None:
        self.created: list[FakeTimer] = []

    def __call__(self, interval: float, function: Callable[[], Any]) -> FakeTimer:
        timer = FakeTimer(interval, function)
        self.created.append(timer)
        return timer

    @property
    def pending(self) -> list[FakeTimer]:
        return [t for t in self.created if t.started and not t.cancelled and not t.fired]

    def fire_pending(self) -> int:
        pending = self.pending
        for timer in pending:
            timer.fire()
        return len(pending)


@pytest.fixture
def timers() -> FakeTimers:
    return FakeTimers()


def user_json(username: str, role: str = "USER", created: str = "2024-03-01T10:00:00") -> dict:
    return {
        "username": username,
        "role": role,
        "createdAt": created,
        "updatedAt": created,
        "allowedTargets": ["*.example.com:443"],
    }


def connection_json(
    conn_id: str,
    username: str = "alice",
    target_host: str = "db.example.com",
    target_port: int = 5432,
    opened: str = "2024-03-01T10:00:00",
    closed: str | None = None,
) -> dict:
    return {
        "id": conn_id,
        "user": {"username": username},
        "clientHost": "10.0.0.5",
        "targetHost": target_host,
        "targetPort": target_port,
        "openedAt": opened,
        "closedAt": closed,
        "bytesRead": 2048,
        "bytesWritten": 1536,
    }


class FakeServer:
    """In-memory SOHT2 API served through ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.users: list[dict] = [
            user_json("admin", "ADMIN", "2024-01-01T09:00:00"),
            user_json("alice", "USER", "2024-02-10T12:30:00"),
            user_json("bob", "USER", "2024-03-05T08:15:00"),
        ]
        self.connections: list[dict] = [
            connection_json("c-1", "alice", "db.example.com", 5432),
            connection_json("c-2", "bob", "web.example.org", 443, opened="2024-03-02T11:00:00"),
        ]
        self.history: list[dict] = [
            connection_json("h-1", "alice", closed="2024-03-01T11:00:00"),
            connection_json("h-2", "bob", "api.example.com", 443, closed="2024-03-01T12:00:00"),
        ]
        self.requests: list[httpx.Request] = []
        self.fail_with: dict[str, httpx.Response] = {}

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def client(self) -> Soht2Client:
        return Soht2Client(
            "http://soht2.test", username="admin", password="secret", transport=self.transport
        )

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path in self.fail_with:
            return self.fail_with[path]
        if path == "/api/user" and request.method == "GET":
            return httpx.Response(200, json=self.users)
        if path == "/api/user" and request.method == "POST":
            params = request.url.params
            user = user_json(params["username"], params.get("role", "USER"))
            user["allowedTargets"] = params.get_list("target")
            self.users.append(user)
            return httpx.Response(200, json=user)
        if path == "/api/user/self" and request.method == "GET":
            return httpx.Response(200, json=self.users[0])
        if path == "/api/user/self" and request.method == "PUT":
            return httpx.Response(200, json=self.users[0])
        if path.startswith("/api/user/") and request.method == "PUT":
            name = path.rsplit("/", 1)[1]
            for user in self.users:
                if user["username"] == name:
                    if "role" in request.url.params:
                        user["role"] = request.url.params["role"]
                    return httpx.Response(200, json=user)
            return _not_found(path, f"User {name} not found")
        if path.startswith("/api/user/") and request.method == "DELETE":
            name = path.rsplit("/", 1)[1]
            self.users = [u for u in self.users if u["username"] != name]
            return httpx.Response(200)
        if path == "/api/connection" and request.method == "GET":
            return httpx.Response(200, json=self.connections)
        if path == "/api/connection/history":
            return httpx.Response(200, json=self._history_page(request))
        if path.startswith("/api/connection/") and request.method == "DELETE":
            conn_id = path.rsplit("/", 1)[1]
            self.connections = [c for c in self.connections if c["id"] != conn_id]
            return httpx.Response(200)
        return _not_found(path, "No static resource")

    def _history_page(self, request: httpx.Request) -> dict:
        params = request.url.params
        page = int(params.get("pg", "0"))
        size = int(params.get("sz", "10"))
        sorting = []
        if "sort" in params:
            field, _, direction = params["sort"].partition(":")
            sorting.append({"field": field, "direction": (direction or "asc").upper()})
        start = page * size
        return {
            "paging": {"pageNumber": page, "pageSize": size, "sorting": sorting},
            "totalItems": len(self.history),
            "data": self.history[start : start + size],
        }


def _not_found(path: str, message: str) -> httpx.Response:
    body = {"status": 404, "error": "Not Found", "message": message, "path": path}
    return httpx.Response(404, json=body)


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()
