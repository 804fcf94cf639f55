from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from soht2_admin.api.errors import ApiError
from soht2_admin.api.http_client import Soht2Client
from soht2_admin.config import Soht2AdminConfig
from soht2_admin.events import ConnectionChanged, UserChanged
from soht2_admin.listing.filters import FilterItem
from soht2_admin.listing.navigation import SetFilters, SetPage, SetSort, SortDirection, Sorting
from soht2_admin.navigation_store import NavigationStore
from soht2_admin.session import AdminSession


def _session(server, timers, tmp_path: Path, **kwargs) -> AdminSession:
    config = Soht2AdminConfig(history_page_size=20)
    store = NavigationStore(tmp_path / "nav.json")
    return AdminSession(
        server.client(), config=config, store=store, timer_factory=timers, **kwargs
    )


def test_views_start_from_defaults_and_config_page_size(server, timers, tmp_path) -> None:
    with _session(server, timers, tmp_path) as session:
        assert session.users.state.sorting == Sorting("username", SortDirection.ASC)
        assert session.users.state.pagination.page_size == 10
        assert session.connections.state.pagination.page_size == 25
        assert session.history.state.pagination.page_size == 20


def test_delete_user_reloads_users_and_history(server, timers, tmp_path) -> None:
    with _session(server, timers, tmp_path) as session:
        session.users.load()
        session.history.load()
        session.connections.load()
        counts = {
            path: len(server.requests_to(path))
            for path in ("/api/user", "/api/connection", "/api/connection/history")
        }

        session.delete_user("bob", force=True)

        assert len(server.requests_to("/api/user")) == counts["/api/user"] + 1
        history = len(server.requests_to("/api/connection/history"))
        assert history == counts["/api/connection/history"] + 1
        assert len(server.requests_to("/api/connection")) == counts["/api/connection"]
        assert [u.username for u in session.users.snapshot().rows] == ["admin", "alice"]


def test_close_connection_reloads_connections(server, timers, tmp_path) -> None:
    seen: list[object] = []
    with _session(server, timers, tmp_path) as session:
        session.bus.subscribe(ConnectionChanged, seen.append)
        session.connections.load()

        session.close_connection("c-1")

        assert seen == [ConnectionChanged("close", "c-1")]
        assert [c.id for c in session.connections.snapshot().rows] == ["c-2"]


def test_failed_mutation_raises_and_publishes_nothing(server, timers, tmp_path) -> None:
    seen: list[object] = []
    with _session(server, timers, tmp_path) as session:
        session.bus.subscribe(UserChanged, seen.append)

        with pytest.raises(ApiError) as excinfo:
            session.update_user("nobody", role="ADMIN")

        assert excinfo.value.status == 404
        assert seen == []


def test_transport_failure_on_mutation_is_raised_as_api_error(timers, tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    client = Soht2Client("http://soht2.test", transport=httpx.MockTransport(handler))
    with AdminSession(client, timer_factory=timers) as session:
        with pytest.raises(ApiError) as excinfo:
            session.close_connection("c-1")

    assert excinfo.value.status == 0


def test_load_errors_are_collected_as_notifications(server, timers, tmp_path) -> None:
    server.fail_with["/api/connection/history"] = httpx.Response(
        500, json={"status": 500, "error": "Internal Server Error", "message": "db down"}
    )
    with _session(server, timers, tmp_path) as session:
        session.history.load()

        errors = session.drain_errors()
        assert [(e.source, e.error.message) for e in errors] == [("history", "db down")]
        assert session.drain_errors() == []


def test_navigation_is_saved_and_restored(server, timers, tmp_path) -> None:
    with _session(server, timers, tmp_path) as session:
        session.history.dispatch(SetSort("targetPort"))
        session.history.dispatch(
            SetFilters(
                (FilterItem("targetHost", "startsWith", "db."),),
                fields=session.history.view.fields,
            )
        )
        session.history.dispatch(SetPage(2))
        session.save_navigation("history")
        saved = session.history.state

    with _session(server, timers, tmp_path) as restored:
        assert restored.history.state == saved
        assert restored.users.state == restored.default_state("users")

    with _session(server, timers, tmp_path, restore=False) as fresh:
        assert fresh.history.state == fresh.default_state("history")


def test_reset_navigation_clears_saved_view(server, timers, tmp_path) -> None:
    with _session(server, timers, tmp_path) as session:
        session.history.dispatch(SetPage(4))
        session.save_navigation()
        session.reset_navigation("history")

        assert session.history.state == session.default_state("history")
        assert "history" not in session.store.read_all()
        assert "users" in session.store.read_all()


def test_unknown_view_is_rejected(server, timers, tmp_path) -> None:
    with _session(server, timers, tmp_path) as session, pytest.raises(ValueError):
        session.loader("nope")
