from __future__ import annotations

import httpx
import pytest
from typer.testing import CliRunner

from soht2_admin import __version__
from soht2_admin.cli import app
from soht2_admin.commands import common

runner = CliRunner()


@pytest.fixture(autouse=True)
def _fake_server(monkeypatch, server):
    monkeypatch.setattr(common, "make_client", lambda config: server.client())
    return server


def test_root_help_lists_namespaces() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for name in ("users", "connections", "history", "config"):
        assert name in result.output


def test_history_help_shows_filters() -> None:
    result = runner.invoke(app, ["history", "list", "--help"])
    assert result.exit_code == 0
    assert "--target-host" in result.output
    assert "--opened-after" in result.output
    assert "--reset" in result.output


def test_version() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_history_list_sends_compact_query_and_prints_footer(server) -> None:
    result = runner.invoke(
        app,
        ["history", "list", "--target-host", "*.example.com*", "--port", "80", "--port", "443"],
    )

    assert result.exit_code == 0, result.output
    params = server.requests_to("/api/connection/history")[-1].url.params
    assert params["th"] == "*.example.com*"
    assert params.get_list("tp") == ["80", "443"]
    assert params["sort"] == "openedAt:desc"
    assert "total rows: 2 | page 1/1" in result.output


def test_history_navigation_is_remembered_until_reset(server) -> None:
    first = runner.invoke(
        app, ["history", "list", "--user", "alice", "--user", "Bob", "--size", "5"]
    )
    assert first.exit_code == 0, first.output

    second = runner.invoke(app, ["history", "list"])
    assert second.exit_code == 0, second.output
    params = server.requests_to("/api/connection/history")[-1].url.params
    assert params.get_list("un") == ["alice", "bob"]
    assert params["sz"] == "5"

    third = runner.invoke(app, ["history", "list", "--reset"])
    assert third.exit_code == 0, third.output
    params = server.requests_to("/api/connection/history")[-1].url.params
    assert "un" not in params
    assert params["sz"] == "50"


def test_history_rejects_bad_date() -> None:
    result = runner.invoke(app, ["history", "list", "--opened-after", "yesterday"])
    assert result.exit_code == 2


def test_unknown_sort_column_is_rejected() -> None:
    result = runner.invoke(app, ["users", "list", "--sort", "password"])
    assert result.exit_code == 2


def test_users_list_pages_locally() -> None:
    result = runner.invoke(app, ["users", "list", "--sort", "createdAt:desc", "--size", "2"])

    assert result.exit_code == 0, result.output
    assert "total rows: 3 | page 1/2" in result.output
    assert "bob" in result.output


def test_users_delete_and_failed_update(server) -> None:
    deleted = runner.invoke(app, ["users", "delete", "bob", "--history"])
    assert deleted.exit_code == 0, deleted.output
    assert "Deleted bob" in deleted.output
    assert all(u["username"] != "bob" for u in server.users)

    failed = runner.invoke(app, ["users", "update", "nobody", "--role", "ADMIN"])
    assert failed.exit_code == 1
    assert "User nobody not found" in failed.output


def test_users_create_with_targets(server) -> None:
    result = runner.invoke(
        app,
        ["users", "create", "eve", "--password", "pw", "-t", "a.example:22", "-t", "b:443"],
    )

    assert result.exit_code == 0, result.output
    assert server.users[-1]["allowedTargets"] == ["a.example:22", "b:443"]


def test_connections_close(server) -> None:
    result = runner.invoke(app, ["connections", "close", "c-1"])

    assert result.exit_code == 0, result.output
    assert [c["id"] for c in server.connections] == ["c-2"]


def test_connections_list_filters_by_port() -> None:
    result = runner.invoke(app, ["connections", "list", "--port", "443"])

    assert result.exit_code == 0, result.output
    assert "total rows: 1 | page 1/1" in result.output


def test_connections_watch_stops_after_count() -> None:
    result = runner.invoke(app, ["connections", "watch", "--count", "1", "--interval", "0.01"])

    assert result.exit_code == 0, result.output
    assert "total rows: 2" in result.output


def test_server_error_exits_with_message(server) -> None:
    server.fail_with["/api/connection/history"] = httpx.Response(
        503, json={"status": 503, "message": "maintenance window"}
    )

    result = runner.invoke(app, ["history", "list"])

    assert result.exit_code == 1
    assert "maintenance window" in result.output


def test_config_show_masks_password(monkeypatch) -> None:
    monkeypatch.setenv("SOHT2_PASSWORD", "hunter2")

    result = runner.invoke(app, ["config", "show"])

    assert result.exit_code == 0, result.output
    assert "hunter2" not in result.output
    assert "***" in result.output


def test_config_set_writes_file(tmp_path) -> None:
    result = runner.invoke(app, ["config", "set", "url", "https://relay.example"])
    assert result.exit_code == 0, result.output

    shown = runner.invoke(app, ["config", "show"])
    assert "https://relay.example" in shown.output

    bad = runner.invoke(app, ["config", "set", "colour", "blue"])
    assert bad.exit_code == 1
