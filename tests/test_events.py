from __future__ import annotations

import logging

import pytest

from soht2_admin.api.errors import ApiError
from soht2_admin.events import AppError, ChangeBus, ConnectionChanged, UserChanged, topic_of


def test_publish_reaches_only_listeners_of_that_topic() -> None:
    bus = ChangeBus()
    users: list[object] = []
    conns: list[object] = []
    bus.subscribe(UserChanged, users.append)
    bus.subscribe("connection:changed", conns.append)

    event = UserChanged("delete", "bob")
    assert bus.publish(event) == 1

    assert users == [event]
    assert conns == []


def test_listeners_run_in_subscription_order_and_duplicates_deliver_twice() -> None:
    bus = ChangeBus()
    seen: list[str] = []

    def first(event: object) -> None:
        seen.append("first")

    bus.subscribe(UserChanged, first)
    bus.subscribe(UserChanged, lambda event: seen.append("second"))
    bus.subscribe(UserChanged, first)

    assert bus.publish(UserChanged("create", "x")) == 3
    assert seen == ["first", "second", "first"]


def test_failing_listener_does_not_stop_delivery(caplog: pytest.LogCaptureFixture) -> None:
    bus = ChangeBus()
    seen: list[object] = []

    def broken(event: object) -> None:
        raise RuntimeError("listener bug")

    bus.subscribe(ConnectionChanged, broken)
    bus.subscribe(ConnectionChanged, seen.append)

    with caplog.at_level(logging.ERROR, logger="soht2_admin.events"):
        delivered = bus.publish(ConnectionChanged("close", "c-1"))

    assert delivered == 1
    assert seen == [ConnectionChanged("close", "c-1")]
    assert "listener failed" in caplog.text


def test_unsubscribe_is_idempotent_and_stops_delivery() -> None:
    bus = ChangeBus()
    seen: list[object] = []
    subscription = bus.subscribe(UserChanged, seen.append)

    subscription.close()
    subscription.close()
    bus.unsubscribe(subscription)

    assert bus.publish(UserChanged("update", "a")) == 0
    assert bus.listener_count(UserChanged) == 0
    assert seen == []


def test_listener_removed_during_publish_is_skipped() -> None:
    bus = ChangeBus()
    seen: list[str] = []
    later = None

    def remove_later(event: object) -> None:
        seen.append("first")
        assert later is not None
        later.close()

    bus.subscribe(UserChanged, remove_later)
    later = bus.subscribe(UserChanged, lambda event: seen.append("second"))

    bus.publish(UserChanged("update", "a"))

    assert seen == ["first"]


def test_subscription_as_context_manager() -> None:
    bus = ChangeBus()
    with bus.subscribe(AppError, lambda event: None):
        assert bus.listener_count("app:error") == 1
    assert bus.listener_count("app:error") == 0


def test_topics() -> None:
    error = AppError(ApiError(status=500, message="boom"), source="history")

    assert topic_of(error) == "app:error"
    assert topic_of(UserChanged) == "user:changed"
    assert topic_of("custom") == "custom"
    with pytest.raises(TypeError):
        topic_of(object())
