"""In-process publish/subscribe used to invalidate views after a mutation."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, ClassVar, Literal

from .api.errors import ApiError

logger = logging.getLogger(__name__)

UserChangedAction = Literal["create", "update", "delete"]
ConnectionChangedAction = Literal["close"]


@dataclass(frozen=True)
class UserChanged:
    topic: ClassVar[str] = "user:changed"

    action: UserChangedAction
    username: str


@dataclass(frozen=True)
class ConnectionChanged:
    topic: ClassVar[str] = "connection:changed"

    action: ConnectionChangedAction
    connection_id: str


@dataclass(frozen=True)
class AppError:
    topic: ClassVar[str] = "app:error"

    error: ApiError
    source: str | None = None


Listener = Callable[[Any], None]


def topic_of(target: str | type | object) -> str:
    if isinstance(target, str):
        return target
    topic = getattr(target, "topic", None)
    if not isinstance(topic, str):
        raise TypeError(f"no topic for {target!r}")
    return topic


class Subscription:
    def __init__(self, bus: ChangeBus, topic: str, listener: Listener) -> None:
        self.bus = bus
        self.topic = topic
        self.listener = listener
        self.active = True

    def close(self) -> None:
        self.bus.unsubscribe(self)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class ChangeBus:
    """Synchronous, topic-keyed pub/sub.

    Each ``subscribe`` call registers a new listener entry, so subscribing the
    same callable twice delivers twice. ``unsubscribe`` is safe to repeat.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscriptions: dict[str, list[Subscription]] = {}

    def subscribe(self, target: str | type, listener: Listener) -> Subscription:
        subscription = Subscription(self, topic_of(target), listener)
        with self._lock:
            self._subscriptions.setdefault(subscription.topic, []).append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if not subscription.active:
                return
            subscription.active = False
            entries = self._subscriptions.get(subscription.topic, [])
            if subscription in entries:
                entries.remove(subscription)
            if not entries:
                self._subscriptions.pop(subscription.topic, None)

    def listener_count(self, target: str | type) -> int:
        with self._lock:
            return len(self._subscriptions.get(topic_of(target), []))

    def publish(self, event: object, *, topic: str | None = None) -> int:
        """Deliver ``event`` to current listeners in subscription order.

        A failing listener is logged and the remaining listeners still run.
        Returns how many listeners completed without raising.
        """

        name = topic or topic_of(event)
        with self._lock:
            targets = list(self._subscriptions.get(name, []))
        delivered = 0
        for subscription in targets:
            if not subscription.active:
                continue
            try:
                subscription.listener(event)
            except Exception:
                logger.exception("listener failed", extra={"topic": name})
                continue
            delivered += 1
        return delivered
