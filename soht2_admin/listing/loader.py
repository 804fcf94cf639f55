from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from ..api.errors import ApiError, TransportError, as_api_error
from ..api.http_client import Soht2Client
from ..api.types import Page
from ..events import AppError, ChangeBus, Subscription
from ..scheduling import (
    DEFAULT_DEBOUNCE_MS,
    DEFAULT_REFRESH_INTERVAL_S,
    AutoRefresh,
    Debouncer,
    TimerFactory,
)
from .filters import QueryParams
from .navigation import Action, NavigationState
from .views import ViewSpec

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LoadStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class ListSnapshot(Generic[T]):
    status: LoadStatus
    state: NavigationState
    page: Page[T] | None
    error: ApiError | None
    last_error: ApiError | None
    seq: int
    loading: bool

    @property
    def rows(self) -> list[T]:
        return list(self.page.data) if self.page else []

    @property
    def total_items(self) -> int:
        return self.page.total_items if self.page else 0

    @property
    def total_pages(self) -> int:
        return self.page.total_pages if self.page else 0


class ListLoader(Generic[T]):
    """Keeps one view's navigation state and its last accepted page.

    Requests are numbered; a response or error that does not belong to the
    most recently issued request is dropped, so a slow earlier request can
    never overwrite a newer result. Errors are published as ``AppError`` on
    the bus and never raised to the caller.
    """

    def __init__(
        self,
        view: ViewSpec,
        client: Soht2Client,
        *,
        bus: ChangeBus | None = None,
        state: NavigationState | None = None,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        refresh_interval_s: float = DEFAULT_REFRESH_INTERVAL_S,
        timer_factory: TimerFactory | None = None,
        reload_on: Iterable[str | type] = (),
    ) -> None:
        self.view = view
        self.client = client
        self.bus = bus
        self.debounce_ms = debounce_ms
        timers: dict[str, Any] = {"timer_factory": timer_factory} if timer_factory else {}
        self.debouncer = Debouncer(**timers)
        self.auto_refresh = AutoRefresh(self.refresh, interval_s=refresh_interval_s, **timers)
        self._lock = threading.Lock()
        self._state = state or view.default_state
        self._seq = 0
        self._settled_seq = 0
        self._accepted_seq = 0
        self._last_query: QueryParams | None = None
        self._page: Page[T] | None = None
        self._error: ApiError | None = None
        self._last_error: ApiError | None = None
        self._subscriptions: list[Subscription] = []
        if bus is not None:
            for topic in reload_on:
                self._subscriptions.append(bus.subscribe(topic, self._on_change))

    @property
    def state(self) -> NavigationState:
        with self._lock:
            return self._state

    def query(self) -> QueryParams:
        return self.view.query(self.state)

    def snapshot(self) -> ListSnapshot[T]:
        with self._lock:
            loading = self._seq > self._settled_seq
            if self._page is not None:
                status = LoadStatus.READY
            elif self._error is not None:
                status = LoadStatus.ERROR
            elif loading:
                status = LoadStatus.LOADING
            else:
                status = LoadStatus.IDLE
            return ListSnapshot(
                status=status,
                state=self._state,
                page=self._page,
                error=self._error,
                last_error=self._last_error,
                seq=self._accepted_seq,
                loading=loading,
            )

    def dispatch(self, action: Action, *, debounce: bool = False) -> NavigationState:
        """Apply a navigation action and request the matching page.

        Typing-driven actions pass ``debounce=True``; clicks and explicit
        "apply" load immediately and drop any pending debounced load.
        """

        with self._lock:
            self._state = self.view.apply(self._state, action)
            state = self._state
        if debounce:
            self.debouncer.schedule(self.debounce_ms, self.load)
        else:
            self.debouncer.cancel()
            self.load()
        return state

    def reset(self, state: NavigationState | None = None) -> NavigationState:
        with self._lock:
            self._state = state or self.view.default_state
            state = self._state
        self.debouncer.cancel()
        self.load()
        return state

    def load(self) -> bool:
        """Load the current state unless it was already requested."""

        with self._lock:
            if self._last_query == self.view.query(self._state):
                return False
        return self.refresh()

    def refresh(self) -> bool:
        """Issue a request for the current state; True if its result was accepted."""

        with self._lock:
            self._seq += 1
            seq = self._seq
            state = self._state
            query = self.view.query(state)
            self._last_query = query
        logger.debug("%s: request #%d %s", self.view.name, seq, query)
        try:
            page = self.view.fetch(self.client, state)
        except (ApiError, TransportError) as exc:
            return self._fail(seq, as_api_error(exc))
        except ValueError as exc:
            return self._fail(seq, ApiError(status=0, message=f"invalid response: {exc}"))
        except Exception as exc:
            logger.exception("%s: request #%d failed", self.view.name, seq)
            return self._fail(seq, ApiError(status=0, message=f"load failed: {exc}"))
        return self._accept(seq, page)

    def close(self) -> None:
        self.debouncer.close()
        self.auto_refresh.close()
        for subscription in self._subscriptions:
            subscription.close()
        self._subscriptions.clear()

    def _on_change(self, event: object) -> None:
        logger.debug("%s: reload after %r", self.view.name, event)
        self.refresh()

    def _accept(self, seq: int, page: Page[T]) -> bool:
        with self._lock:
            if seq != self._seq:
                logger.debug(
                    "%s: discarding stale response #%d (latest #%d)", self.view.name, seq, self._seq
                )
                return False
            self._settled_seq = seq
            self._accepted_seq = seq
            self._page = page
            self._error = None
            self._last_error = None
        return True

    def _fail(self, seq: int, error: ApiError) -> bool:
        with self._lock:
            if seq != self._seq:
                logger.debug(
                    "%s: discarding stale error #%d (latest #%d)", self.view.name, seq, self._seq
                )
                return False
            self._settled_seq = seq
            if self._page is None:
                self._error = error
            else:
                self._last_error = error
        logger.info("%s: load failed: %s", self.view.name, error.message)
        if self.bus is not None:
            self.bus.publish(AppError(error, source=self.view.name))
        return False
