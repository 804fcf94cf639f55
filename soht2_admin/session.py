from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any, TypeVar

from .api.endpoints import ConnectionApi, UserApi
from .api.errors import ApiError, TransportError
from .api.http_client import Soht2Client
from .api.types import Soht2Connection, Soht2User
from .config import Soht2AdminConfig
from .events import AppError, ChangeBus, ConnectionChanged, UserChanged
from .listing.loader import ListLoader
from .listing.navigation import NavigationState
from .listing.views import CONNECTIONS_VIEW, HISTORY_VIEW, USERS_VIEW, VIEWS, ViewSpec
from .navigation_store import NavigationStore
from .scheduling import TimerFactory

logger = logging.getLogger(__name__)

R = TypeVar("R")

RELOAD_TOPICS: dict[str, tuple[type, ...]] = {
    USERS_VIEW.name: (UserChanged,),
    CONNECTIONS_VIEW.name: (ConnectionChanged,),
    HISTORY_VIEW.name: (UserChanged, ConnectionChanged),
}


class AdminSession:
    """Owns the client, the change bus and one loader per view.

    Mutations go through the session so every affected view reloads after a
    successful change. Load failures arrive as ``AppError`` notifications and
    are kept until ``drain_errors`` is called.
    """

    def __init__(
        self,
        client: Soht2Client,
        *,
        config: Soht2AdminConfig | None = None,
        store: NavigationStore | None = None,
        bus: ChangeBus | None = None,
        timer_factory: TimerFactory | None = None,
        restore: bool = True,
    ) -> None:
        self.client = client
        self.config = config or Soht2AdminConfig()
        self.store = store
        self.bus = bus or ChangeBus()
        self.users_api = UserApi(client)
        self.connections_api = ConnectionApi(client)
        self._errors: list[AppError] = []
        self._errors_lock = threading.Lock()
        self._error_subscription = self.bus.subscribe(AppError, self._on_error)
        self.loaders: dict[str, ListLoader[Any]] = {}
        for view in VIEWS.values():
            self.loaders[view.name] = ListLoader(
                view,
                client,
                bus=self.bus,
                state=self._initial_state(view, restore=restore),
                debounce_ms=self.config.debounce_ms,
                refresh_interval_s=self.config.refresh_interval_s,
                timer_factory=timer_factory,
                reload_on=RELOAD_TOPICS[view.name],
            )

    @classmethod
    def from_config(
        cls, config: Soht2AdminConfig, *, restore: bool = True, **kwargs: Any
    ) -> AdminSession:
        client = Soht2Client(
            config.url,
            username=config.username,
            password=config.password,
            timeout_s=config.timeout_s,
        )
        store = NavigationStore(config.navigation_path)
        return cls(client, config=config, store=store, restore=restore, **kwargs)

    @property
    def users(self) -> ListLoader[Soht2User]:
        return self.loaders[USERS_VIEW.name]

    @property
    def connections(self) -> ListLoader[Soht2Connection]:
        return self.loaders[CONNECTIONS_VIEW.name]

    @property
    def history(self) -> ListLoader[Soht2Connection]:
        return self.loaders[HISTORY_VIEW.name]

    def loader(self, view: str) -> ListLoader[Any]:
        try:
            return self.loaders[view]
        except KeyError:
            raise ValueError(f"unknown view: {view}") from None

    # -- mutations ---------------------------------------------------------

    def create_user(
        self,
        username: str,
        password: str,
        *,
        role: str | None = None,
        allowed_targets: list[str] | None = None,
    ) -> Soht2User:
        user = self._call(
            lambda: self.users_api.create_user(
                username, password, role=role, allowed_targets=allowed_targets
            )
        )
        self.bus.publish(UserChanged("create", user.username or username))
        return user

    def update_user(
        self,
        username: str,
        *,
        password: str | None = None,
        role: str | None = None,
        allowed_targets: list[str] | None = None,
    ) -> Soht2User:
        user = self._call(
            lambda: self.users_api.update_user(
                username, password=password, role=role, allowed_targets=allowed_targets
            )
        )
        self.bus.publish(UserChanged("update", user.username or username))
        return user

    def delete_user(self, username: str, *, force: bool = False, history: bool = False) -> None:
        self._call(lambda: self.users_api.delete_user(username, force=force, history=history))
        self.bus.publish(UserChanged("delete", username))

    def change_password(self, old: str, new: str) -> Soht2User:
        user = self._call(lambda: self.users_api.change_password(old, new))
        self.bus.publish(UserChanged("update", user.username))
        return user

    def whoami(self) -> Soht2User:
        return self._call(self.users_api.get_self)

    def close_connection(self, connection_id: str) -> None:
        self._call(lambda: self.connections_api.close(connection_id))
        self.bus.publish(ConnectionChanged("close", connection_id))

    # -- notifications -----------------------------------------------------

    def drain_errors(self) -> list[AppError]:
        with self._errors_lock:
            errors = list(self._errors)
            self._errors.clear()
        return errors

    # -- navigation persistence -------------------------------------------

    def default_state(self, view: str) -> NavigationState:
        spec = self.loader(view).view
        return spec.initial_state(self.config.page_size_for(spec.name))

    def save_navigation(self, *views: str) -> None:
        """Persist the given views, or every view when none is named."""

        if self.store is None:
            return
        for name in views or tuple(self.loaders):
            self.store.save(name, self.loader(name).state)

    def reset_navigation(self, view: str) -> None:
        loader = self.loader(view)
        loader.reset(self.default_state(view))
        if self.store is not None:
            self.store.clear(view)

    def close(self) -> None:
        for loader in self.loaders.values():
            loader.close()
        self._error_subscription.close()
        self.client.close()

    def __enter__(self) -> AdminSession:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _initial_state(self, view: ViewSpec, *, restore: bool) -> NavigationState:
        default = view.initial_state(self.config.page_size_for(view.name))
        if restore and self.store is not None:
            return self.store.load(view.name, default)
        return default

    def _on_error(self, event: AppError) -> None:
        with self._errors_lock:
            self._errors.append(event)

    def _call(self, func: Callable[[], R]) -> R:
        try:
            return func()
        except TransportError as exc:
            raise exc.to_api_error() from exc
        except ApiError:
            logger.debug("request rejected", exc_info=True)
            raise
