from __future__ import annotations

import contextlib
import logging
import threading
from collections.abc import Callable, Iterator
from enum import Enum
from typing import Any, Protocol

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 700
DEFAULT_REFRESH_INTERVAL_S = 5.0


class TimerLike(Protocol):
    daemon: bool

    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], Any]], TimerLike]


class Debouncer:
    """Single-slot debounce: every ``schedule`` call restarts the window.

    Only the action from the most recent call runs, once the delay elapses
    without another call. ``flush`` runs it right away (blur, Enter).
    """

    def __init__(self, *, timer_factory: TimerFactory = threading.Timer) -> None:
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: TimerLike | None = None
        self._action: Callable[[], Any] | None = None
        self._generation = 0
        self._closed = False

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._action is not None

    def schedule(self, delay_ms: int, action: Callable[[], Any]) -> None:
        with self._lock:
            if self._closed:
                logger.debug("debouncer closed; dropping scheduled action")
                return
            self._clear_locked()
            if delay_ms > 0:
                generation = self._generation
                self._action = action
                timer = self._timer_factory(delay_ms / 1000.0, lambda: self._fire(generation))
                timer.daemon = True
                self._timer = timer
                timer.start()
                return
        action()

    def cancel(self) -> None:
        with self._lock:
            self._clear_locked()

    def flush(self) -> bool:
        with self._lock:
            action = self._action
            self._clear_locked()
        if action is None:
            return False
        action()
        return True

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._clear_locked()

    def _clear_locked(self) -> None:
        # Bumping the generation makes an already-started timer thread a no-op.
        self._generation += 1
        self._action = None
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._action is None:
                return
            action = self._action
            self._action = None
            self._timer = None
        action()


class RefreshState(str, Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    SUSPENDED = "suspended"


class AutoRefresh:
    """Periodic reload that pauses while blocking UI is open.

    ``suspend``/``resume`` keep a bypass counter: overlapping menus, dialogs
    and panels each hold one, and the timer is re-armed only once the count
    drops back to zero.
    """

    def __init__(
        self,
        action: Callable[[], Any],
        *,
        interval_s: float = DEFAULT_REFRESH_INTERVAL_S,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self.action = action
        self.interval_s = interval_s
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: TimerLike | None = None
        self._generation = 0
        self._enabled = False
        self._bypass = 0
        self._closed = False

    @property
    def state(self) -> RefreshState:
        with self._lock:
            return self._state_locked()

    @property
    def bypass_count(self) -> int:
        with self._lock:
            return self._bypass

    @property
    def enabled(self) -> bool:
        with self._lock:
            return self._enabled

    def enable(self) -> None:
        with self._lock:
            if self._closed or self._enabled:
                return
            self._enabled = True
            self._rearm_locked()

    def disable(self) -> None:
        with self._lock:
            self._enabled = False
            self._stop_locked()

    def toggle(self) -> bool:
        if self.enabled:
            self.disable()
            return False
        self.enable()
        return True

    def suspend(self) -> None:
        with self._lock:
            self._bypass += 1
            self._stop_locked()

    def resume(self) -> None:
        with self._lock:
            if self._bypass == 0:
                logger.warning("auto refresh resumed without a matching suspend")
                return
            self._bypass -= 1
            if self._bypass == 0:
                self._rearm_locked()

    @contextlib.contextmanager
    def bypass(self) -> Iterator[None]:
        self.suspend()
        try:
            yield
        finally:
            self.resume()

    def refresh_now(self) -> None:
        """Manual refresh; leaves the periodic timer untouched."""

        self.action()

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._enabled = False
            self._stop_locked()

    def _state_locked(self) -> RefreshState:
        if self._closed or not self._enabled:
            return RefreshState.IDLE
        if self._bypass > 0:
            return RefreshState.SUSPENDED
        return RefreshState.SCHEDULED

    def _stop_locked(self) -> None:
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _rearm_locked(self) -> None:
        self._stop_locked()
        if self._state_locked() is not RefreshState.SCHEDULED:
            return
        generation = self._generation
        timer = self._timer_factory(self.interval_s, lambda: self._tick(generation))
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _tick(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            if self._state_locked() is not RefreshState.SCHEDULED:
                return
            self._timer = None
        try:
            self.action()
        except Exception:
            logger.exception("auto refresh action failed")
        with self._lock:
            if generation == self._generation:
                self._rearm_locked()
