from __future__ import annotations

import threading

import pytest

from soht2_admin.scheduling import AutoRefresh, Debouncer, RefreshState


def test_debounce_runs_only_the_last_action(timers) -> None:
    calls: list[int] = []
    debouncer = Debouncer(timer_factory=timers)

    for i in range(5):
        debouncer.schedule(700, lambda i=i: calls.append(i))

    assert calls == []
    assert len(timers.pending) == 1
    assert timers.pending[0].interval == pytest.approx(0.7)
    assert timers.pending[0].daemon is True
    timers.fire_pending()
    assert calls == [4]
    assert not debouncer.pending


def test_superseded_timer_firing_late_is_ignored(timers) -> None:
    calls: list[str] = []
    debouncer = Debouncer(timer_factory=timers)

    debouncer.schedule(700, lambda: calls.append("old"))
    stale = timers.created[0]
    debouncer.schedule(700, lambda: calls.append("new"))
    stale.fire()

    assert calls == []
    timers.fire_pending()
    assert calls == ["new"]


def test_zero_delay_runs_immediately(timers) -> None:
    calls: list[str] = []
    debouncer = Debouncer(timer_factory=timers)

    debouncer.schedule(0, lambda: calls.append("now"))

    assert calls == ["now"]
    assert timers.created == []


def test_flush_runs_pending_action_once(timers) -> None:
    calls: list[str] = []
    debouncer = Debouncer(timer_factory=timers)
    debouncer.schedule(700, lambda: calls.append("x"))

    assert debouncer.flush() is True
    assert debouncer.flush() is False
    timers.created[0].fire()
    assert calls == ["x"]


def test_cancel_and_close_drop_pending_work(timers) -> None:
    calls: list[str] = []
    debouncer = Debouncer(timer_factory=timers)
    debouncer.schedule(700, lambda: calls.append("cancelled"))
    debouncer.cancel()
    debouncer.close()
    debouncer.schedule(700, lambda: calls.append("after close"))

    for timer in timers.created:
        timer.fire()
    assert calls == []


def test_debounce_with_real_timer() -> None:
    done = threading.Event()
    calls: list[int] = []
    debouncer = Debouncer()

    for i in range(3):
        debouncer.schedule(20, lambda i=i: (calls.append(i), done.set()))

    assert done.wait(2)
    assert calls == [2]


def test_auto_refresh_ticks_and_rearms(timers) -> None:
    calls: list[str] = []
    refresh = AutoRefresh(lambda: calls.append("tick"), interval_s=5, timer_factory=timers)

    assert refresh.state is RefreshState.IDLE
    refresh.enable()
    assert refresh.state is RefreshState.SCHEDULED
    timers.fire_pending()
    timers.fire_pending()

    assert calls == ["tick", "tick"]
    assert len(timers.pending) == 1
    assert timers.pending[0].interval == 5


def test_nested_bypass_rearms_only_after_last_release(timers) -> None:
    calls: list[str] = []
    refresh = AutoRefresh(lambda: calls.append("tick"), interval_s=5, timer_factory=timers)
    refresh.enable()

    refresh.suspend()
    refresh.suspend()
    assert refresh.state is RefreshState.SUSPENDED
    assert refresh.bypass_count == 2
    assert timers.pending == []

    refresh.resume()
    assert refresh.state is RefreshState.SUSPENDED
    assert timers.pending == []

    refresh.resume()
    assert refresh.state is RefreshState.SCHEDULED
    assert len(timers.pending) == 1
    timers.fire_pending()
    assert calls == ["tick"]


def test_timer_cancelled_by_suspend_cannot_tick(timers) -> None:
    calls: list[str] = []
    refresh = AutoRefresh(lambda: calls.append("tick"), interval_s=5, timer_factory=timers)
    refresh.enable()
    armed = timers.created[0]

    with refresh.bypass():
        armed.fire()

    assert calls == []


def test_manual_refresh_keeps_timer_phase_and_ignores_suspension(timers) -> None:
    calls: list[str] = []
    refresh = AutoRefresh(lambda: calls.append("tick"), interval_s=5, timer_factory=timers)
    refresh.enable()
    armed = timers.pending[0]

    refresh.refresh_now()
    assert calls == ["tick"]
    assert timers.pending == [armed]
    assert len(timers.created) == 1

    refresh.suspend()
    refresh.refresh_now()
    assert calls == ["tick", "tick"]
    assert refresh.state is RefreshState.SUSPENDED
    assert timers.pending == []

    refresh.resume()
    assert refresh.state is RefreshState.SCHEDULED
    assert len(timers.pending) == 1


def test_unbalanced_resume_is_ignored(timers) -> None:
    refresh = AutoRefresh(lambda: None, interval_s=5, timer_factory=timers)

    refresh.resume()

    assert refresh.bypass_count == 0


def test_failing_refresh_action_keeps_the_timer_alive(timers) -> None:
    def boom() -> None:
        raise RuntimeError("down")

    refresh = AutoRefresh(boom, interval_s=5, timer_factory=timers)
    refresh.enable()
    timers.fire_pending()

    assert len(timers.pending) == 1


def test_disable_and_close_stop_ticking(timers) -> None:
    refresh = AutoRefresh(lambda: None, interval_s=5, timer_factory=timers)
    refresh.enable()
    assert refresh.toggle() is False
    assert timers.pending == []
    assert refresh.toggle() is True
    refresh.close()
    assert refresh.state is RefreshState.IDLE
    assert timers.pending == []
    refresh.enable()
    assert timers.pending == []


def test_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        AutoRefresh(lambda: None, interval_s=0)
