"""Tests for the manual-clock timer queue."""

import asyncio

import pytest

from dwarfmind.cognition.scheduler import ManualClock, SystemClock, TimerQueue


@pytest.mark.asyncio
async def test_timers_fire_in_time_then_insertion_order():
    clock = ManualClock()
    timers = TimerQueue(clock)
    fired = []

    timers.call_later(2.0, lambda: fired.append("late"))
    timers.call_later(1.0, lambda: fired.append("first"))
    timers.call_later(1.0, lambda: fired.append("second"))

    assert await timers.advance(1.5) == 2
    assert fired == ["first", "second"]
    assert clock.now() == 1.5

    await timers.advance(1.0)
    assert fired == ["first", "second", "late"]
    assert timers.pending() == 0


@pytest.mark.asyncio
async def test_cancelled_timer_never_fires():
    timers = TimerQueue(ManualClock())
    fired = []
    handle = timers.call_later(1.0, lambda: fired.append("x"))
    handle.cancel()

    await timers.drain()

    assert fired == []
    assert timers.next_due() is None


@pytest.mark.asyncio
async def test_coroutine_actions_are_tracked_until_settled():
    clock = ManualClock()
    timers = TimerQueue(clock)
    done = []

    async def work():
        await asyncio.sleep(0)
        done.append(clock.now())

    timers.call_later(3.0, work)
    fired = await timers.drain()

    assert fired == 1
    assert done == [3.0]
    assert timers.in_flight == 0


@pytest.mark.asyncio
async def test_zero_delay_followups_run_in_same_pass():
    timers = TimerQueue(ManualClock())
    fired = []

    def first():
        fired.append("first")
        timers.call_later(0.0, lambda: fired.append("followup"))

    timers.call_later(0.0, first)
    assert await timers.run_due() == 2
    assert fired == ["first", "followup"]


@pytest.mark.asyncio
async def test_failing_action_is_logged_and_skipped(capsys):
    timers = TimerQueue(ManualClock())
    fired = []

    def explode():
        raise RuntimeError("kaboom")

    timers.call_later(0.0, explode, label="explode")
    timers.call_later(0.0, lambda: fired.append("ok"))
    await timers.run_due()

    assert fired == ["ok"]
    assert "[Timer] explode failed: kaboom" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_cancel_all_clears_pending_and_running():
    clock = ManualClock()
    timers = TimerQueue(clock)
    started = asyncio.Event()

    async def forever():
        started.set()
        await asyncio.Event().wait()

    timers.call_later(0.0, forever)
    timers.call_later(5.0, lambda: None)
    await timers.run_due()
    await started.wait()

    timers.cancel_all()
    await timers.wait_idle()

    assert timers.pending() == 0
    assert timers.in_flight == 0


def test_manual_clock_refuses_to_go_backwards():
    clock = ManualClock(start=10)
    with pytest.raises(ValueError):
        clock.advance(-1)
    with pytest.raises(ValueError):
        clock.set(5)


@pytest.mark.asyncio
async def test_stepping_time_needs_manual_clock():
    timers = TimerQueue(SystemClock())
    with pytest.raises(TypeError):
        await timers.advance(1.0)
