"""Tests for cooldown windows and the health probe cache."""

import pytest

from dwarfmind.cognition.cooldowns import CooldownTracker, pair_key
from dwarfmind.cognition.health import HealthProbe
from dwarfmind.cognition.scheduler import ManualClock


def test_pair_key_is_order_independent():
    assert pair_key("dwarf-2", "dwarf-1") == pair_key("dwarf-1", "dwarf-2") == "dwarf-1:dwarf-2"


def test_thought_cooldown_window():
    clock = ManualClock()
    cooldowns = CooldownTracker(clock=clock, thought_window=12)

    assert not cooldowns.on_thought_cooldown("a")
    cooldowns.mark_thought("a")
    clock.advance(11.9)
    assert cooldowns.on_thought_cooldown("a")
    clock.advance(0.1)
    assert not cooldowns.on_thought_cooldown("a")


def test_meeting_cooldown_is_per_pair():
    clock = ManualClock()
    cooldowns = CooldownTracker(clock=clock, meeting_window=15)
    cooldowns.mark_meeting("b", "a")

    assert cooldowns.on_meeting_cooldown("a", "b")
    assert not cooldowns.on_meeting_cooldown("a", "c")
    clock.advance(15)
    assert not cooldowns.on_meeting_cooldown("a", "b")


def test_forget_drops_agent_entries():
    cooldowns = CooldownTracker(clock=ManualClock())
    cooldowns.mark_thought("a")
    cooldowns.mark_meeting("a", "b")
    cooldowns.mark_meeting("b", "c")

    cooldowns.forget("a")

    assert not cooldowns.on_thought_cooldown("a")
    assert not cooldowns.on_meeting_cooldown("a", "b")
    assert cooldowns.on_meeting_cooldown("b", "c")


@pytest.mark.asyncio
async def test_health_probe_caches_result(capsys):
    clock = ManualClock()
    calls = []

    async def check():
        calls.append(clock.now())
        return len(calls) < 2

    probe = HealthProbe(check, clock=clock, cache_seconds=30)

    assert await probe.available() is True
    clock.advance(29)
    assert await probe.available() is True
    assert len(calls) == 1

    clock.advance(1)
    assert await probe.available() is False
    assert len(calls) == 2
    assert "[Health] Generation service unavailable" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_health_probe_treats_errors_as_unavailable():
    async def check():
        raise ConnectionError("refused")

    probe = HealthProbe(check, clock=ManualClock())
    assert await probe.available() is False
    assert probe.last_result is False


@pytest.mark.asyncio
async def test_fixed_probe_never_checks():
    assert await HealthProbe.fixed(True).available() is True
    assert await HealthProbe.fixed(False).available() is False
