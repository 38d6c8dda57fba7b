"""Tests for the console tags and colours printed by the simulation."""

from __future__ import annotations

import contextlib
import io
import random

import pytest

from dwarfmind.cognition import ColonyMind, HealthProbe, ManualClock
from dwarfmind.environment import build_default_services, open_tile_map
from dwarfmind.local_llm import GenerationRequest
from dwarfmind.config import Config
from dwarfmind.logging_utils import Color, colored, is_verbose, log_error, log_info, log_success
from dwarfmind.orchestrator import Colony
from dwarfmind.schemas import Agent, WorldState


class QuietBackend:
    async def generate(self, generation: GenerationRequest) -> str:
        return "Rock and stone."


def _colony(mind=None) -> Colony:
    world = WorldState(
        map=open_tile_map(12, 12),
        dwarves=[Agent(agent_id="d0", name="Urist", x=3, y=3)],
    )
    rng = random.Random(0)
    return Colony(world, build_default_services(rng=rng), mind=mind, rng=rng)


@pytest.mark.asyncio
async def test_decision_tag_only_when_verbose(monkeypatch):
    monkeypatch.setattr(Config, "LOG_LEVEL", "INFO")
    monkeypatch.delenv("DWARFMIND_VERBOSE", raising=False)
    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        await _colony().run(1)
    assert "[Decide]" not in buf.getvalue()

    monkeypatch.setenv("DWARFMIND_VERBOSE", "true")
    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        await _colony().run(1)
    assert "[•] [Decide] Urist ->" in buf.getvalue()


@pytest.mark.asyncio
async def test_thought_tag_marks_generated_lines(monkeypatch):
    monkeypatch.setenv("DWARFMIND_VERBOSE", "1")
    mind = ColonyMind(
        backend=QuietBackend(),
        probe=HealthProbe.fixed(True),
        clock=ManualClock(),
        rng=random.Random(0),
    )
    colony = _colony(mind)
    urist = colony.world.dwarves[0]

    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        await mind.thoughts.force_thought(urist)
        await mind.stop()

    assert "[AI] [Thought] Urist (observation): Rock and stone." in buf.getvalue()


@pytest.mark.asyncio
async def test_run_banner_tags():
    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        await _colony().run(2)
    out = buf.getvalue()

    assert "[i] Starting colony: 1 dwarves, 2 ticks" in out
    assert "[✓] Colony finished at tick 2" in out


def test_no_color_env_disables_escape_codes(monkeypatch):
    monkeypatch.setenv("DWARFMIND_NO_COLOR", "1")
    assert colored("plain", Color.RED) == "plain"

    monkeypatch.delenv("DWARFMIND_NO_COLOR")
    assert colored("tinted", Color.RED, bold=True).startswith(Color.BOLD.value + Color.RED.value)


def test_log_level_error_keeps_only_failures(monkeypatch, capsys):
    monkeypatch.setattr(Config, "LOG_LEVEL", "ERROR")

    log_info("  [i] metadata")
    log_success("  [✓] done")
    log_error("  [!] broke")

    out = capsys.readouterr().out
    assert "metadata" not in out and "done" not in out
    assert "broke" in out


def test_log_level_debug_turns_on_verbose_tracing(monkeypatch):
    monkeypatch.delenv("DWARFMIND_VERBOSE", raising=False)
    monkeypatch.setattr(Config, "LOG_LEVEL", "INFO")
    assert not is_verbose()

    monkeypatch.setattr(Config, "LOG_LEVEL", "DEBUG")
    assert is_verbose()
