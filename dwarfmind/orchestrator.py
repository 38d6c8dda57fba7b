"""Main simulation loop.

Each tick runs the deterministic pipeline (hunger, needs, decisions, events)
and then lets the cognition layer fire whatever timers are due. The tick
never waits on text generation; thoughts and speech land between ticks.
"""

from __future__ import annotations

import asyncio
import itertools
import random
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Set

from .cognition.runtime import ColonyMind
from .config import Config
from .decision import DecisionEngine, DecisionSettings
from .environment.collaborators import FoodStore, WorldServices, build_default_services
from .environment.schemas import FoodSource
from .events import EventBus, EventType, safe_call
from .logging_utils import (
    LOG_TAG_DETERMINISTIC,
    LOG_TAG_INFO,
    LOG_TAG_SUCCESS,
    is_verbose,
    log_deterministic,
    log_info,
    log_success,
)
from .needs import decay_fulfillment, is_critical, raise_hunger
from .schemas import Agent, WorldState
from .tasks import AIState


TickListener = Callable[[int, WorldState], None]


class DecisionFailedError(Exception):
    """Raised when the decision engine fails for one or more dwarves in a tick.

    Carries the agent_id -> exception mapping along with remediation hints.
    """

    def __init__(self, *, tick: int, errors: Dict[str, Exception]) -> None:
        self.tick = tick
        self.errors = errors
        message_lines = [
            f"Decision engine failed for one or more dwarves at tick {tick}.",
            "Dwarves that failed:",
        ]
        for agent_id, exc in errors.items():
            message_lines.append(f"  - {agent_id}: {exc}")
        message_lines.extend(
            [
                "\nRemediation tips:",
                "  - Check that every task type has a registered handler",
                "  - Verify custom WorldServices implement every protocol method",
                "  - Enable DWARFMIND_VERBOSE=true to trace task selection",
            ]
        )
        super().__init__("\n".join(message_lines))


@dataclass(frozen=True)
class ColonySettings:
    hunger_per_tick: float = 1.0
    mood_shift_threshold: float = 15.0
    food_respawn_chance: float = 0.02
    food_respawn_amount: int = 10
    # Real seconds between ticks in run(); 0 runs flat out.
    tick_duration: float = 0.0
    print_summary: bool = False

    @classmethod
    def from_config(cls) -> "ColonySettings":
        return cls(tick_duration=Config.TICK_DURATION_SECONDS)


class Colony:
    """Owns one world and drives it tick by tick.

    Fully decoupled: services, decision engine, and cognition are all passed
    in, so tests can run with in-memory collaborators and no mind at all.
    """

    def __init__(
        self,
        world: WorldState,
        services: Optional[WorldServices] = None,
        *,
        mind: Optional[ColonyMind] = None,
        decision: Optional[DecisionEngine] = None,
        settings: Optional[ColonySettings] = None,
        rng: Optional[random.Random] = None,
        tick_listeners: Optional[List[TickListener]] = None,
    ) -> None:
        self.world = world
        self.rng = rng or random.Random()
        self.services = services or build_default_services(rng=self.rng)
        self.mind = mind
        self.bus: EventBus = mind.bus if mind is not None else EventBus()
        self.decision = decision or DecisionEngine(
            self.services,
            settings=DecisionSettings.from_config(),
            rng=self.rng,
            bus=self.bus,
        )
        if self.decision.bus is None:
            self.decision.bus = self.bus
        self.settings = settings or ColonySettings()
        self.tick_listeners: List[TickListener] = list(tick_listeners or [])

        self._mood_baseline: Dict[str, float] = {d.agent_id: d.mood for d in world.dwarves}
        self._dead: Set[str] = {d.agent_id for d in world.dwarves if not d.alive}
        self._food_ids = itertools.count(1)

        if mind is not None:
            mind.attach(world)

    # =============================
    # Population
    # =============================

    def add_dwarf(self, agent: Agent) -> Agent:
        self.world.dwarves.append(agent)
        self._mood_baseline[agent.agent_id] = agent.mood
        self.world.add_log(f"{agent.name} arrived.")
        self.bus.emit(EventType.SPAWN, {"dwarf_id": agent.agent_id})
        return agent

    # =============================
    # Tick pipeline
    # =============================

    async def run(self, num_ticks: int) -> Dict:
        """Run the simulation for ``num_ticks`` ticks.

        Returns:
            Dict with the number of ticks run and the final world state
        """
        log_info(f"  {LOG_TAG_INFO} Starting colony: {len(self.world.dwarves)} dwarves, {num_ticks} ticks")
        for _ in range(num_ticks):
            await self.step()
            if self.settings.tick_duration > 0:
                await asyncio.sleep(self.settings.tick_duration)
        log_success(f"  {LOG_TAG_SUCCESS} Colony finished at tick {self.world.tick}")
        return {"ticks": num_ticks, "final_state": self.world}

    async def step(self) -> int:
        """Advance one tick. Returns the new tick number."""
        world = self.world
        world.tick += 1
        tick = world.tick

        living = world.living_dwarves()
        for dwarf in living:
            previous = dwarf.hunger
            raise_hunger(dwarf, self.settings.hunger_per_tick)
            decay_fulfillment(dwarf)
            if dwarf.hunger != previous:
                self.bus.emit(
                    EventType.HUNGER_THRESHOLD,
                    {"dwarf_id": dwarf.agent_id, "previous": previous, "current": dwarf.hunger},
                )

        errors: Dict[str, Exception] = {}
        for dwarf in living:
            try:
                self.decision.decide(dwarf, world)
            except Exception as exc:
                errors[dwarf.agent_id] = exc
                continue
            if is_critical(dwarf) and dwarf.state == AIState.WANDERING:
                world.add_log(f"{dwarf.name} panics from hunger!")
        if errors:
            raise DecisionFailedError(tick=tick, errors=errors)

        self._process_deaths()
        self._maybe_spawn_food()
        self._emit_mood_shifts()
        self.bus.emit(EventType.TICK, {"tick": tick})

        for listener in self.tick_listeners:
            safe_call("Analysis", listener, tick, world)

        if self.settings.print_summary:
            self._print_tick_summary(tick)

        if self.mind is not None:
            await self.mind.pump()
            # Yield once so spawned thought and speech tasks advance between ticks.
            await asyncio.sleep(0)
        return tick

    def _emit_mood_shifts(self) -> None:
        threshold = self.settings.mood_shift_threshold
        for dwarf in self.world.living_dwarves():
            baseline = self._mood_baseline.setdefault(dwarf.agent_id, dwarf.mood)
            if abs(dwarf.mood - baseline) >= threshold:
                self._mood_baseline[dwarf.agent_id] = dwarf.mood
                self.bus.emit(
                    EventType.MOOD_SHIFT,
                    {"dwarf_id": dwarf.agent_id, "previous": baseline, "current": dwarf.mood},
                )

    def _process_deaths(self) -> None:
        for dwarf in self.world.dwarves:
            if dwarf.alive or dwarf.agent_id in self._dead:
                continue
            self._dead.add(dwarf.agent_id)
            dwarf.current_task = None
            self.world.add_log(f"{dwarf.name} has died.")
            if self.mind is not None:
                self.mind.conversations.end_all_for(dwarf.agent_id)
            self.bus.emit(EventType.DEATH, {"dwarf_id": dwarf.agent_id})

    def _maybe_spawn_food(self) -> None:
        store = self.services.food
        if not isinstance(store, FoodStore):
            return
        if self.rng.random() >= self.settings.food_respawn_chance:
            return
        tile_map = self.world.map
        x = self.rng.randrange(tile_map.width)
        y = self.rng.randrange(tile_map.height)
        if not tile_map.is_walkable(x, y):
            return
        store.add(
            FoodSource(
                food_id=f"food-spawn-{next(self._food_ids)}",
                x=x,
                y=y,
                amount=self.settings.food_respawn_amount,
            )
        )
        self.world.add_log(f"New food appeared at ({x}, {y}).")

    def _print_tick_summary(self, tick: int) -> None:
        log_deterministic(f"=== Tick {tick} ===")
        for dwarf in self.world.dwarves:
            thought = f' "{dwarf.current_thought}"' if dwarf.current_thought else ""
            print(
                f"  {dwarf.name}: {dwarf.state.value} hunger={dwarf.hunger:.0f} "
                f"mood={dwarf.mood:.0f}{thought}"
            )
        if is_verbose():
            for line in self.world.log[-3:]:
                log_deterministic(f"  {LOG_TAG_DETERMINISTIC} {line}")


__all__ = ["Colony", "ColonySettings", "DecisionFailedError", "TickListener"]
