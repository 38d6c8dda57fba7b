"""Event-driven thoughts.

The engine listens to the colony's :class:`EventBus`. Handlers run inside the
tick and must stay synchronous, so each one only checks gates (cooldowns,
thresholds, dice) and schedules the actual generation on the
:class:`TimerQueue`. Generation results arrive later and are re-validated
against the world before they touch any agent.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Set

from ..environment.grid import describe_tile
from ..environment.helpers import manhattan
from ..events import EventBus, EventType, Payload, Unsubscribe, safe_call
from ..logging_utils import LOG_TAG_ERROR, LOG_TAG_LLM, is_verbose, log_error, log_llm
from ..needs import add_memory
from ..schemas import Agent, WorldState
from .cooldowns import CooldownTracker
from .fallbacks import clean_response, fallback_thought
from .health import HealthProbe
from .prompts import thought_request
from .queue import GenerationQueue
from .renderers import build_thought_prompt
from .scheduler import TimerHandle, TimerQueue
from .settings import ThoughtSettings

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from .conversations import ConversationManager


ThoughtCallback = Callable[[Agent, str], None]
SidebarCallback = Callable[[List[Dict[str, Any]]], None]


@dataclass
class ThoughtRecord:
    thought: str
    event_type: str
    tick: int
    timestamp: float


class ThoughtEngine:
    """Turns simulation events into short first-person thoughts."""

    def __init__(
        self,
        *,
        bus: EventBus,
        queue: GenerationQueue,
        timers: TimerQueue,
        cooldowns: CooldownTracker,
        probe: HealthProbe,
        settings: Optional[ThoughtSettings] = None,
        rng: Optional[random.Random] = None,
        world: Optional[WorldState] = None,
        on_thought: Optional[ThoughtCallback] = None,
        on_sidebar_update: Optional[SidebarCallback] = None,
    ) -> None:
        self.bus = bus
        self.queue = queue
        self.timers = timers
        self.cooldowns = cooldowns
        self.probe = probe
        self.settings = settings or ThoughtSettings()
        self.rng = rng or random.Random()
        self.world = world
        self.on_thought = on_thought
        self.on_sidebar_update = on_sidebar_update
        self.conversations: Optional["ConversationManager"] = None

        self._thoughts: Dict[str, ThoughtRecord] = {}
        self._in_flight: Set[str] = set()
        self._proximity: Dict[str, Set[str]] = {}
        self._terrain: Dict[str, str] = {}
        self._subscriptions: List[Unsubscribe] = []
        self._background: Optional[TimerHandle] = None

    # =============================
    # Lifecycle
    # =============================

    def start(self, *, background: bool = True) -> None:
        if self._subscriptions:
            return
        handlers = {
            EventType.TICK: self._on_tick,
            EventType.MEETING: self._on_meeting,
            EventType.FOOD_FOUND: self._on_food_found,
            EventType.HUNGER_THRESHOLD: self._on_hunger_threshold,
            EventType.MOOD_SHIFT: self._on_mood_shift,
            EventType.NEW_TERRAIN: self._on_new_terrain,
            EventType.DEATH: self._on_death,
        }
        for event, handler in handlers.items():
            self._subscriptions.append(self.bus.on(event, handler))
        if background:
            self._schedule_background()

    def stop(self) -> None:
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions.clear()
        if self._background is not None:
            self._background.cancel()
            self._background = None
        self._in_flight.clear()

    @property
    def running(self) -> bool:
        return bool(self._subscriptions)

    # =============================
    # Event handlers (synchronous, inside the tick)
    # =============================

    def _on_tick(self, payload: Payload) -> None:
        world = self.world
        if world is None:
            return
        living = world.living_dwarves()
        self._detect_meetings(living)
        self._detect_terrain(world, living)

    def _detect_meetings(self, living: List[Agent]) -> None:
        distance = self.settings.interaction_distance
        current: Dict[str, Set[str]] = {dwarf.agent_id: set() for dwarf in living}
        for i, dwarf in enumerate(living):
            for other in living[i + 1:]:
                if manhattan(dwarf, other) <= distance:
                    current[dwarf.agent_id].add(other.agent_id)
                    current[other.agent_id].add(dwarf.agent_id)

        for dwarf in living:
            before = self._proximity.get(dwarf.agent_id, set())
            now = current[dwarf.agent_id]
            # Each unordered pair is announced once, from the lower id.
            for other_id in sorted(now - before):
                if dwarf.agent_id < other_id:
                    self.bus.emit(EventType.MEETING, {"dwarf_id": dwarf.agent_id, "other_id": other_id})
            for other_id in sorted(before - now):
                if dwarf.agent_id < other_id:
                    self.bus.emit(EventType.PARTING, {"dwarf_id": dwarf.agent_id, "other_id": other_id})
        self._proximity = current

    def _detect_terrain(self, world: WorldState, living: List[Agent]) -> None:
        for dwarf in living:
            terrain = world.map.tile_type(dwarf.x, dwarf.y)
            if terrain is None:
                continue
            previous = self._terrain.get(dwarf.agent_id)
            self._terrain[dwarf.agent_id] = terrain
            if previous is not None and previous != terrain:
                self.bus.emit(
                    EventType.NEW_TERRAIN,
                    {"dwarf_id": dwarf.agent_id, "terrain": terrain, "previous": previous},
                )

    def _on_meeting(self, payload: Payload) -> None:
        dwarf_id = payload.get("dwarf_id")
        other_id = payload.get("other_id")
        if not dwarf_id or not other_id:
            return
        if self.cooldowns.on_meeting_cooldown(dwarf_id, other_id):
            return
        self.cooldowns.mark_meeting(dwarf_id, other_id)

        # Whoever is free to think notices the other one.
        for observer, observed in ((dwarf_id, other_id), (other_id, dwarf_id)):
            if self._can_think(observer):
                self._in_flight.add(observer)
                self.timers.call_later(
                    0.0,
                    lambda: self._meeting_thought(observer, observed),
                    label=f"meeting:{observer}",
                )
                return

    def _on_food_found(self, payload: Payload) -> None:
        dwarf_id = payload.get("dwarf_id")
        if dwarf_id and self._can_think(dwarf_id):
            self._schedule_thought(dwarf_id, "food_found", payload)

    def _on_hunger_threshold(self, payload: Payload) -> None:
        dwarf_id = payload.get("dwarf_id")
        previous = float(payload.get("previous", 0))
        current = float(payload.get("current", 0))
        crossed = any(previous < level <= current for level in self.settings.hunger_thresholds)
        if dwarf_id and crossed and self._can_think(dwarf_id):
            self._schedule_thought(dwarf_id, "hunger", payload)

    def _on_mood_shift(self, payload: Payload) -> None:
        dwarf_id = payload.get("dwarf_id")
        delta = float(payload.get("current", 0)) - float(payload.get("previous", 0))
        if dwarf_id and abs(delta) >= self.settings.mood_shift_threshold and self._can_think(dwarf_id):
            self._schedule_thought(dwarf_id, "mood_shift", payload)

    def _on_new_terrain(self, payload: Payload) -> None:
        dwarf_id = payload.get("dwarf_id")
        if not dwarf_id or not self._can_think(dwarf_id):
            return
        if self.rng.random() < self.settings.terrain_thought_chance:
            self._schedule_thought(dwarf_id, "new_terrain", payload)

    def _on_death(self, payload: Payload) -> None:
        dwarf_id = payload.get("dwarf_id")
        if dwarf_id:
            self.forget(dwarf_id)

    # =============================
    # Scheduling
    # =============================

    def _can_think(self, agent_id: str) -> bool:
        return agent_id not in self._in_flight and not self.cooldowns.on_thought_cooldown(agent_id)

    def _schedule_thought(self, agent_id: str, event_type: str, context: Mapping[str, Any]) -> None:
        self._in_flight.add(agent_id)
        self.timers.call_later(
            0.0,
            lambda: self._think(agent_id, event_type, context),
            label=f"{event_type}:{agent_id}",
        )

    def _schedule_background(self) -> None:
        self._background = self.timers.call_later(
            self.settings.background_interval,
            self._background_tick,
            label="background-thought",
        )

    def _background_tick(self) -> None:
        self._schedule_background()
        if self.world is None or self.rng.random() >= self.settings.background_chance:
            return
        candidates = [d for d in self.world.living_dwarves() if self._can_think(d.agent_id)]
        if not candidates:
            return
        dwarf = self.rng.choice(candidates)
        self._schedule_thought(dwarf.agent_id, "observation", {})

    # =============================
    # Generation
    # =============================

    async def _think(self, agent_id: str, event_type: str, context: Mapping[str, Any]) -> Optional[str]:
        self._in_flight.add(agent_id)
        try:
            agent = self._living(agent_id)
            if agent is None:
                return None
            thought = await self.request_thought(agent, event_type, context)
            # The agent may have died while the request was in flight.
            agent = self._living(agent_id)
            if agent is None:
                return None
            self.record_thought(agent, thought, event_type)
            return thought
        finally:
            self._in_flight.discard(agent_id)

    async def _meeting_thought(self, agent_id: str, other_id: str) -> None:
        thought = await self._think(agent_id, "meeting", {"other_id": other_id})
        if thought is None or self.conversations is None:
            return
        if self.rng.random() >= self.settings.conversation_chance:
            return
        low, high = self.settings.initiate_delay
        self.timers.call_later(
            self.rng.uniform(low, high),
            lambda: self.conversations.start_by_id(agent_id, other_id, thought),
            label=f"conversation:{agent_id}",
        )

    async def request_thought(
        self,
        agent: Agent,
        event_type: str,
        context: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """Generate a thought for ``agent``; falls back to a canned line, never raises."""
        context = context or {}
        try:
            if await self.probe.available():
                prompt = self._build_prompt(agent, event_type, context)
                raw = await self.queue.submit(thought_request(prompt, label=f"thought:{agent.name}"))
                cleaned = clean_response(raw)
                if cleaned:
                    return cleaned
        except Exception as exc:
            log_error(f"  {LOG_TAG_ERROR} [Thoughts] {agent.name}: {exc}")
        return fallback_thought(agent, event_type, self.rng)

    def _build_prompt(self, agent: Agent, event_type: str, context: Mapping[str, Any]) -> str:
        world = self.world
        other = None
        nearby: List[Agent] = []
        location = ""
        if world is not None:
            other_id = context.get("other_id")
            other = world.find_dwarf(other_id) if other_id else None
            nearby = self.nearby(agent, self.settings.interaction_distance * 2)
            location = describe_tile(world.map, agent.x, agent.y)
        return build_thought_prompt(
            agent,
            event_type,
            nearby=nearby,
            other=other,
            location=location,
        ).text

    def record_thought(self, agent: Agent, thought: str, event_type: str = "observation") -> None:
        tick = self.world.tick if self.world is not None else 0
        agent.current_thought = thought
        agent.last_thought_tick = tick
        add_memory(agent, "thought", thought, tick)
        self.cooldowns.mark_thought(agent.agent_id)
        self._thoughts[agent.agent_id] = ThoughtRecord(
            thought=thought,
            event_type=event_type,
            tick=tick,
            timestamp=self.timers.clock.now(),
        )
        if is_verbose():
            log_llm(f"  {LOG_TAG_LLM} [Thought] {agent.name} ({event_type}): {thought}")
        safe_call("on_thought", self.on_thought, agent, thought)
        safe_call("on_sidebar_update", self.on_sidebar_update, self.thought_list())

    async def force_thought(self, agent: Agent, event_type: str = "observation") -> str:
        """Think now, ignoring cooldowns."""
        thought = await self.request_thought(agent, event_type, {})
        self.record_thought(agent, thought, event_type)
        return thought

    # =============================
    # Queries
    # =============================

    def _living(self, agent_id: str) -> Optional[Agent]:
        if self.world is None:
            return None
        agent = self.world.find_dwarf(agent_id)
        return agent if agent is not None and agent.alive else None

    def nearby(self, agent: Agent, radius: int) -> List[Agent]:
        if self.world is None:
            return []
        return [
            other
            for other in self.world.living_dwarves()
            if other.agent_id != agent.agent_id and manhattan(agent, other) <= radius
        ]

    def current_thought(self, agent_id: str) -> Optional[str]:
        record = self._thoughts.get(agent_id)
        return record.thought if record else None

    def all_thoughts(self) -> Dict[str, str]:
        return {agent_id: record.thought for agent_id, record in self._thoughts.items()}

    def thought_list(self) -> List[Dict[str, Any]]:
        """Current thoughts of living dwarves, newest first."""
        now = self.timers.clock.now()
        entries = []
        for agent_id, record in self._thoughts.items():
            agent = self._living(agent_id)
            if agent is None:
                continue
            entries.append(
                {
                    "dwarf_id": agent_id,
                    "dwarf_name": agent.name,
                    "thought": record.thought,
                    "event_type": record.event_type,
                    "tick": record.tick,
                    "age": now - record.timestamp,
                }
            )
        entries.sort(key=lambda entry: entry["age"])
        return entries

    def forget(self, agent_id: str) -> None:
        self._thoughts.pop(agent_id, None)
        self._proximity.pop(agent_id, None)
        for others in self._proximity.values():
            others.discard(agent_id)
        self._terrain.pop(agent_id, None)
        self.cooldowns.forget(agent_id)

    def status(self) -> Dict[str, Any]:
        return {
            "running": self.running,
            "llm_available": self.probe.last_result,
            "thinking": len(self._in_flight),
            "thoughts": len(self._thoughts),
            "queue": self.queue.status(),
        }


__all__ = ["ThoughtEngine", "ThoughtRecord", "ThoughtCallback", "SidebarCallback"]
