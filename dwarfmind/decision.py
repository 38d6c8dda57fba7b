"""Utility-based task selection, run once per dwarf per tick.

Order of precedence inside :meth:`DecisionEngine.decide`:

1. A hostile in threat range forces the fight-or-flee response.
2. A fleeing dwarf keeps fleeing until the threat is gone or far away.
3. Critical hunger sends the dwarf to food.
4. An active task keeps running until the reconsideration counter expires.
5. Otherwise every candidate task is scored and the best one starts.

The engine never awaits anything; it only reads whatever thoughts the
cognition layer has written so far.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Type

from .config import Config
from .environment.collaborators import WorldServices, bump_skill
from .environment.helpers import manhattan
from .environment.schemas import FoodSource, Hostile, Position
from .events import EventBus, EventType
from .logging_utils import LOG_TAG_DETERMINISTIC, is_verbose, log_deterministic
from .needs import add_memory, is_critical, is_hungry, most_pressing_need, needs_social, satisfy
from .schemas import Agent, WorldState
from .tasks import (
    AIState,
    Aspiration,
    BuildTask,
    CraftTask,
    DigTask,
    ExploreTask,
    FightTask,
    ForageTask,
    IdleTask,
    SocializeTask,
    Task,
    describe_task,
)


@dataclass(frozen=True)
class DecisionSettings:
    reconsider_interval: int = 20
    social_range: int = 4
    work_range: int = 1
    safe_distance: int = 10
    explore_range: tuple[int, int] = (8, 17)
    idle_wander_chance: float = 0.3
    social_skill_chance: float = 0.05

    @classmethod
    def from_config(cls) -> "DecisionSettings":
        return cls(
            reconsider_interval=Config.TASK_RECONSIDER_INTERVAL,
            social_range=Config.INTERACTION_DISTANCE,
        )


@dataclass(frozen=True)
class Decision:
    """What the dwarf is visibly doing this tick and where it is headed."""

    state: AIState
    target: Optional[Position] = None


# Base priorities
FORAGE_BASE = 60
SOCIALIZE_BASE = 50
EXPLORE_BASE = 45
ASPIRATION_WORK_PRIORITY = 55
EXPLORER_PRIORITY = 50
HERMIT_PRIORITY = 45
DIG_BASE = 40
BUILD_BASE = 45
CRAFT_BASE = 40
SKILL_WEIGHT = 20
IDLE_PRIORITY = 10
FIGHT_PRIORITY = 100

DEFAULT_SKILL = 0.3


def _pos(x: int, y: int) -> Position:
    return Position(x=x, y=y)


class DecisionEngine:
    """Chooses and advances tasks against the supplied world collaborators."""

    def __init__(
        self,
        services: WorldServices,
        *,
        settings: Optional[DecisionSettings] = None,
        rng: Optional[random.Random] = None,
        bus: Optional[EventBus] = None,
    ) -> None:
        self.services = services
        self.settings = settings or DecisionSettings()
        self.rng = rng or random.Random()
        self.bus = bus

        self._start_handlers: Dict[Type, Callable[[Agent, WorldState, Task], Decision]] = {
            ForageTask: self._start_forage,
            SocializeTask: self._start_socialize,
            ExploreTask: self._start_explore,
            DigTask: self._start_dig,
            BuildTask: self._start_build,
            CraftTask: self._start_craft,
            FightTask: self._start_fight,
            IdleTask: self._start_idle,
        }
        self._work_handlers: Dict[Type, Callable[[Agent, WorldState, Task], Decision]] = {
            ForageTask: self._work_forage,
            SocializeTask: self._work_socialize,
            ExploreTask: self._work_explore,
            DigTask: self._work_dig,
            BuildTask: self._work_build,
            CraftTask: self._work_craft,
            FightTask: self._work_fight,
            IdleTask: self._work_idle,
        }

    # =============================
    # Entry point
    # =============================

    def decide(self, agent: Agent, world: WorldState) -> Decision:
        """Advance ``agent`` by one tick and record the resulting state on it."""
        agent.ticks_since_decision += 1
        decision = self._decide(agent, world)
        agent.state = decision.state
        agent.target = decision.target
        return decision

    def _decide(self, agent: Agent, world: WorldState) -> Decision:
        threat = self.services.combat.nearest_threat(agent, world)
        if threat is not None:
            return self._combat_response(agent, world, threat)

        if agent.state == AIState.FLEEING_COMBAT:
            return self._continue_fleeing(agent, world)

        if is_critical(agent):
            return self._decide_critical(agent, world)

        if agent.current_task is not None and agent.ticks_since_decision < self.settings.reconsider_interval:
            return self._continue_task(agent, world)

        agent.ticks_since_decision = 0
        return self.find_new_task(agent, world)

    def _continue_task(self, agent: Agent, world: WorldState) -> Decision:
        task = agent.current_task
        handler = self._work_handlers.get(type(task))
        if handler is None:
            raise TypeError(f"No work handler registered for {type(task).__name__}")
        return handler(agent, world, task)

    # =============================
    # Task selection
    # =============================

    def rank_candidates(self, agent: Agent, world: WorldState) -> List[Task]:
        """Every candidate task, best first.

        The sort is stable, so on equal priority the candidate generated
        first wins: needs before aspirations before plain work before idle.
        """
        candidates: List[Task] = []
        services = self.services
        pressing = most_pressing_need(agent)
        urgency = pressing.urgency if pressing is not None else 0.0

        if is_hungry(agent):
            candidates.append(
                ForageTask(
                    priority=FORAGE_BASE + (agent.hunger - FORAGE_BASE),
                    target=services.food.nearest_food(agent),
                )
            )

        if (pressing is not None and pressing.need == "social") or needs_social(agent):
            partner = self.find_social_target(agent, world)
            if partner is not None:
                candidates.append(SocializeTask(priority=SOCIALIZE_BASE + urgency, target_id=partner.agent_id))

        if pressing is not None and pressing.need == "exploration":
            candidates.append(ExploreTask(priority=EXPLORE_BASE + urgency))

        candidates.extend(self._aspiration_work(agent, world))

        designation = services.construction.nearest_dig(agent)
        if designation is not None:
            mining = agent.skills.get("mining", DEFAULT_SKILL)
            candidates.append(DigTask(priority=DIG_BASE + mining * SKILL_WEIGHT, target=designation))

        project = services.construction.nearest_project(agent)
        if project is not None:
            skill = max(agent.skills.get("masonry", DEFAULT_SKILL), agent.skills.get("mining", DEFAULT_SKILL))
            candidates.append(BuildTask(priority=BUILD_BASE + skill * SKILL_WEIGHT, target=project))

        job = services.crafting.best_job(agent)
        if job is not None:
            crafting = agent.skills.get("crafting", DEFAULT_SKILL)
            candidates.append(CraftTask(priority=CRAFT_BASE + crafting * SKILL_WEIGHT, target=job))

        candidates.append(IdleTask(priority=IDLE_PRIORITY))
        candidates.sort(key=lambda task: task.priority, reverse=True)
        return candidates

    def _aspiration_work(self, agent: Agent, world: WorldState) -> List[Task]:
        services = self.services
        aspiration = agent.aspiration
        if aspiration == Aspiration.MASTER_CRAFTSMAN:
            job = services.crafting.best_job(agent)
            if job is not None:
                return [CraftTask(priority=ASPIRATION_WORK_PRIORITY, target=job)]
        elif aspiration == Aspiration.ARCHITECT:
            designation = services.construction.nearest_dig(agent)
            if designation is not None:
                return [DigTask(priority=ASPIRATION_WORK_PRIORITY, target=designation)]
        elif aspiration == Aspiration.EXPLORER:
            return [ExploreTask(priority=EXPLORER_PRIORITY)]
        elif aspiration == Aspiration.SOCIAL_BUTTERFLY:
            partner = self.find_social_target(agent, world)
            if partner is not None:
                return [SocializeTask(priority=ASPIRATION_WORK_PRIORITY, target_id=partner.agent_id)]
        elif aspiration == Aspiration.HERMIT:
            return [ExploreTask(priority=HERMIT_PRIORITY, avoid_social=True)]
        elif aspiration == Aspiration.LEADER:
            project = services.construction.nearest_project(agent)
            if project is not None:
                return [BuildTask(priority=ASPIRATION_WORK_PRIORITY, target=project)]
        return []

    def find_new_task(self, agent: Agent, world: WorldState) -> Decision:
        chosen = self.rank_candidates(agent, world)[0]
        agent.current_task = chosen
        if is_verbose():
            log_deterministic(
                f"  {LOG_TAG_DETERMINISTIC} [Decide] {agent.name} -> {chosen.kind} ({chosen.priority:.1f})"
            )
        handler = self._start_handlers.get(type(chosen))
        if handler is None:
            raise TypeError(f"No start handler registered for {type(chosen).__name__}")
        return handler(agent, world, chosen)

    def candidate_summary(self, agent: Agent, world: WorldState) -> List[str]:
        """Human-readable ranking for inspection panels."""
        return [
            f"{describe_task(task)} ({task.priority:.0f})"
            for task in self.rank_candidates(agent, world)
        ]

    def find_social_target(self, agent: Agent, world: WorldState) -> Optional[Agent]:
        """Best partner by ``-dist * 0.5 + affinity * 0.3``, +20 if they are lonely too."""
        best: Optional[Agent] = None
        best_score = -math.inf
        for other in world.living_dwarves():
            if other.agent_id == agent.agent_id:
                continue
            relationship = agent.relationships.get(other.agent_id)
            affinity = relationship.affinity if relationship is not None else 0
            score = -manhattan(agent, other) * 0.5 + affinity * 0.3 + (20 if needs_social(other) else 0)
            if score > best_score:
                best, best_score = other, score
        return best

    # =============================
    # Start handlers
    # =============================

    def _start_forage(self, agent: Agent, world: WorldState, task: ForageTask) -> Decision:
        food = task.target or self.services.food.nearest_food(agent)
        return Decision(AIState.SEEKING_FOOD, _pos(food.x, food.y) if food is not None else None)

    def _start_socialize(self, agent: Agent, world: WorldState, task: SocializeTask) -> Decision:
        other = world.find_dwarf(task.target_id)
        return Decision(AIState.SEEKING_SOCIAL, other.position if other is not None else None)

    def _start_explore(self, agent: Agent, world: WorldState, task: ExploreTask) -> Decision:
        return self._explore(agent, world, avoid_social=task.avoid_social)

    def _start_dig(self, agent: Agent, world: WorldState, task: DigTask) -> Decision:
        return Decision(AIState.WORKING_DIG, _pos(task.target.x, task.target.y))

    def _start_build(self, agent: Agent, world: WorldState, task: BuildTask) -> Decision:
        return Decision(AIState.WORKING_BUILD, _pos(task.target.x, task.target.y))

    def _start_craft(self, agent: Agent, world: WorldState, task: CraftTask) -> Decision:
        workshop = task.target.workshop
        return Decision(AIState.WORKING_CRAFT, _pos(workshop.x, workshop.y))

    def _start_fight(self, agent: Agent, world: WorldState, task: FightTask) -> Decision:
        return self._work_fight(agent, world, task)

    def _start_idle(self, agent: Agent, world: WorldState, task: IdleTask) -> Decision:
        return self._idle(agent, world)

    # =============================
    # Work handlers
    # =============================

    def _clear_and_replan(self, agent: Agent, world: WorldState) -> Decision:
        agent.current_task = None
        agent.ticks_since_decision = 0
        return self.find_new_task(agent, world)

    def _work_dig(self, agent: Agent, world: WorldState, task: DigTask) -> Decision:
        site = task.target
        if not self.services.construction.is_designated(site.x, site.y):
            return self._clear_and_replan(agent, world)

        target = _pos(site.x, site.y)
        if manhattan(agent, site) <= self.settings.work_range:
            if self.services.construction.work_on_dig(agent, site, world):
                agent.tiles_dug += 1
                satisfy(agent, "creativity", 0.3)
                agent.current_task = None
                world.add_log(f"{agent.name} finished digging at ({site.x}, {site.y})")
            return Decision(AIState.WORKING_DIG, target)

        self.services.movement.move_toward(agent, target, world)
        return Decision(AIState.WORKING_DIG, target)

    def _work_build(self, agent: Agent, world: WorldState, task: BuildTask) -> Decision:
        project = task.target
        if not self.services.construction.has_project(project.project_id):
            return self._clear_and_replan(agent, world)

        target = _pos(project.x, project.y)
        if manhattan(agent, project) <= self.settings.work_range:
            if self.services.construction.work_on_project(agent, project):
                satisfy(agent, "creativity", 0.8)
                agent.current_task = None
                world.add_log(f"{agent.name} completed a {project.structure_type}")
            return Decision(AIState.WORKING_BUILD, target)

        self.services.movement.move_toward(agent, target, world)
        return Decision(AIState.WORKING_BUILD, target)

    def _work_craft(self, agent: Agent, world: WorldState, task: CraftTask) -> Decision:
        job = task.target
        if not self.services.crafting.has_job(job.job_id):
            return self._clear_and_replan(agent, world)

        workshop = job.workshop
        target = _pos(workshop.x, workshop.y)
        # Workshops occupy a footprint, so one extra tile of reach.
        if manhattan(agent, workshop) <= self.settings.work_range + 1:
            product = self.services.crafting.work_on_job(agent, job)
            if product is not None:
                agent.items_crafted += 1
                satisfy(agent, "creativity", 0.8)
                agent.current_task = None
                add_memory(agent, "event", f"Crafted a {product}", world.tick)
                world.add_log(f"{agent.name} crafted a {product}")
            return Decision(AIState.WORKING_CRAFT, target)

        self.services.movement.move_toward(agent, target, world)
        return Decision(AIState.WORKING_CRAFT, target)

    def _work_socialize(self, agent: Agent, world: WorldState, task: SocializeTask) -> Decision:
        other = world.find_dwarf(task.target_id)
        if other is None or not other.alive:
            return self._clear_and_replan(agent, world)

        dist = manhattan(agent, other)
        if dist <= self.settings.social_range:
            satisfy(agent, "social", 0.15)
            agent.mood = agent.mood + 1
            bump_skill(agent, "social", self.settings.social_skill_chance, self.rng)
            # Close enough; stay put rather than crowd them.
            if dist >= 2:
                self.services.movement.move_toward(agent, other.position, world)
            return Decision(AIState.SOCIALIZING, other.position)

        self.services.movement.move_toward(agent, other.position, world)
        return Decision(AIState.SEEKING_SOCIAL, other.position)

    def _work_explore(self, agent: Agent, world: WorldState, task: ExploreTask) -> Decision:
        satisfy(agent, "exploration", 0.05)
        terrain = world.map.tile_type(agent.x, agent.y)
        if terrain is not None and terrain not in agent.memory.visited_areas:
            agent.memory.visited_areas.add(terrain)
            satisfy(agent, "exploration", 0.3)
        return self._explore(agent, world, avoid_social=task.avoid_social)

    def _work_forage(self, agent: Agent, world: WorldState, task: ForageTask) -> Decision:
        food = self.services.food.nearest_food(agent)
        if food is None:
            agent.current_task = None
            return Decision(AIState.WANDERING)

        if manhattan(agent, food) <= 1:
            self._eat(agent, world, food)
            if not is_hungry(agent):
                agent.current_task = None
            return Decision(AIState.EATING, _pos(food.x, food.y))

        target = _pos(food.x, food.y)
        self.services.movement.move_toward(agent, target, world)
        return Decision(AIState.SEEKING_FOOD, target)

    def _work_idle(self, agent: Agent, world: WorldState, task: IdleTask) -> Decision:
        return self._idle(agent, world)

    def _work_fight(self, agent: Agent, world: WorldState, task: FightTask) -> Decision:
        combat = self.services.combat
        hostile = combat.find_hostile(task.target_id, world)
        if hostile is None:
            return self._clear_and_replan(agent, world)

        target = _pos(hostile.x, hostile.y)
        if combat.in_attack_range(agent, hostile):
            if combat.attack(agent, hostile):
                agent.mood = agent.mood + 2
                if not hostile.alive:
                    world.add_log(f"{agent.name} slew the {hostile.name}")
            return Decision(AIState.FIGHTING, target)

        self.services.movement.move_toward(agent, target, world)
        return Decision(AIState.FIGHTING, target)

    # =============================
    # Shared behaviours
    # =============================

    def _eat(self, agent: Agent, world: WorldState, food: FoodSource) -> bool:
        if not self.services.food.eat(agent, food):
            return False
        if self.bus is not None:
            payload = {"dwarf_id": agent.agent_id, "food_id": food.food_id, "x": food.x, "y": food.y}
            self.bus.emit(EventType.FOOD_FOUND, payload)
            if food.amount <= 0:
                self.bus.emit(EventType.FOOD_DEPLETED, payload)
        return True

    def _explore(self, agent: Agent, world: WorldState, *, avoid_social: bool = False) -> Decision:
        low, high = self.settings.explore_range
        distance = self.rng.randrange(low, high + 1)
        angle = self.rng.random() * math.pi * 2

        if avoid_social:
            others = [
                other for other in world.living_dwarves()
                if other.agent_id != agent.agent_id and manhattan(agent, other) <= self.settings.social_range
            ]
            if others:
                cx = sum(other.x for other in others) / len(others)
                cy = sum(other.y for other in others) / len(others)
                if (agent.x, agent.y) != (cx, cy):
                    angle = math.atan2(agent.y - cy, agent.x - cx)

        tile_map = world.map
        x = math.floor(agent.x + math.cos(angle) * distance)
        y = math.floor(agent.y + math.sin(angle) * distance)
        x = max(1, min(tile_map.width - 2, x))
        y = max(1, min(tile_map.height - 2, y))
        target = _pos(x, y)
        self.services.movement.move_toward(agent, target, world)
        return Decision(AIState.EXPLORING, target)

    def _idle(self, agent: Agent, world: WorldState) -> Decision:
        agent.mood = agent.mood + 0.3
        satisfy(agent, "tranquility", 0.05)
        if self.rng.random() < self.settings.idle_wander_chance:
            self.services.movement.wander(agent, world)
            return Decision(AIState.WANDERING)
        return Decision(AIState.IDLE)

    def _decide_critical(self, agent: Agent, world: WorldState) -> Decision:
        agent.mood = agent.mood - 1
        food = self.services.food.nearest_food(agent)
        if food is None:
            self.services.movement.wander(agent, world)
            return Decision(AIState.WANDERING)
        if manhattan(agent, food) <= 1:
            self._eat(agent, world, food)
            return Decision(AIState.EATING, _pos(food.x, food.y))
        target = _pos(food.x, food.y)
        self.services.movement.move_toward(agent, target, world)
        return Decision(AIState.SEEKING_FOOD, target)

    # =============================
    # Combat
    # =============================

    def _combat_response(self, agent: Agent, world: WorldState, threat: Hostile) -> Decision:
        combat = self.services.combat
        bravery = agent.personality.bravery
        ratio = agent.hp_ratio

        if combat.should_flee(agent) or (ratio < 0.4 and bravery < 0.4):
            return self._flee(agent, world)

        threat_ratio = threat.hp / threat.max_hp if threat.max_hp > 0 else 0.0
        if bravery > 0.6 or ratio > 0.6 or ratio > threat_ratio:
            task = agent.current_task
            if not isinstance(task, FightTask) or task.target_id != threat.hostile_id:
                task = FightTask(priority=FIGHT_PRIORITY, target_id=threat.hostile_id)
                agent.current_task = task
            return self._work_fight(agent, world, task)

        return self._flee(agent, world)

    def _flee(self, agent: Agent, world: WorldState) -> Decision:
        agent.current_task = None
        safe = self.services.combat.safe_position(agent, world)
        if safe is not None:
            self.services.movement.move_toward(agent, safe, world)
        return Decision(AIState.FLEEING_COMBAT, safe)

    def _continue_fleeing(self, agent: Agent, world: WorldState) -> Decision:
        threat = self.services.combat.nearest_threat(agent, world)
        if threat is None or manhattan(agent, threat) > self.settings.safe_distance:
            return self._clear_and_replan(agent, world)
        return self._flee(agent, world)


__all__ = [
    "Decision",
    "DecisionEngine",
    "DecisionSettings",
]
