"""Capability contracts the decision engine consumes, plus in-memory versions.

The decision engine only knows these narrow protocols: "find nearest X",
"work on X one step and report completion", "move toward a target". The
in-memory implementations below are what scenarios and tests wire in; a
richer world can supply its own objects with the same methods.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Protocol

from .helpers import flee_position, manhattan, next_step_toward, random_adjacent_walkable
from .schemas import (
    BuildProject,
    CraftingJob,
    DigDesignation,
    FoodSource,
    Hostile,
    Position,
    Tile,
)

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from dwarfmind.schemas import Agent, WorldState


HUNGER_RESTORE = 30
THREAT_RANGE = 8
ATTACK_RANGE = 1
FLEE_HP_THRESHOLD = 0.3
FLEE_DISTANCE = 10


# =============================
# Protocols
# =============================

class FoodService(Protocol):
    def nearest_food(self, agent: "Agent") -> Optional[FoodSource]: ...

    def eat(self, agent: "Agent", food: FoodSource) -> bool: ...


class ConstructionService(Protocol):
    def nearest_dig(self, agent: "Agent") -> Optional[DigDesignation]: ...

    def has_designations(self) -> bool: ...

    def is_designated(self, x: int, y: int) -> bool: ...

    def work_on_dig(self, agent: "Agent", designation: DigDesignation, world: "WorldState") -> bool: ...

    def nearest_project(self, agent: "Agent") -> Optional[BuildProject]: ...

    def has_project(self, project_id: str) -> bool: ...

    def work_on_project(self, agent: "Agent", project: BuildProject) -> bool: ...


class CraftingService(Protocol):
    def best_job(self, agent: "Agent") -> Optional[CraftingJob]: ...

    def has_job(self, job_id: str) -> bool: ...

    def work_on_job(self, agent: "Agent", job: CraftingJob) -> Optional[str]: ...


class CombatService(Protocol):
    def nearest_threat(self, agent: "Agent", world: "WorldState") -> Optional[Hostile]: ...

    def find_hostile(self, hostile_id: str, world: "WorldState") -> Optional[Hostile]: ...

    def should_flee(self, agent: "Agent") -> bool: ...

    def safe_position(self, agent: "Agent", world: "WorldState") -> Optional[Position]: ...

    def in_attack_range(self, agent: "Agent", hostile: Hostile) -> bool: ...

    def attack(self, agent: "Agent", hostile: Hostile) -> bool: ...


class MovementService(Protocol):
    def move_toward(self, agent: "Agent", target: Position, world: "WorldState") -> None: ...

    def wander(self, agent: "Agent", world: "WorldState") -> None: ...


@dataclass
class WorldServices:
    """Bundle of collaborators handed to the decision engine."""

    food: FoodService
    construction: ConstructionService
    crafting: CraftingService
    combat: CombatService
    movement: MovementService


# =============================
# In-memory implementations
# =============================

def bump_skill(agent: "Agent", skill: str, chance: float, rng: random.Random) -> None:
    """Roll for a permanent +0.02 to ``skill`` (capped at 1)."""
    if rng.random() < chance:
        current = agent.skills.get(skill, 0.2)
        agent.skills[skill] = min(1.0, current + 0.02)


class FoodStore:
    """Owns the colony's food sources."""

    def __init__(self, sources: Optional[List[FoodSource]] = None) -> None:
        self.sources: List[FoodSource] = list(sources or [])

    def add(self, food: FoodSource) -> FoodSource:
        self.sources.append(food)
        return food

    def available(self) -> List[FoodSource]:
        return [food for food in self.sources if food.amount > 0]

    def nearest_food(self, agent: "Agent") -> Optional[FoodSource]:
        nearest: Optional[FoodSource] = None
        nearest_dist = None
        for food in self.available():
            dist = manhattan(agent, food)
            if nearest_dist is None or dist < nearest_dist:
                nearest, nearest_dist = food, dist
        return nearest

    def eat(self, agent: "Agent", food: FoodSource) -> bool:
        """Consume one serving; depleted sources are removed."""
        if food.amount <= 0 or all(f is not food for f in self.sources):
            return False
        food.amount -= 1
        agent.hunger = max(0.0, agent.hunger - HUNGER_RESTORE)
        if food.amount <= 0:
            self.sources = [f for f in self.sources if f is not food]
        return True


class ConstructionBoard:
    """Dig designations and build projects waiting for labour."""

    def __init__(self, *, rng: Optional[random.Random] = None) -> None:
        self.designations: Dict[tuple[int, int], DigDesignation] = {}
        self.projects: Dict[str, BuildProject] = {}
        self.completed_structures: List[BuildProject] = []
        self.rng = rng or random.Random()

    # -- digging ---------------------------------------------------------
    def designate_dig(self, x: int, y: int, *, work_required: float = 20.0) -> DigDesignation:
        designation = DigDesignation(x=x, y=y, work_required=work_required)
        self.designations[(x, y)] = designation
        return designation

    def has_designations(self) -> bool:
        return bool(self.designations)

    def is_designated(self, x: int, y: int) -> bool:
        return (x, y) in self.designations

    def nearest_dig(self, agent: "Agent") -> Optional[DigDesignation]:
        if not self.designations:
            return None
        return min(self.designations.values(), key=lambda d: manhattan(agent, d))

    def work_on_dig(self, agent: "Agent", designation: DigDesignation, world: "WorldState") -> bool:
        current = self.designations.get((designation.x, designation.y))
        if current is None:
            return False
        mining = agent.skills.get("mining", 0.3)
        current.progress += 1 + mining * 2
        if current.progress < current.work_required:
            return False

        del self.designations[(current.x, current.y)]
        tile = world.map.tile_at(current.x, current.y)
        if tile is not None:
            index = current.y * world.map.width + current.x
            world.map.tiles[index] = Tile(type="floor", metadata={"dug": "true"})
        bump_skill(agent, "mining", 0.15, self.rng)
        return True

    # -- building --------------------------------------------------------
    def add_project(self, project: BuildProject) -> BuildProject:
        self.projects[project.project_id] = project
        return project

    def has_project(self, project_id: str) -> bool:
        return project_id in self.projects

    def nearest_project(self, agent: "Agent") -> Optional[BuildProject]:
        if not self.projects:
            return None
        return min(self.projects.values(), key=lambda p: manhattan(agent, p))

    def work_on_project(self, agent: "Agent", project: BuildProject) -> bool:
        current = self.projects.get(project.project_id)
        if current is None:
            return False
        skill = max(agent.skills.get("masonry", 0.3), agent.skills.get("mining", 0.3))
        current.progress += 1 + skill * 2
        if current.progress < current.work_required:
            return False

        del self.projects[current.project_id]
        self.completed_structures.append(current)
        bump_skill(agent, "masonry", 0.12, self.rng)
        return True


class CraftingBoard:
    """Pending workshop orders."""

    def __init__(self, *, rng: Optional[random.Random] = None) -> None:
        self.jobs: Dict[str, CraftingJob] = {}
        self.crafted: List[str] = []
        self.rng = rng or random.Random()

    def add_job(self, job: CraftingJob) -> CraftingJob:
        self.jobs[job.job_id] = job
        return job

    def has_job(self, job_id: str) -> bool:
        return job_id in self.jobs

    def best_job(self, agent: "Agent") -> Optional[CraftingJob]:
        """Highest ``skill * 50 - distance`` among jobs open to this agent."""
        best: Optional[CraftingJob] = None
        best_score = None
        for job in self.jobs.values():
            if job.assignee and job.assignee != agent.agent_id:
                continue
            skill = agent.skills.get(job.skill, 0.3)
            score = skill * 50 - manhattan(agent, job.workshop)
            if best_score is None or score > best_score:
                best, best_score = job, score
        return best

    def work_on_job(self, agent: "Agent", job: CraftingJob) -> Optional[str]:
        """Advance the job; return the product name when it completes."""
        current = self.jobs.get(job.job_id)
        if current is None:
            return None
        current.assignee = agent.agent_id
        skill = agent.skills.get(current.skill, 0.3)
        current.progress += 1 + skill * 2
        if current.progress < current.work_required:
            return None

        del self.jobs[current.job_id]
        self.crafted.append(current.product)
        bump_skill(agent, current.skill, 0.2, self.rng)
        return current.product


class SimpleCombat:
    """HP-ratio combat against ``world.hostiles``."""

    def __init__(self, *, rng: Optional[random.Random] = None, threat_range: int = THREAT_RANGE) -> None:
        self.rng = rng or random.Random()
        self.threat_range = threat_range

    def _live_hostiles(self, world: "WorldState") -> List[Hostile]:
        return [h for h in world.hostiles if h.alive]

    def nearest_threat(self, agent: "Agent", world: "WorldState") -> Optional[Hostile]:
        nearest: Optional[Hostile] = None
        nearest_dist = None
        for hostile in self._live_hostiles(world):
            dist = manhattan(agent, hostile)
            if dist > self.threat_range:
                continue
            if nearest_dist is None or dist < nearest_dist:
                nearest, nearest_dist = hostile, dist
        return nearest

    def find_hostile(self, hostile_id: str, world: "WorldState") -> Optional[Hostile]:
        for hostile in self._live_hostiles(world):
            if hostile.hostile_id == hostile_id:
                return hostile
        return None

    def should_flee(self, agent: "Agent") -> bool:
        if agent.max_hp <= 0:
            return False
        return agent.hp / agent.max_hp < FLEE_HP_THRESHOLD

    def safe_position(self, agent: "Agent", world: "WorldState") -> Optional[Position]:
        return flee_position(
            agent,
            self._live_hostiles(world),
            distance=FLEE_DISTANCE,
            tile_map=world.map,
        )

    def in_attack_range(self, agent: "Agent", hostile: Hostile) -> bool:
        return manhattan(agent, hostile) <= ATTACK_RANGE

    def attack(self, agent: "Agent", hostile: Hostile) -> bool:
        if not self.in_attack_range(agent, hostile) or not hostile.alive:
            return False
        melee = agent.skills.get("melee", 0.5)
        variance = 0.6 + self.rng.random() * 0.8
        damage = max(1, int(3 * (0.5 + melee) * variance))
        hostile.hp = max(0.0, hostile.hp - damage)
        return True


@dataclass
class GreedyMovement:
    """BFS-guided single-step movement."""

    rng: random.Random = field(default_factory=random.Random)
    max_path_steps: int = 50

    def move_toward(self, agent: "Agent", target: Position, world: "WorldState") -> None:
        if (agent.x, agent.y) == (target.x, target.y):
            return
        step = next_step_toward(
            world.map,
            (agent.x, agent.y),
            (target.x, target.y),
            max_steps=self.max_path_steps,
        )
        if step is not None:
            agent.x, agent.y = step

    def wander(self, agent: "Agent", world: "WorldState") -> None:
        step = random_adjacent_walkable(world.map, (agent.x, agent.y), self.rng)
        if step is not None:
            agent.x, agent.y = step


def build_default_services(*, rng: Optional[random.Random] = None) -> WorldServices:
    """Wire fresh in-memory collaborators sharing one random source."""
    rng = rng or random.Random()
    return WorldServices(
        food=FoodStore(),
        construction=ConstructionBoard(rng=rng),
        crafting=CraftingBoard(rng=rng),
        combat=SimpleCombat(rng=rng),
        movement=GreedyMovement(rng=rng),
    )
