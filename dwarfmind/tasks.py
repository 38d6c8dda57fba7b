"""Task descriptors, behaviour states, and aspirations.

Each task kind is its own pydantic model carrying a typed target, and the
``Task`` union is discriminated on ``kind`` so a serialized agent round-trips
back to the right class. The decision engine dispatches on the class.
"""

from __future__ import annotations

import random
from enum import Enum
from typing import Annotated, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field

from .environment.schemas import BuildProject, CraftingJob, DigDesignation, FoodSource


class AIState(str, Enum):
    """Visible behaviour state of an agent."""

    IDLE = "idle"
    WANDERING = "wandering"
    SEEKING_FOOD = "seeking_food"
    EATING = "eating"
    SEEKING_SOCIAL = "seeking_social"
    SOCIALIZING = "socializing"
    EXPLORING = "exploring"
    WORKING_DIG = "working_dig"
    WORKING_BUILD = "working_build"
    WORKING_CRAFT = "working_craft"
    HAULING = "hauling"
    FIGHTING = "fighting"
    FLEEING_COMBAT = "fleeing_combat"


class Aspiration(str, Enum):
    """Lifelong behavioural bias chosen once at creation."""

    MASTER_CRAFTSMAN = "master_craftsman"
    ARCHITECT = "architect"
    EXPLORER = "explorer"
    SOCIAL_BUTTERFLY = "social_butterfly"
    HERMIT = "hermit"
    LEADER = "leader"


# =============================
# Task descriptors
# =============================

class _TaskBase(BaseModel):
    priority: float = 0.0


class ForageTask(_TaskBase):
    kind: Literal["forage"] = "forage"
    target: Optional[FoodSource] = None


class SocializeTask(_TaskBase):
    kind: Literal["socialize"] = "socialize"
    target_id: str


class ExploreTask(_TaskBase):
    kind: Literal["explore"] = "explore"
    avoid_social: bool = False


class DigTask(_TaskBase):
    kind: Literal["dig"] = "dig"
    target: DigDesignation


class BuildTask(_TaskBase):
    kind: Literal["build"] = "build"
    target: BuildProject


class CraftTask(_TaskBase):
    kind: Literal["craft"] = "craft"
    target: CraftingJob


class FightTask(_TaskBase):
    kind: Literal["fight"] = "fight"
    target_id: str


class IdleTask(_TaskBase):
    kind: Literal["idle"] = "idle"


Task = Annotated[
    Union[
        ForageTask,
        SocializeTask,
        ExploreTask,
        DigTask,
        BuildTask,
        CraftTask,
        FightTask,
        IdleTask,
    ],
    Field(discriminator="kind"),
]


_TASK_DESCRIPTIONS: Dict[str, str] = {
    "dig": "carving stone",
    "build": "constructing",
    "craft": "crafting",
    "socialize": "chatting",
    "explore": "exploring",
    "forage": "foraging",
    "fight": "fighting",
    "idle": "relaxing",
}


def describe_task(task: Optional[_TaskBase]) -> str:
    """Short gerund phrase for UI panels and prompts."""
    if task is None:
        return "relaxing"
    return _TASK_DESCRIPTIONS.get(getattr(task, "kind", ""), "working")


# =============================
# Aspirations
# =============================

def aspiration_weights(personality) -> Dict[Aspiration, float]:
    """Personality-derived selection weight for each aspiration."""
    p = personality
    return {
        Aspiration.MASTER_CRAFTSMAN: p.creativity + p.patience,
        Aspiration.ARCHITECT: p.creativity + p.bravery,
        Aspiration.EXPLORER: p.curiosity + p.bravery,
        Aspiration.SOCIAL_BUTTERFLY: p.friendliness + p.humor,
        Aspiration.HERMIT: p.melancholy + (1 - p.friendliness),
        Aspiration.LEADER: p.bravery + p.loyalty,
    }


def generate_aspiration(personality, rng: Optional[random.Random] = None) -> Aspiration:
    """Weighted random pick over :func:`aspiration_weights`."""
    rng = rng or random.Random()
    weights = aspiration_weights(personality)
    total = sum(weights.values())
    roll = rng.random() * total
    for aspiration, weight in weights.items():
        roll -= weight
        if roll <= 0:
            return aspiration
    return Aspiration.EXPLORER


__all__ = [
    "AIState",
    "Aspiration",
    "ForageTask",
    "SocializeTask",
    "ExploreTask",
    "DigTask",
    "BuildTask",
    "CraftTask",
    "FightTask",
    "IdleTask",
    "Task",
    "describe_task",
    "aspiration_weights",
    "generate_aspiration",
]
