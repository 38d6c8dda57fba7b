"""Dwarf factory: names, ids, personality, skills, and aspiration."""

from __future__ import annotations

import itertools
import random
from typing import Dict, Iterator, Optional

from .schemas import PERSONALITY_TRAITS, Agent, Fulfillment, Personality
from .tasks import generate_aspiration


DWARF_NAMES = (
    "Urist", "Bomrek", "Fikod", "Kadol", "Morul",
    "Thikut", "Zefon", "Datan", "Erith", "Aban",
    "Lokum", "Ingiz", "Asob", "Eshtan", "Dodok",
    "Rigoth", "Litast", "Sibrek", "Zasit", "Tholtig",
)

# Fulfillment need -> (correlated trait, threshold for the +20 starting bonus)
_FULFILLMENT_TRAIT_BONUS = {
    "social": ("friendliness", 0.6),
    "exploration": ("curiosity", 0.6),
    "creativity": ("creativity", 0.6),
    "tranquility": ("melancholy", 0.5),
}


class NameRegistry:
    """Issues sequential ids and cycles through the dwarf name pool.

    One registry per colony keeps ids unique without module-level counters.
    """

    def __init__(self, names=DWARF_NAMES, *, prefix: str = "dwarf") -> None:
        self._names: Iterator[str] = itertools.cycle(names)
        self._ids = itertools.count()
        self.prefix = prefix

    def next_name(self) -> str:
        return next(self._names)

    def next_id(self) -> str:
        return f"{self.prefix}-{next(self._ids)}"


def generate_personality(rng: Optional[random.Random] = None) -> Personality:
    """Traits centred on 0.3-0.7, with a 30% chance of an extra boost each."""
    rng = rng or random.Random()
    values: Dict[str, float] = {}
    for trait in PERSONALITY_TRAITS:
        value = 0.3 + rng.random() * 0.4
        if rng.random() > 0.7:
            value += rng.random() * 0.3
        values[trait] = min(1.0, value)
    return Personality(**values)


def generate_fulfillment(personality: Personality) -> Fulfillment:
    """Start every need at 50, +20 where the matching trait is pronounced."""
    levels: Dict[str, float] = {}
    for need, (trait, threshold) in _FULFILLMENT_TRAIT_BONUS.items():
        levels[need] = 50.0 + (20.0 if personality.trait(trait) > threshold else 0.0)
    return Fulfillment(**levels)


def generate_skills(personality: Personality, rng: Optional[random.Random] = None) -> Dict[str, float]:
    rng = rng or random.Random()
    return {
        "mining": 0.2 + personality.stubbornness * 0.2,
        "masonry": 0.2 + personality.patience * 0.2,
        "crafting": 0.2 + personality.creativity * 0.2,
        "melee": 0.2 + rng.random() * 0.3,
        "social": 0.2 + personality.friendliness * 0.2,
    }


def create_dwarf(
    x: int,
    y: int,
    *,
    name: Optional[str] = None,
    registry: Optional[NameRegistry] = None,
    rng: Optional[random.Random] = None,
) -> Agent:
    """Build a fresh dwarf with randomized personality and derived fields."""
    rng = rng or random.Random()
    registry = registry or NameRegistry()
    personality = generate_personality(rng)
    return Agent(
        agent_id=registry.next_id(),
        name=name or registry.next_name(),
        x=x,
        y=y,
        hunger=0.0,
        mood=float(70 + rng.randrange(30)),
        personality=personality,
        fulfillment=generate_fulfillment(personality),
        skills=generate_skills(personality, rng),
        aspiration=generate_aspiration(personality, rng),
    )


__all__ = [
    "DWARF_NAMES",
    "NameRegistry",
    "generate_personality",
    "generate_fulfillment",
    "generate_skills",
    "create_dwarf",
]
