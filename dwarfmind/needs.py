"""Needs model: hunger thresholds, fulfillment decay/satisfy, and mood.

Every write goes through the clamping validators on :class:`Agent` and
:class:`Fulfillment`, so these helpers never need to clamp themselves except
where the rule itself caps (hunger is capped below a lethal value).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Optional

from .schemas import FULFILLMENT_NEEDS_ORDER, Agent, MemoryEntry, MemoryKind


HUNGER_SEEK_THRESHOLD = 60
HUNGER_CRITICAL = 85
# Hunger only degrades decisions; it is never allowed to reach a lethal value.
HUNGER_CAP = 95

URGENCY_THRESHOLD = 30.0
HIGH_TRAIT = 0.6
MOOD_SATISFY_SHARE = 0.3


@dataclass(frozen=True)
class NeedDefinition:
    """Decay/satisfy tuning for one fulfillment dimension."""

    name: str
    decay_rate: float
    satisfy_amount: float
    trait: str
    boost_threshold: float = HIGH_TRAIT


FULFILLMENT_NEEDS: Dict[str, NeedDefinition] = {
    "social": NeedDefinition("social", decay_rate=0.3, satisfy_amount=25, trait="friendliness"),
    "exploration": NeedDefinition("exploration", decay_rate=0.2, satisfy_amount=15, trait="curiosity"),
    "creativity": NeedDefinition("creativity", decay_rate=0.15, satisfy_amount=20, trait="creativity"),
    "tranquility": NeedDefinition(
        "tranquility", decay_rate=0.1, satisfy_amount=30, trait="melancholy", boost_threshold=0.5
    ),
}


@dataclass(frozen=True)
class PressingNeed:
    need: str
    urgency: float


# =============================
# Hunger
# =============================

def is_hungry(agent: Agent) -> bool:
    return agent.hunger >= HUNGER_SEEK_THRESHOLD


def is_critical(agent: Agent) -> bool:
    return agent.hunger >= HUNGER_CRITICAL


def raise_hunger(agent: Agent, amount: float) -> None:
    """Add hunger without ever crossing :data:`HUNGER_CAP`."""
    if agent.hunger >= HUNGER_CAP:
        return
    agent.hunger = min(HUNGER_CAP, agent.hunger + amount)


# =============================
# Fulfillment
# =============================

def _trait(agent: Agent, need: NeedDefinition) -> float:
    return agent.personality.trait(need.trait)


def decay_fulfillment(agent: Agent) -> None:
    """Subtract each need's decay rate, x1.5 when the correlated trait is high.

    Levels floor at 0, so calling this on an exhausted need is a no-op.
    """
    for name in FULFILLMENT_NEEDS_ORDER:
        need = FULFILLMENT_NEEDS[name]
        rate = need.decay_rate
        if _trait(agent, need) > need.boost_threshold:
            rate *= 1.5
        agent.fulfillment.set_level(name, agent.fulfillment.level(name) - rate)


def satisfy(agent: Agent, need: str, multiplier: float = 1.0) -> float:
    """Raise ``need`` by ``satisfy_amount * multiplier`` and lift mood.

    Mood rises by ``floor(0.3 * amount)``. Returns the amount applied before
    capping.
    """
    definition = FULFILLMENT_NEEDS.get(need)
    if definition is None:
        raise KeyError(f"Unknown fulfillment need '{need}'")
    amount = definition.satisfy_amount * multiplier
    agent.fulfillment.set_level(need, agent.fulfillment.level(need) + amount)
    mood_gain = math.floor(amount * MOOD_SATISFY_SHARE)
    if mood_gain:
        adjust_mood(agent, mood_gain)
    return amount


def most_pressing_need(agent: Agent) -> Optional[PressingNeed]:
    """Need with the highest ``(100 - level) * (0.5 + trait)`` above 30.

    Needs are scanned in the fixed order social, exploration, creativity,
    tranquility; on equal urgency the earlier need wins.
    """
    best: Optional[PressingNeed] = None
    for name in FULFILLMENT_NEEDS_ORDER:
        need = FULFILLMENT_NEEDS[name]
        urgency = (100 - agent.fulfillment.level(name)) * (0.5 + _trait(agent, need))
        if best is None or urgency > best.urgency:
            best = PressingNeed(need=name, urgency=urgency)
    if best is None or best.urgency <= URGENCY_THRESHOLD:
        return None
    return best


def needs_social(agent: Agent) -> bool:
    threshold = 50 if agent.personality.friendliness > HIGH_TRAIT else 35
    return agent.fulfillment.social < threshold


def needs_exploration(agent: Agent) -> bool:
    threshold = 50 if agent.personality.curiosity > HIGH_TRAIT else 35
    return agent.fulfillment.exploration < threshold


# =============================
# Mood & memory
# =============================

def adjust_mood(agent: Agent, delta: float) -> None:
    """Apply a mood change with personality resilience.

    Optimists lose 20% less from bad news; melancholic dwarves gain 20% less
    from good news.
    """
    personality = agent.personality
    if delta < 0 and personality.optimism > 0.7:
        delta *= 0.8
    elif delta > 0 and personality.melancholy > 0.7:
        delta *= 0.8
    agent.mood = agent.mood + delta


def add_memory(agent: Agent, kind: MemoryKind, content: str, tick: int) -> MemoryEntry:
    return agent.memory.remember(kind, content, tick)


def dominant_traits(agent: Agent, limit: int = 3) -> List[str]:
    """Up to ``limit`` traits above 0.6, strongest first; ``['balanced']`` otherwise."""
    ranked = sorted(agent.personality.as_dict().items(), key=lambda item: item[1], reverse=True)
    traits = [name for name, value in ranked[:limit] if value > HIGH_TRAIT]
    return traits or ["balanced"]


__all__ = [
    "HUNGER_SEEK_THRESHOLD",
    "HUNGER_CRITICAL",
    "HUNGER_CAP",
    "FULFILLMENT_NEEDS",
    "NeedDefinition",
    "PressingNeed",
    "is_hungry",
    "is_critical",
    "raise_hunger",
    "decay_fulfillment",
    "satisfy",
    "most_pressing_need",
    "needs_social",
    "needs_exploration",
    "adjust_mood",
    "add_memory",
    "dominant_traits",
]
