"""Canned thoughts and speech used whenever generation yields nothing usable.

Everything here is synchronous and always returns a non-empty string, so the
cognition engines can collapse any failed generation to a line of dialogue.
"""

from __future__ import annotations

import random
import re
from typing import Dict, Optional, Sequence, Tuple

from ..schemas import Agent


THOUGHT_FALLBACKS: Dict[str, Tuple[str, ...]] = {
    "meeting": (
        "Oh, someone else is here.",
        "I wonder what they want.",
        "Company at last.",
        "Should I say hello?",
        "Interesting timing.",
    ),
    "food_found": (
        "Finally, something to eat!",
        "This looks edible.",
        "I should remember this spot.",
        "Food at last.",
    ),
    "hunger": (
        "My stomach is growling...",
        "I need to find food soon.",
        "Getting hungry here.",
        "When did I last eat?",
    ),
    "observation": (
        "Interesting place.",
        "I wonder what today will bring.",
        "Just another moment.",
        "The air feels different here.",
    ),
}

SPEECH_FALLBACKS: Dict[str, Tuple[str, ...]] = {
    "friendliness": ("Great to see you!", "Hello, friend!", "How are you?"),
    "humor": ("So, come here often?", "Nice weather for exploring.", "Fancy meeting you here."),
    "melancholy": ("Oh. Hello.", "I suppose we meet again.", "Hmm."),
    "generic": ("Hey there.", "How goes it?", "Hello.", "Hmm.", "What do you think of this place?"),
}

# Speech flavour is picked by the first trait in this order above the threshold.
_SPEECH_TRAIT_ORDER = ("friendliness", "humor", "melancholy")
_SPEECH_TRAIT_THRESHOLD = 0.7

# Event types that share a fallback pool with another.
_THOUGHT_ALIASES = {
    "hunger_threshold": "hunger",
    "new_terrain": "observation",
    "mood_shift": "observation",
    "food_depleted": "food_found",
}


def _pick(options: Sequence[str], rng: Optional[random.Random]) -> str:
    chooser = rng or random
    return chooser.choice(options)


def fallback_thought(agent: Agent, event_type: str, rng: Optional[random.Random] = None) -> str:
    """Line from the pool for ``event_type``; unknown types use ``observation``."""
    key = _THOUGHT_ALIASES.get(event_type, event_type)
    options = THOUGHT_FALLBACKS.get(key, THOUGHT_FALLBACKS["observation"])
    return _pick(options, rng)


def speech_flavor(agent: Agent) -> str:
    personality = agent.personality
    for trait in _SPEECH_TRAIT_ORDER:
        if personality.trait(trait) > _SPEECH_TRAIT_THRESHOLD:
            return trait
    return "generic"


def fallback_speech(agent: Agent, rng: Optional[random.Random] = None) -> str:
    """Line flavoured by the agent's dominant social trait."""
    return _pick(SPEECH_FALLBACKS[speech_flavor(agent)], rng)


_NAME_PREFIX = re.compile(r"^\w+:\s*")
_STAGE_DIRECTION = re.compile(r"\*[^*]*\*")
_WHITESPACE = re.compile(r"\s+")
_QUOTES = "\"'“”‘’"


def clean_response(text: Optional[str]) -> Optional[str]:
    """Normalize raw model output into a single spoken/thought line.

    Trims, strips wrapping quotes and a leading ``Name:`` prefix, drops
    ``*stage directions*``, and collapses whitespace. Returns None when
    nothing usable remains.
    """
    if not text:
        return None
    cleaned = text.strip()
    cleaned = cleaned.strip(_QUOTES).strip()
    cleaned = _NAME_PREFIX.sub("", cleaned)
    cleaned = _STAGE_DIRECTION.sub("", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    cleaned = cleaned.strip(_QUOTES).strip()
    return cleaned or None


__all__ = [
    "THOUGHT_FALLBACKS",
    "SPEECH_FALLBACKS",
    "fallback_thought",
    "fallback_speech",
    "speech_flavor",
    "clean_response",
]
