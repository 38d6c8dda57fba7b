"""Tests for canned lines and response cleanup."""

import random

import pytest

from dwarfmind.cognition.fallbacks import (
    SPEECH_FALLBACKS,
    THOUGHT_FALLBACKS,
    clean_response,
    fallback_speech,
    fallback_thought,
    speech_flavor,
)
from dwarfmind.schemas import Agent, Personality


@pytest.mark.parametrize(
    "raw, expected",
    [
        ('  "Urist: Hello *waves* there"  ', "Hello there"),
        ("Deep   stone,\n deep\tthoughts.", "Deep stone, deep thoughts."),
        ("“The ale is gone.”", "The ale is gone."),
        ("*sighs*", None),
        ("   ", None),
        (None, None),
    ],
)
def test_clean_response(raw, expected):
    assert clean_response(raw) == expected


def test_thought_fallbacks_cover_event_aliases():
    dwarf = Agent(agent_id="d0", name="Urist")
    rng = random.Random(3)

    assert fallback_thought(dwarf, "hunger_threshold", rng) in THOUGHT_FALLBACKS["hunger"]
    assert fallback_thought(dwarf, "food_depleted", rng) in THOUGHT_FALLBACKS["food_found"]
    assert fallback_thought(dwarf, "meeting", rng) in THOUGHT_FALLBACKS["meeting"]
    assert fallback_thought(dwarf, "something_odd", rng) in THOUGHT_FALLBACKS["observation"]


def test_speech_flavor_follows_trait_order():
    assert speech_flavor(Agent(agent_id="a", name="A", personality=Personality(friendliness=0.9, humor=0.9))) == "friendliness"
    assert speech_flavor(Agent(agent_id="b", name="B", personality=Personality(humor=0.8))) == "humor"
    assert speech_flavor(Agent(agent_id="c", name="C", personality=Personality(melancholy=0.75))) == "melancholy"
    assert speech_flavor(Agent(agent_id="d", name="D")) == "generic"


def test_fallback_speech_is_never_empty():
    gloomy = Agent(agent_id="d0", name="Urist", personality=Personality(melancholy=0.9))
    rng = random.Random(5)
    for _ in range(10):
        line = fallback_speech(gloomy, rng)
        assert line in SPEECH_FALLBACKS["melancholy"]
        assert line.strip()
