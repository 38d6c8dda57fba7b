"""Tests for hunger, fulfillment decay/satisfy, and mood helpers."""

from dwarfmind.needs import (
    HUNGER_CAP,
    adjust_mood,
    decay_fulfillment,
    dominant_traits,
    is_critical,
    is_hungry,
    most_pressing_need,
    raise_hunger,
    satisfy,
)
from dwarfmind.schemas import Agent, Fulfillment, Personality


def _dwarf(**kwargs) -> Agent:
    return Agent(agent_id="dwarf-0", name="Urist", **kwargs)


def test_vitals_and_fulfillment_clamp_on_assignment():
    dwarf = _dwarf()
    dwarf.mood = 150
    dwarf.hunger = -20
    dwarf.fulfillment.social = -5
    dwarf.fulfillment.creativity = 250

    assert dwarf.mood == 100
    assert dwarf.hunger == 0
    assert dwarf.fulfillment.social == 0
    assert dwarf.fulfillment.creativity == 100


def test_raise_hunger_never_passes_cap():
    dwarf = _dwarf(hunger=94.5)
    raise_hunger(dwarf, 1.0)
    assert dwarf.hunger == HUNGER_CAP
    raise_hunger(dwarf, 10.0)
    assert dwarf.hunger == HUNGER_CAP
    assert is_hungry(dwarf) and is_critical(dwarf)


def test_decay_uses_faster_rate_for_pronounced_trait():
    dwarf = _dwarf(personality=Personality(friendliness=0.8))
    decay_fulfillment(dwarf)

    assert abs(dwarf.fulfillment.social - (50 - 0.45)) < 1e-9
    assert abs(dwarf.fulfillment.exploration - (50 - 0.2)) < 1e-9
    assert abs(dwarf.fulfillment.tranquility - (50 - 0.1)) < 1e-9


def test_tranquility_decays_faster_above_half_melancholy():
    gloomy = _dwarf(personality=Personality(melancholy=0.55))
    steady = _dwarf(personality=Personality(melancholy=0.5))
    decay_fulfillment(gloomy)
    decay_fulfillment(steady)

    assert abs(gloomy.fulfillment.tranquility - (50 - 0.15)) < 1e-9
    assert abs(steady.fulfillment.tranquility - (50 - 0.1)) < 1e-9


def test_decay_at_floor_is_a_no_op():
    empty = Fulfillment(social=0, exploration=0, creativity=0, tranquility=0)
    dwarf = _dwarf(fulfillment=empty)
    decay_fulfillment(dwarf)
    decay_fulfillment(dwarf)

    assert dwarf.fulfillment.model_dump() == {
        "social": 0.0,
        "exploration": 0.0,
        "creativity": 0.0,
        "tranquility": 0.0,
    }


def test_satisfy_raises_need_and_mood():
    dwarf = _dwarf(mood=50)
    applied = satisfy(dwarf, "social")

    assert applied == 25
    assert dwarf.fulfillment.social == 75
    # floor(25 * 0.3)
    assert dwarf.mood == 57


def test_satisfy_rejects_unknown_need():
    dwarf = _dwarf()
    try:
        satisfy(dwarf, "glory")
    except KeyError as exc:
        assert "glory" in str(exc)
    else:  # pragma: no cover - failure path
        raise AssertionError("satisfy accepted an unknown need")


def test_most_pressing_need_picks_highest_urgency():
    levels = Fulfillment(social=100, exploration=0, creativity=100, tranquility=100)
    dwarf = _dwarf(fulfillment=levels)

    pressing = most_pressing_need(dwarf)
    assert pressing is not None
    assert pressing.need == "exploration"
    assert pressing.urgency == 100


def test_most_pressing_need_none_when_content():
    levels = Fulfillment(social=100, exploration=100, creativity=100, tranquility=100)
    assert most_pressing_need(_dwarf(fulfillment=levels)) is None


def test_most_pressing_need_prefers_earlier_need_on_tie():
    pressing = most_pressing_need(_dwarf())
    assert pressing is not None
    assert pressing.need == "social"


def test_adjust_mood_resilience():
    optimist = _dwarf(mood=50, personality=Personality(optimism=0.9))
    adjust_mood(optimist, -10)
    assert optimist.mood == 42

    gloomy = _dwarf(mood=50, personality=Personality(melancholy=0.9))
    adjust_mood(gloomy, 10)
    assert gloomy.mood == 58


def test_dominant_traits_falls_back_to_balanced():
    assert dominant_traits(_dwarf()) == ["balanced"]
    bold = _dwarf(personality=Personality(bravery=0.9, curiosity=0.8))
    assert dominant_traits(bold)[:2] == ["bravery", "curiosity"]
