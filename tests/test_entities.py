"""Tests for the dwarf factory."""

import random

from dwarfmind.entities import (
    DWARF_NAMES,
    NameRegistry,
    create_dwarf,
    generate_fulfillment,
    generate_skills,
)
from dwarfmind.schemas import PERSONALITY_TRAITS, Personality
from dwarfmind.tasks import Aspiration


def test_name_registry_issues_unique_ids_and_cycles_names():
    registry = NameRegistry(names=("Urist", "Bomrek"))
    assert [registry.next_id() for _ in range(3)] == ["dwarf-0", "dwarf-1", "dwarf-2"]
    assert [registry.next_name() for _ in range(3)] == ["Urist", "Bomrek", "Urist"]


def test_create_dwarf_is_reproducible_with_seed():
    first = create_dwarf(3, 4, registry=NameRegistry(), rng=random.Random(7))
    second = create_dwarf(3, 4, registry=NameRegistry(), rng=random.Random(7))

    assert first.personality == second.personality
    assert first.aspiration == second.aspiration
    assert first.mood == second.mood


def test_create_dwarf_ranges():
    registry = NameRegistry()
    rng = random.Random(11)
    for _ in range(20):
        dwarf = create_dwarf(0, 0, registry=registry, rng=rng)
        assert dwarf.name in DWARF_NAMES
        assert dwarf.hunger == 0
        assert 70 <= dwarf.mood < 100
        assert isinstance(dwarf.aspiration, Aspiration)
        for trait in PERSONALITY_TRAITS:
            assert 0.3 <= dwarf.personality.trait(trait) <= 1.0
        for need in ("social", "exploration", "creativity", "tranquility"):
            assert dwarf.fulfillment.level(need) in (50.0, 70.0)


def test_generate_fulfillment_bonus_thresholds():
    personality = Personality(friendliness=0.65, curiosity=0.6, melancholy=0.55)
    fulfillment = generate_fulfillment(personality)

    assert fulfillment.social == 70
    # exactly at the threshold earns nothing
    assert fulfillment.exploration == 50
    assert fulfillment.tranquility == 70


def test_generate_skills_follow_traits():
    skills = generate_skills(Personality(stubbornness=1.0, creativity=0.0), random.Random(1))
    assert abs(skills["mining"] - 0.4) < 1e-9
    assert abs(skills["crafting"] - 0.2) < 1e-9
    assert 0.2 <= skills["melee"] <= 0.5
