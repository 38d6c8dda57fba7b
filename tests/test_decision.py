"""Tests for utility-based task selection."""

import random

import pytest

from dwarfmind.decision import DecisionEngine
from dwarfmind.environment import (
    BuildProject,
    CraftingJob,
    FoodSource,
    Hostile,
    Workshop,
    build_default_services,
    open_tile_map,
)
from dwarfmind.schemas import Agent, Fulfillment, Personality, WorldState
from dwarfmind.tasks import (
    AIState,
    Aspiration,
    BuildTask,
    CraftTask,
    DigTask,
    ExploreTask,
    ForageTask,
    IdleTask,
)


def _content() -> Fulfillment:
    return Fulfillment(social=100, exploration=100, creativity=100, tranquility=100)


def _setup(*dwarves: Agent):
    world = WorldState(map=open_tile_map(30, 30), dwarves=list(dwarves))
    services = build_default_services(rng=random.Random(0))
    engine = DecisionEngine(services, rng=random.Random(0))
    return world, services, engine


def test_hungry_dwarf_ranks_forage_first():
    dwarf = Agent(agent_id="d0", name="Urist", x=5, y=5, hunger=90, fulfillment=_content())
    world, services, engine = _setup(dwarf)
    services.food.add(FoodSource(food_id="berries", x=8, y=5))

    ranked = engine.rank_candidates(dwarf, world)

    assert isinstance(ranked[0], ForageTask)
    assert ranked[0].priority == 90
    assert ranked[0].target.food_id == "berries"
    assert isinstance(ranked[-1], IdleTask)
    assert ranked[-1].priority == 10


def test_equal_priority_keeps_generation_order():
    dwarf = Agent(
        agent_id="d0",
        name="Bomrek",
        x=5,
        y=5,
        fulfillment=_content(),
        aspiration=Aspiration.HERMIT,
        skills={"masonry": 0.0, "mining": 0.0},
    )
    world, services, engine = _setup(dwarf)
    services.construction.add_project(BuildProject(project_id="wall-1", x=7, y=5))

    ranked = engine.rank_candidates(dwarf, world)

    # Hermit explore (aspiration) and the zero-skill build both score 45.
    assert [task.priority for task in ranked[:2]] == [45, 45]
    assert isinstance(ranked[0], ExploreTask) and ranked[0].avoid_social
    assert isinstance(ranked[1], BuildTask)


def test_find_new_task_records_state_and_target():
    dwarf = Agent(agent_id="d0", name="Urist", x=5, y=5, hunger=70, fulfillment=_content())
    world, services, engine = _setup(dwarf)
    services.food.add(FoodSource(food_id="berries", x=9, y=5))

    decision = engine.decide(dwarf, world)

    assert decision.state == AIState.SEEKING_FOOD
    assert dwarf.state == AIState.SEEKING_FOOD
    assert isinstance(dwarf.current_task, ForageTask)
    assert (dwarf.target.x, dwarf.target.y) == (9, 5)


def test_missing_start_handler_raises_type_error():
    dwarf = Agent(agent_id="d0", name="Urist", fulfillment=_content(), aspiration=Aspiration.HERMIT)
    world, _, engine = _setup(dwarf)
    del engine._start_handlers[ExploreTask]

    with pytest.raises(TypeError):
        engine.decide(dwarf, world)


def test_dig_task_completes_and_converts_tile():
    dwarf = Agent(agent_id="d0", name="Urist", x=5, y=5, fulfillment=Fulfillment(creativity=10))
    world, services, engine = _setup(dwarf)
    site = services.construction.designate_dig(6, 5, work_required=1)
    dwarf.current_task = DigTask(priority=40, target=site)

    decision = engine.decide(dwarf, world)

    assert decision.state == AIState.WORKING_DIG
    assert dwarf.tiles_dug == 1
    assert dwarf.current_task is None
    assert dwarf.fulfillment.creativity == 16
    assert not services.construction.is_designated(6, 5)
    assert world.map.tile_type(6, 5) == "floor"
    assert any("finished digging" in line for line in world.log)


def test_stale_task_replan_restarts_reconsider_count():
    dwarf = Agent(agent_id="d0", name="Urist", x=5, y=5, fulfillment=_content())
    world, services, engine = _setup(dwarf)
    site = services.construction.designate_dig(6, 5)
    dwarf.current_task = DigTask(priority=40, target=site)
    dwarf.ticks_since_decision = 7
    del services.construction.designations[(6, 5)]

    engine.decide(dwarf, world)

    assert not isinstance(dwarf.current_task, DigTask)
    assert dwarf.ticks_since_decision == 0

def test_crafting_completion_leaves_memory():
    dwarf = Agent(agent_id="d0", name="Urist", x=5, y=5, fulfillment=_content())
    world, services, engine = _setup(dwarf)
    workshop = Workshop(workshop_id="ws", x=6, y=6)
    job = services.crafting.add_job(CraftingJob(job_id="mug", product="stone mug", workshop=workshop, work_required=1))

    dwarf.current_task = CraftTask(priority=40, target=job)
    engine.decide(dwarf, world)

    assert dwarf.items_crafted == 1
    assert dwarf.memory.significant_events[-1].content == "Crafted a stone mug"


def test_brave_dwarf_fights_adjacent_hostile():
    dwarf = Agent(agent_id="d0", name="Urist", x=5, y=5, personality=Personality(bravery=0.9))
    world, _, engine = _setup(dwarf)
    world.hostiles.append(Hostile(hostile_id="gob", x=6, y=5))

    decision = engine.decide(dwarf, world)

    assert decision.state == AIState.FIGHTING
    assert dwarf.current_task.kind == "fight"
    assert world.hostiles[0].hp < world.hostiles[0].max_hp


def test_wounded_dwarf_flees_then_replans_when_safe():
    dwarf = Agent(agent_id="d0", name="Urist", x=5, y=5, hp=4)
    world, _, engine = _setup(dwarf)
    world.hostiles.append(Hostile(hostile_id="gob", x=7, y=5))

    decision = engine.decide(dwarf, world)
    assert decision.state == AIState.FLEEING_COMBAT
    assert dwarf.current_task is None
    assert dwarf.x < 5

    world.hostiles.clear()
    decision = engine.decide(dwarf, world)
    assert decision.state != AIState.FLEEING_COMBAT
    assert dwarf.current_task is not None


def test_critical_hunger_eats_when_adjacent():
    dwarf = Agent(agent_id="d0", name="Urist", x=5, y=5, hunger=90, mood=50)
    world, services, engine = _setup(dwarf)
    services.food.add(FoodSource(food_id="berries", x=5, y=6, amount=1))

    decision = engine.decide(dwarf, world)

    assert decision.state == AIState.EATING
    assert dwarf.hunger == 60
    assert dwarf.mood == 49
    assert services.food.nearest_food(dwarf) is None


def test_social_target_prefers_lonely_friend():
    seeker = Agent(agent_id="d0", name="Urist", x=5, y=5)
    near = Agent(agent_id="d1", name="Bomrek", x=6, y=5, fulfillment=_content())
    far_lonely = Agent(agent_id="d2", name="Fikod", x=10, y=5, fulfillment=Fulfillment(social=0))
    world, _, engine = _setup(seeker, near, far_lonely)

    assert engine.find_social_target(seeker, world).agent_id == "d2"


def test_task_is_kept_until_reconsider_interval():
    dwarf = Agent(agent_id="d0", name="Urist", x=5, y=5, fulfillment=_content(), aspiration=Aspiration.HERMIT)
    world, services, engine = _setup(dwarf)

    engine.decide(dwarf, world)
    assert isinstance(dwarf.current_task, ExploreTask)

    # A much better job appears, but the dwarf only looks again after the interval.
    services.food.add(FoodSource(food_id="berries", x=2, y=2))
    dwarf.hunger = 70
    for _ in range(engine.settings.reconsider_interval - 1):
        engine.decide(dwarf, world)
        assert isinstance(dwarf.current_task, ExploreTask)

    engine.decide(dwarf, world)
    assert isinstance(dwarf.current_task, ForageTask)
