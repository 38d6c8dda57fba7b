"""Tests for tile maps, pathfinding, and the in-memory collaborators."""

import random

import pytest

from dwarfmind.environment import (
    BuildProject,
    CraftingJob,
    FoodSource,
    Hostile,
    Workshop,
    build_default_services,
    describe_tile,
    flee_position,
    grid_shortest_path,
    manhattan,
    next_step_toward,
    open_tile_map,
    random_adjacent_walkable,
    tile_map_from_rows,
)
from dwarfmind.schemas import Agent, WorldState


ROWS = [
    ".....",
    ".###.",
    ".#...",
    ".#.#.",
    ".....",
]


def test_tile_map_from_rows_legend():
    tile_map = tile_map_from_rows(ROWS)

    assert (tile_map.width, tile_map.height) == (5, 5)
    assert tile_map.tile_type(1, 1) == "wall"
    assert not tile_map.is_walkable(1, 1)
    assert tile_map.is_walkable(0, 0)
    assert not tile_map.is_walkable(-1, 0)
    assert describe_tile(tile_map, 0, 0) == "a grassy meadow"


def test_tile_map_rows_must_match():
    with pytest.raises(ValueError):
        tile_map_from_rows(["...", ".."])


def test_grid_shortest_path_avoids_walls():
    tile_map = tile_map_from_rows(ROWS)

    path = grid_shortest_path(tile_map, (0, 0), (2, 2))

    assert path is not None
    assert path[0] == (0, 0) and path[-1] == (2, 2)
    assert all(tile_map.is_walkable(x, y) for x, y in path)
    assert all(manhattan(_P(*a), _P(*b)) == 1 for a, b in zip(path, path[1:]))


def test_path_may_end_on_wall_being_dug():
    tile_map = tile_map_from_rows(ROWS)
    path = grid_shortest_path(tile_map, (0, 0), (1, 1))
    assert path is not None and path[-1] == (1, 1)
    assert next_step_toward(tile_map, (0, 1), (1, 1)) is None


def test_next_step_toward_moves_one_tile():
    tile_map = open_tile_map(6, 6)
    assert next_step_toward(tile_map, (0, 0), (3, 0)) == (1, 0)
    assert next_step_toward(tile_map, (2, 2), (2, 2)) is None


def test_random_adjacent_walkable_when_boxed_in():
    tile_map = tile_map_from_rows(["###", "#.#", "###"])
    assert random_adjacent_walkable(tile_map, (1, 1), random.Random(0)) is None


def test_flee_position_points_away_and_clamps():
    tile_map = open_tile_map(20, 20)
    safe = flee_position(_P(5, 5), [_P(7, 5)], distance=10, tile_map=tile_map)
    assert (safe.x, safe.y) == (0, 5)
    assert flee_position(_P(5, 5), []) is None


def test_food_store_depletes_and_removes_sources():
    services = build_default_services(rng=random.Random(0))
    dwarf = Agent(agent_id="d0", name="Urist", hunger=80)
    food = services.food.add(FoodSource(food_id="f", x=1, y=0, amount=1))

    assert services.food.nearest_food(dwarf) is food
    assert services.food.eat(dwarf, food) is True
    assert dwarf.hunger == 50
    assert services.food.nearest_food(dwarf) is None
    assert services.food.eat(dwarf, food) is False


def test_build_and_craft_progress_until_done():
    services = build_default_services(rng=random.Random(0))
    dwarf = Agent(agent_id="d0", name="Urist", skills={"masonry": 0.5, "crafting": 0.5})
    project = services.construction.add_project(BuildProject(project_id="p", x=0, y=1, work_required=4))
    job = services.crafting.add_job(
        CraftingJob(job_id="j", product="mug", workshop=Workshop(workshop_id="w", x=1, y=1), work_required=4)
    )

    assert services.construction.work_on_project(dwarf, project) is False
    assert services.construction.work_on_project(dwarf, project) is True
    assert not services.construction.has_project("p")

    assert services.crafting.work_on_job(dwarf, job) is None
    assert job.assignee == "d0"
    assert services.crafting.work_on_job(dwarf, job) == "mug"
    assert services.crafting.best_job(dwarf) is None


def test_crafting_jobs_are_reserved_by_assignee():
    services = build_default_services(rng=random.Random(0))
    first = Agent(agent_id="d0", name="Urist")
    second = Agent(agent_id="d1", name="Bomrek")
    job = services.crafting.add_job(
        CraftingJob(job_id="j", product="idol", workshop=Workshop(workshop_id="w", x=0, y=0))
    )

    services.crafting.work_on_job(first, job)

    assert services.crafting.best_job(second) is None
    assert services.crafting.best_job(first) is job


def test_combat_threat_range_and_flee_threshold():
    services = build_default_services(rng=random.Random(0))
    world = WorldState(map=open_tile_map(20, 20))
    dwarf = Agent(agent_id="d0", name="Urist", x=5, y=5)
    world.hostiles.append(Hostile(hostile_id="far", x=19, y=19))
    assert services.combat.nearest_threat(dwarf, world) is None

    world.hostiles.append(Hostile(hostile_id="near", x=6, y=5))
    assert services.combat.nearest_threat(dwarf, world).hostile_id == "near"
    assert services.combat.should_flee(dwarf) is False
    dwarf.hp = 5
    assert services.combat.should_flee(dwarf) is True


class _P:
    def __init__(self, x: int, y: int) -> None:
        self.x = x
        self.y = y
