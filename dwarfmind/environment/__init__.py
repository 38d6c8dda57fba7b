"""Tile world, work targets, and the collaborators the decision engine drives."""

from .schemas import (
    BuildProject,
    CraftingJob,
    DigDesignation,
    FoodSource,
    Hostile,
    Position,
    Tile,
    TileMap,
    Workshop,
)
from .grid import (
    DEFAULT_GLYPHS,
    TILE_DESCRIPTIONS,
    describe_tile,
    open_tile_map,
    tile_map_from_rows,
)
from .helpers import (
    flee_position,
    grid_shortest_path,
    manhattan,
    next_step_toward,
    random_adjacent_walkable,
)
from .collaborators import (
    CombatService,
    ConstructionBoard,
    ConstructionService,
    CraftingBoard,
    CraftingService,
    FoodService,
    FoodStore,
    GreedyMovement,
    MovementService,
    SimpleCombat,
    WorldServices,
    build_default_services,
    bump_skill,
)

__all__ = [
    "BuildProject",
    "CraftingJob",
    "DigDesignation",
    "FoodSource",
    "Hostile",
    "Position",
    "Tile",
    "TileMap",
    "Workshop",
    "DEFAULT_GLYPHS",
    "TILE_DESCRIPTIONS",
    "describe_tile",
    "open_tile_map",
    "tile_map_from_rows",
    "flee_position",
    "grid_shortest_path",
    "manhattan",
    "next_step_toward",
    "random_adjacent_walkable",
    "CombatService",
    "ConstructionBoard",
    "ConstructionService",
    "CraftingBoard",
    "CraftingService",
    "FoodService",
    "FoodStore",
    "GreedyMovement",
    "MovementService",
    "SimpleCombat",
    "WorldServices",
    "build_default_services",
    "bump_skill",
]
