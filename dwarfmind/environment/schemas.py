"""Pydantic schemas for the colony world.

The tile map and the work targets (food, dig designations, build projects,
crafting jobs, hostiles) are plain serializable models. The decision engine
reads them; only the collaborators in ``collaborators.py`` mutate them.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class Position(BaseModel):
    """A tile coordinate. ``x`` grows east, ``y`` grows south."""

    x: int
    y: int

    def as_tuple(self) -> tuple[int, int]:
        return (self.x, self.y)


class Tile(BaseModel):
    """Encodes the terrain type of a single map cell."""

    type: str = "floor"
    walkable: bool = True
    metadata: Dict[str, str] = Field(default_factory=dict)


class TileMap(BaseModel):
    """Dense row-major tile grid (index = ``y * width + x``)."""

    width: int
    height: int
    tiles: List[Tile] = Field(default_factory=list)

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def tile_at(self, x: int, y: int) -> Optional[Tile]:
        if not self.in_bounds(x, y):
            return None
        index = y * self.width + x
        if index >= len(self.tiles):
            return None
        return self.tiles[index]

    def tile_type(self, x: int, y: int) -> Optional[str]:
        tile = self.tile_at(x, y)
        return tile.type if tile is not None else None

    def is_walkable(self, x: int, y: int) -> bool:
        """Out-of-bounds cells are walls; missing cells count as open floor."""
        if not self.in_bounds(x, y):
            return False
        tile = self.tile_at(x, y)
        return True if tile is None else tile.walkable


class FoodSource(BaseModel):
    """A forageable spot with a number of servings left."""

    food_id: str
    x: int
    y: int
    amount: int = Field(10, ge=0, description="Servings remaining")


class DigDesignation(BaseModel):
    """A wall tile marked for digging."""

    x: int
    y: int
    progress: float = 0.0
    work_required: float = 20.0


class BuildProject(BaseModel):
    """A structure under construction."""

    project_id: str
    structure_type: str = "wall"
    x: int
    y: int
    progress: float = 0.0
    work_required: float = 30.0


class Workshop(BaseModel):
    workshop_id: str
    kind: str = "craftsdwarf"
    x: int
    y: int


class CraftingJob(BaseModel):
    """A pending order at a workshop."""

    job_id: str
    product: str
    workshop: Workshop
    skill: str = "crafting"
    progress: float = 0.0
    work_required: float = 25.0
    assignee: Optional[str] = None


class Hostile(BaseModel):
    """A creature or visitor that dwarves fight or flee from."""

    hostile_id: str
    name: str = "goblin"
    x: int
    y: int
    hp: float = 20.0
    max_hp: float = 20.0
    damage: float = 3.0

    @property
    def alive(self) -> bool:
        return self.hp > 0
