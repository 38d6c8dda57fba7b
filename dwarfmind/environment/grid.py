"""Tile-map construction and terrain descriptions.

Terrain generation itself lives outside this package; scenarios and tests
build small maps from ASCII rows with :func:`tile_map_from_rows`.
"""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional

from .schemas import Tile, TileMap


# Glyph legend used by tile_map_from_rows. '#' is the only impassable glyph.
DEFAULT_GLYPHS: Dict[str, Tile] = {
    ".": Tile(type="grass"),
    ",": Tile(type="forest_floor"),
    "_": Tile(type="cave_floor"),
    "~": Tile(type="river_bank"),
    "^": Tile(type="mountain_slope"),
    "%": Tile(type="marsh"),
    ":": Tile(type="sand"),
    "+": Tile(type="floor"),
    "#": Tile(type="wall", walkable=False),
}

TILE_DESCRIPTIONS: Dict[str, str] = {
    "grass": "a grassy meadow",
    "forest_floor": "a shaded forest",
    "cave_floor": "a dim cavern",
    "river_bank": "near a flowing river",
    "mountain_slope": "a rocky mountainside",
    "marsh": "a murky marsh",
    "sand": "sandy ground",
    "floor": "a dug-out hall",
    "wall": "against solid rock",
}


def tile_map_from_rows(
    rows: Iterable[str],
    *,
    glyphs: Optional[Mapping[str, Tile]] = None,
) -> TileMap:
    """Build a :class:`TileMap` from equal-length ASCII rows.

    Unknown glyphs become open ``floor`` tiles.
    """

    legend = dict(DEFAULT_GLYPHS)
    if glyphs:
        legend.update(glyphs)

    lines = [row for row in rows]
    if not lines:
        raise ValueError("tile_map_from_rows needs at least one row")
    width = len(lines[0])
    for index, row in enumerate(lines):
        if len(row) != width:
            raise ValueError(
                f"Row {index} has width {len(row)}; expected {width} like the first row"
            )

    tiles = []
    for row in lines:
        for glyph in row:
            template = legend.get(glyph, Tile(type="floor"))
            tiles.append(template.model_copy(deep=True))
    return TileMap(width=width, height=len(lines), tiles=tiles)


def open_tile_map(width: int, height: int, tile_type: str = "grass") -> TileMap:
    """Return a fully walkable map of a single terrain type."""
    return TileMap(
        width=width,
        height=height,
        tiles=[Tile(type=tile_type) for _ in range(width * height)],
    )


def describe_tile(tile_map: Optional[TileMap], x: int, y: int) -> str:
    """Short prose description of the terrain under (x, y) for prompts."""
    if tile_map is None:
        return "unknown area"
    tile_type = tile_map.tile_type(x, y)
    if tile_type is None:
        return "unknown area"
    return TILE_DESCRIPTIONS.get(tile_type, "an open area")
