"""Distance and pathfinding utilities for tile maps."""

from __future__ import annotations

import math
import random
from collections import deque
from typing import Iterable, List, Optional, Protocol, Sequence, Tuple

from .schemas import Position, TileMap

Coord = Tuple[int, int]

# Four-directional movement. Order fixes tie-breaking between equal-length paths.
_DIRECTIONS: Sequence[Coord] = ((1, 0), (-1, 0), (0, 1), (0, -1))


class HasPosition(Protocol):
    x: int
    y: int


def manhattan(a: HasPosition, b: HasPosition) -> int:
    """Manhattan distance between two objects exposing ``x``/``y``."""
    return abs(a.x - b.x) + abs(a.y - b.y)


def grid_shortest_path(
    tile_map: TileMap,
    start: Coord,
    goal: Coord,
    *,
    max_steps: Optional[int] = None,
) -> Optional[List[Coord]]:
    """Return a path of (x, y) coordinates avoiding impassable tiles.

    Uses BFS; the path includes both ``start`` and ``goal``. Returns None when
    the goal is unreachable or further than ``max_steps`` away. The goal tile
    itself may be impassable so dwarves can path *to* a wall they are digging.
    """

    if start == goal:
        return [start]

    visited = {start}
    queue: deque[Tuple[Coord, List[Coord]]] = deque([(start, [start])])

    def neighbors(coord: Coord) -> Iterable[Coord]:
        x, y = coord
        for dx, dy in _DIRECTIONS:
            nx, ny = x + dx, y + dy
            if (nx, ny) == goal and tile_map.in_bounds(nx, ny):
                yield nx, ny
            elif tile_map.is_walkable(nx, ny):
                yield nx, ny

    while queue:
        coord, path = queue.popleft()
        if max_steps is not None and len(path) > max_steps:
            continue
        for nb in neighbors(coord):
            if nb in visited:
                continue
            visited.add(nb)
            new_path = path + [nb]
            if nb == goal:
                return new_path
            queue.append((nb, new_path))
    return None


def next_step_toward(
    tile_map: TileMap,
    start: Coord,
    goal: Coord,
    *,
    max_steps: int = 50,
) -> Optional[Coord]:
    """First walkable step from ``start`` toward ``goal``.

    Falls back to a greedy axis step when BFS finds nothing within
    ``max_steps``; returns None when already adjacent/at goal or boxed in.
    """

    path = grid_shortest_path(tile_map, start, goal, max_steps=max_steps)
    if path is not None and len(path) >= 2:
        step = path[1]
        if tile_map.is_walkable(*step):
            return step
        return None

    x, y = start
    gx, gy = goal
    candidates: List[Coord] = []
    if gx != x:
        candidates.append((x + (1 if gx > x else -1), y))
    if gy != y:
        candidates.append((x, y + (1 if gy > y else -1)))
    for cx, cy in candidates:
        if tile_map.is_walkable(cx, cy):
            return cx, cy
    return None


def random_adjacent_walkable(
    tile_map: TileMap,
    position: Coord,
    rng: random.Random,
) -> Optional[Coord]:
    """Pick a random passable orthogonal neighbour, or None when boxed in."""
    x, y = position
    options = [
        (x + dx, y + dy)
        for dx, dy in _DIRECTIONS
        if tile_map.is_walkable(x + dx, y + dy)
    ]
    if not options:
        return None
    return rng.choice(options)


def flee_position(
    origin: HasPosition,
    threats: Sequence[HasPosition],
    *,
    distance: int = 10,
    tile_map: Optional[TileMap] = None,
) -> Optional[Position]:
    """Point ``distance`` tiles away from the centroid of ``threats``.

    Standing exactly on the centroid flees along +x. Clamped to the map when
    one is supplied.
    """

    if not threats:
        return None
    cx = sum(t.x for t in threats) / len(threats)
    cy = sum(t.y for t in threats) / len(threats)
    dx = origin.x - cx
    dy = origin.y - cy
    length = math.hypot(dx, dy)
    if length == 0:
        dx, dy, length = 1.0, 0.0, 1.0

    x = round(origin.x + (dx / length) * distance)
    y = round(origin.y + (dy / length) * distance)
    if tile_map is not None:
        x = max(0, min(tile_map.width - 1, x))
        y = max(0, min(tile_map.height - 1, y))
    return Position(x=x, y=y)
