"""
Procedural maze generation.

Produces tile-wall map dicts compatible with Maze.from_map_dict(): an open
arena with boundary walls only, and perfect mazes carved by randomized
depth-first search.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Set, Tuple
import json
import os
import random

from .maze import DEFAULT_TILE_LENGTH, DEFAULT_WALL_WIDTH, Direction, Maze

_ORDER = (Direction.NORTH, Direction.EAST, Direction.SOUTH, Direction.WEST)


def _to_map_dict(
    width: int,
    height: int,
    walls: Dict[Tuple[int, int], Set[Direction]],
    tile_length: float,
    wall_width: float,
) -> Dict[str, Any]:
    tiles: List[Dict[str, Any]] = []
    for x in range(width):
        for y in range(height):
            code = "".join(d.value for d in _ORDER if d in walls[(x, y)])
            tiles.append({"x": x, "y": y, "walls": code})
    return {
        "width": width,
        "height": height,
        "tile_length": tile_length,
        "wall_width": wall_width,
        "tiles": tiles,
    }


def generate_open_maze(
    width: int,
    height: int,
    tile_length: float = DEFAULT_TILE_LENGTH,
    wall_width: float = DEFAULT_WALL_WIDTH,
) -> Dict[str, Any]:
    """Arena with walls only on the outer boundary."""
    walls: Dict[Tuple[int, int], Set[Direction]] = {}
    for x in range(width):
        for y in range(height):
            present: Set[Direction] = set()
            if y == height - 1:
                present.add(Direction.NORTH)
            if y == 0:
                present.add(Direction.SOUTH)
            if x == width - 1:
                present.add(Direction.EAST)
            if x == 0:
                present.add(Direction.WEST)
            walls[(x, y)] = present
    return _to_map_dict(width, height, walls, tile_length, wall_width)


def generate_perfect_maze(
    width: int,
    height: int,
    tile_length: float = DEFAULT_TILE_LENGTH,
    wall_width: float = DEFAULT_WALL_WIDTH,
    rng: Optional[random.Random] = None,
) -> Dict[str, Any]:
    """
    Generate a perfect maze (exactly one path between any two tiles).
    Starts with every wall present and carves passages with an iterative
    randomized depth-first search from the start tile (0, 0).
    """
    rng = rng or random.Random()
    walls: Dict[Tuple[int, int], Set[Direction]] = {
        (x, y): set(_ORDER) for x in range(width) for y in range(height)
    }
    visited = {(0, 0)}
    stack = [(0, 0)]
    while stack:
        x, y = stack[-1]
        options = []
        for direction in _ORDER:
            dx, dy = direction.offset
            neighbor = (x + dx, y + dy)
            if 0 <= neighbor[0] < width and 0 <= neighbor[1] < height and neighbor not in visited:
                options.append((direction, neighbor))
        if not options:
            stack.pop()
            continue
        direction, neighbor = rng.choice(options)
        walls[(x, y)].discard(direction)
        walls[neighbor].discard(direction.opposite)
        visited.add(neighbor)
        stack.append(neighbor)
    return _to_map_dict(width, height, walls, tile_length, wall_width)


def maze_from_generator(
    preset: str,
    width: int,
    height: int,
    seed: Optional[int] = None,
    tile_length: float = DEFAULT_TILE_LENGTH,
    wall_width: float = DEFAULT_WALL_WIDTH,
) -> Maze:
    """
    Build a Maze instance from a generator preset ("open" or "perfect").
    """
    if preset == "open":
        data = generate_open_maze(width, height, tile_length, wall_width)
    elif preset == "perfect":
        rng = random.Random(seed) if seed is not None else random.Random()
        data = generate_perfect_maze(width, height, tile_length, wall_width, rng=rng)
    else:
        raise ValueError(f"Unknown maze preset: {preset!r}. Available: ['open', 'perfect']")
    return Maze.from_map_dict(data)


def save_generated_map(data: Dict[str, Any], path: str) -> None:
    """Write generated map dict to a JSON file."""
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
