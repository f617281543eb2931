from __future__ import annotations

import json
import math
import os
import random

import pytest

from mouse_sim.errors import ConfigurationFault
from mouse_sim.map_generator import (
    generate_open_maze,
    generate_perfect_maze,
    maze_from_generator,
    save_generated_map,
)
from mouse_sim.maze import Direction, Maze, Tile

MAZE_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "mazes")


def _open_tiles(width: int, height: int):
    return Maze.from_map_dict(generate_open_maze(width, height)).tiles()


def test_load_num_file() -> None:
    maze = Maze.from_map_file(os.path.join(MAZE_DIR, "classic_4x4.num"))
    assert (maze.width, maze.height) == (4, 4)
    assert maze.get_tile(0, 0).is_wall(Direction.EAST)
    assert not maze.get_tile(0, 0).is_wall(Direction.NORTH)
    assert maze.center_tiles() == [(1, 1), (1, 2), (2, 1), (2, 2)]
    assert maze.distance_to_center(0, 0) == 2
    assert maze.distance_to_center(1, 0) == 1
    assert maze.distance_to_center(3, 3) == 2
    assert maze.distance_to_center(2, 2) == 0


def test_json_round_trip(tmp_path) -> None:
    original = Maze.from_map_file(os.path.join(MAZE_DIR, "classic_4x4.num"))
    path = str(tmp_path / "maze.json")
    save_generated_map(original.to_dict(), path)
    loaded = Maze.from_map_file(path)
    assert loaded.tiles() == original.tiles()


def test_inconsistent_wall_is_rejected() -> None:
    tiles = [t for t in _open_tiles(2, 1) if (t.x, t.y) != (0, 0)]
    tiles.append(Tile(0, 0, frozenset({Direction.NORTH, Direction.SOUTH, Direction.WEST, Direction.EAST})))
    with pytest.raises(ConfigurationFault, match="inconsistent"):
        Maze(2, 1, tiles)


def test_open_boundary_is_rejected() -> None:
    tiles = [t for t in _open_tiles(2, 2) if (t.x, t.y) != (1, 1)]
    tiles.append(Tile(1, 1, frozenset({Direction.EAST})))
    with pytest.raises(ConfigurationFault, match="boundary"):
        Maze(2, 2, tiles)


def test_missing_and_duplicate_tiles_are_rejected() -> None:
    tiles = _open_tiles(3, 3)
    with pytest.raises(ConfigurationFault, match="missing"):
        Maze(3, 3, tiles[:-1])
    with pytest.raises(ConfigurationFault, match="twice"):
        Maze(3, 3, tiles + [tiles[0]])
    with pytest.raises(ConfigurationFault):
        Maze.from_map_dict({"width": 3, "tiles": []})


def test_num_format_errors() -> None:
    with pytest.raises(ConfigurationFault):
        Maze.from_num_lines(["0 0 1 1 1"])
    with pytest.raises(ConfigurationFault):
        Maze.from_num_lines(["0 0 1 x 1 1"])
    with pytest.raises(ConfigurationFault):
        Maze.from_num_lines([""])


def test_center_tiles_for_odd_and_even_sizes() -> None:
    assert Maze.from_map_dict(generate_open_maze(5, 5)).center_tiles() == [(2, 2)]
    assert Maze.from_map_dict(generate_open_maze(1, 5)).center_tiles() == [(0, 2)]
    assert Maze.from_map_dict(generate_open_maze(4, 3)).center_tiles() == [(1, 1), (2, 1)]


def test_discretize_and_tile_center() -> None:
    maze = Maze.from_map_dict(generate_open_maze(3, 3))
    assert maze.discretize(0.0, 0.0) == (0, 0)
    assert maze.discretize(0.179, 0.181) == (0, 1)
    assert maze.discretize(-0.001, 0.5) == (-1, 2)
    assert maze.tile_center(2, 1) == pytest.approx((0.45, 0.27))


def test_wall_geometry_straddles_tile_edges() -> None:
    maze = Maze.from_map_dict(generate_open_maze(1, 1))
    walls = maze.wall_polygons(0, 0)
    assert len(walls) == 4
    assert len(maze.corner_polygons(0, 0)) == 4
    north = max(walls, key=lambda p: p.bounds()[3])
    assert north.bounds() == pytest.approx((0.006, 0.174, 0.174, 0.186))
    assert maze.full_polygon(0, 0).area() == pytest.approx(0.18 ** 2)


def test_direction_from_angle() -> None:
    assert Direction.from_angle(0.0) is Direction.EAST
    assert Direction.from_angle(math.pi / 2.0 + 0.3) is Direction.NORTH
    assert Direction.from_angle(-math.pi / 2.0) is Direction.SOUTH
    assert Direction.from_angle(5.0 * math.pi) is Direction.WEST
    assert Direction.NORTH.opposite is Direction.SOUTH


def test_perfect_maze_is_a_spanning_tree() -> None:
    width, height = 8, 6
    maze = Maze.from_map_dict(generate_perfect_maze(width, height, rng=random.Random(7)))

    # Each open passage is seen from both of its tiles
    openings = sum(4 - len(t.walls) for t in maze.tiles()) // 2
    assert openings == width * height - 1
    for tile in maze.tiles():
        assert maze.distance_to_center(tile.x, tile.y) is not None


def test_generator_presets() -> None:
    a = maze_from_generator("perfect", 6, 6, seed=3)
    b = maze_from_generator("perfect", 6, 6, seed=3)
    assert a.tiles() == b.tiles()
    assert all(
        t.walls <= {Direction.NORTH, Direction.EAST, Direction.SOUTH, Direction.WEST}
        for t in maze_from_generator("open", 2, 2).tiles()
    )
    with pytest.raises(ValueError):
        maze_from_generator("spiral", 4, 4)


def test_generated_map_is_plain_json(tmp_path) -> None:
    path = str(tmp_path / "nested" / "open.json")
    save_generated_map(generate_open_maze(2, 3), path)
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    assert data["width"] == 2 and data["height"] == 3
    assert {"x": 0, "y": 0, "walls": "sw"} in data["tiles"]
