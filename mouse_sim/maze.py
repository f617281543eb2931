from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
import json
import logging
import math
import os

from .errors import ConfigurationFault
from .geometry_utils import Polygon, normalize_angle_positive, rectangle

logger = logging.getLogger(__name__)

DEFAULT_TILE_LENGTH = 0.18
DEFAULT_WALL_WIDTH = 0.012


class Direction(Enum):
    """Cardinal directions, valued by their single-letter map code."""

    NORTH = "n"
    EAST = "e"
    SOUTH = "s"
    WEST = "w"

    @property
    def angle(self) -> float:
        return _DIRECTION_ANGLES[self]

    @property
    def offset(self) -> Tuple[int, int]:
        return _DIRECTION_OFFSETS[self]

    @property
    def opposite(self) -> "Direction":
        return _OPPOSITES[self]

    @classmethod
    def from_angle(cls, theta: float) -> "Direction":
        """Nearest cardinal direction to heading theta (radians)."""
        quarter = int(round(normalize_angle_positive(theta) / (math.pi / 2.0))) % 4
        return (cls.EAST, cls.NORTH, cls.WEST, cls.SOUTH)[quarter]


_DIRECTION_ANGLES = {
    Direction.EAST: 0.0,
    Direction.NORTH: math.pi / 2.0,
    Direction.WEST: math.pi,
    Direction.SOUTH: 3.0 * math.pi / 2.0,
}
_DIRECTION_OFFSETS = {
    Direction.NORTH: (0, 1),
    Direction.EAST: (1, 0),
    Direction.SOUTH: (0, -1),
    Direction.WEST: (-1, 0),
}
_OPPOSITES = {
    Direction.NORTH: Direction.SOUTH,
    Direction.EAST: Direction.WEST,
    Direction.SOUTH: Direction.NORTH,
    Direction.WEST: Direction.EAST,
}


@dataclass(frozen=True)
class Tile:
    """A single maze cell and its wall flags.

    Attributes
    ----------
    x, y : int
        Tile coordinates; (0, 0) is the bottom-left tile.
    walls : frozenset[Direction]
        Directions in which a wall is present.
    """

    x: int
    y: int
    walls: frozenset

    def is_wall(self, direction: Direction) -> bool:
        return direction in self.walls


class Maze:
    """Immutable grid of tiles with wall geometry.

    Tile (x, y) spans [x*L, (x+1)*L] x [y*L, (y+1)*L] where L is the tile
    length. Each wall is a rectangle of thickness ``wall_width`` centered on
    the shared tile edge; a square post sits on every tile corner.

    Raises
    ------
    ConfigurationFault
        If the tile set is not a full rectangle, a wall disagrees with its
        neighbor, or the outer boundary is open.
    """

    def __init__(
        self,
        width: int,
        height: int,
        tiles: Iterable[Tile],
        tile_length: float = DEFAULT_TILE_LENGTH,
        wall_width: float = DEFAULT_WALL_WIDTH,
    ) -> None:
        if width < 1 or height < 1:
            raise ConfigurationFault(f"Maze dimensions must be positive, got {width}x{height}")
        if not (tile_length > 0.0 and 0.0 < wall_width < tile_length):
            raise ConfigurationFault(
                f"Invalid tile geometry: tile_length={tile_length}, wall_width={wall_width}"
            )
        self.width = int(width)
        self.height = int(height)
        self.tile_length = float(tile_length)
        self.wall_width = float(wall_width)

        self._tiles: Dict[Tuple[int, int], Tile] = {}
        for tile in tiles:
            key = (tile.x, tile.y)
            if not self.within_maze(*key):
                raise ConfigurationFault(f"Tile {key} lies outside a {width}x{height} maze")
            if key in self._tiles:
                raise ConfigurationFault(f"Tile {key} is defined twice")
            self._tiles[key] = tile
        if len(self._tiles) != self.width * self.height:
            raise ConfigurationFault(
                f"Maze is missing {self.width * self.height - len(self._tiles)} tile(s)"
            )
        self._validate_walls()

        self._wall_polygons = {key: self._build_wall_polygons(t) for key, t in self._tiles.items()}
        self._corner_polygons = {key: self._build_corner_polygons(t) for key, t in self._tiles.items()}
        self._distances = self._compute_center_distances()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    @classmethod
    def from_map_dict(cls, data: Mapping[str, Any]) -> "Maze":
        """Create a maze from a dict describing its size and tile walls.

        Expected keys: ``width``, ``height``, ``tiles`` (list of
        ``{"x": int, "y": int, "walls": "nesw"}``) and optionally
        ``tile_length`` / ``wall_width`` in meters.
        """
        try:
            width = int(data["width"])
            height = int(data["height"])
            tiles = [
                Tile(
                    x=int(t["x"]),
                    y=int(t["y"]),
                    walls=frozenset(Direction(c) for c in str(t.get("walls", "")).lower()),
                )
                for t in data["tiles"]
            ]
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigurationFault(f"Malformed maze description: {exc!r}") from exc
        return cls(
            width=width,
            height=height,
            tiles=tiles,
            tile_length=float(data.get("tile_length", DEFAULT_TILE_LENGTH)),
            wall_width=float(data.get("wall_width", DEFAULT_WALL_WIDTH)),
        )

    @classmethod
    def from_num_lines(
        cls,
        lines: Iterable[str],
        tile_length: float = DEFAULT_TILE_LENGTH,
        wall_width: float = DEFAULT_WALL_WIDTH,
    ) -> "Maze":
        """Parse the ``.num`` text format: one ``x y N E S W`` line per tile."""
        tiles: List[Tile] = []
        for lineno, line in enumerate(lines, start=1):
            fields = line.split()
            if not fields:
                continue
            if len(fields) != 6:
                raise ConfigurationFault(f"Line {lineno}: expected 6 fields, got {len(fields)}")
            try:
                x, y, n, e, s, w = (int(f) for f in fields)
            except ValueError as exc:
                raise ConfigurationFault(f"Line {lineno}: {exc}") from exc
            flags = zip((Direction.NORTH, Direction.EAST, Direction.SOUTH, Direction.WEST), (n, e, s, w))
            tiles.append(Tile(x=x, y=y, walls=frozenset(d for d, f in flags if f)))
        if not tiles:
            raise ConfigurationFault("Maze file contains no tiles")
        width = max(t.x for t in tiles) + 1
        height = max(t.y for t in tiles) + 1
        return cls(width, height, tiles, tile_length=tile_length, wall_width=wall_width)

    @classmethod
    def from_map_file(cls, path: str, **geometry: float) -> "Maze":
        """Create a maze from a ``.json`` or ``.num`` file."""
        with open(path, "r", encoding="utf-8") as f:
            if os.path.splitext(path)[1].lower() == ".json":
                maze = cls.from_map_dict({**json.load(f), **geometry})
            else:
                maze = cls.from_num_lines(f, **geometry)
        logger.info("Loaded %dx%d maze from %s", maze.width, maze.height, path)
        return maze

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the dict format accepted by from_map_dict."""
        order = (Direction.NORTH, Direction.EAST, Direction.SOUTH, Direction.WEST)
        return {
            "width": self.width,
            "height": self.height,
            "tile_length": self.tile_length,
            "wall_width": self.wall_width,
            "tiles": [
                {"x": t.x, "y": t.y, "walls": "".join(d.value for d in order if d in t.walls)}
                for _, t in sorted(self._tiles.items())
            ],
        }

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def _validate_walls(self) -> None:
        for (x, y), tile in self._tiles.items():
            for direction in Direction:
                dx, dy = direction.offset
                neighbor = (x + dx, y + dy)
                if neighbor not in self._tiles:
                    if not tile.is_wall(direction):
                        raise ConfigurationFault(
                            f"Tile ({x}, {y}) has no {direction.name.lower()} boundary wall"
                        )
                    continue
                if tile.is_wall(direction) != self._tiles[neighbor].is_wall(direction.opposite):
                    raise ConfigurationFault(
                        f"Wall between ({x}, {y}) and {neighbor} is inconsistent"
                    )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def within_maze(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get_tile(self, x: int, y: int) -> Tile:
        return self._tiles[(x, y)]

    def tiles(self) -> List[Tile]:
        return [t for _, t in sorted(self._tiles.items())]

    def discretize(self, px: float, py: float) -> Tuple[int, int]:
        """Tile coordinates containing the continuous point (px, py)."""
        return int(math.floor(px / self.tile_length)), int(math.floor(py / self.tile_length))

    def tile_center(self, x: int, y: int) -> Tuple[float, float]:
        return (x + 0.5) * self.tile_length, (y + 0.5) * self.tile_length

    def is_center(self, x: int, y: int) -> bool:
        return (x, y) in self.center_tiles()

    def center_tiles(self) -> List[Tuple[int, int]]:
        xs = [self.width // 2] if self.width % 2 else [self.width // 2 - 1, self.width // 2]
        ys = [self.height // 2] if self.height % 2 else [self.height // 2 - 1, self.height // 2]
        return [(x, y) for x in xs for y in ys]

    def distance_to_center(self, x: int, y: int) -> Optional[int]:
        """Number of moves from (x, y) to the nearest center tile, or None if unreachable."""
        return self._distances.get((x, y))

    def _compute_center_distances(self) -> Dict[Tuple[int, int], int]:
        distances: Dict[Tuple[int, int], int] = {}
        queue = deque()
        for key in self.center_tiles():
            distances[key] = 0
            queue.append(key)
        while queue:
            x, y = queue.popleft()
            tile = self._tiles[(x, y)]
            for direction in Direction:
                if tile.is_wall(direction):
                    continue
                dx, dy = direction.offset
                neighbor = (x + dx, y + dy)
                if neighbor not in distances:
                    distances[neighbor] = distances[(x, y)] + 1
                    queue.append(neighbor)
        return distances

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------
    def full_polygon(self, x: int, y: int) -> Polygon:
        length = self.tile_length
        return rectangle(x * length, y * length, (x + 1) * length, (y + 1) * length)

    def wall_polygons(self, x: int, y: int) -> List[Polygon]:
        return list(self._wall_polygons[(x, y)])

    def corner_polygons(self, x: int, y: int) -> List[Polygon]:
        return list(self._corner_polygons[(x, y)])

    def obstacles_near(self, x: int, y: int, reach: int = 1) -> List[Polygon]:
        """Wall and corner polygons of tile (x, y) and the tiles within reach of it."""
        polygons: List[Polygon] = []
        for tx in range(max(0, x - reach), min(self.width, x + reach + 1)):
            for ty in range(max(0, y - reach), min(self.height, y + reach + 1)):
                polygons.extend(self._wall_polygons[(tx, ty)])
                polygons.extend(self._corner_polygons[(tx, ty)])
        return polygons

    def obstacles_in_bounds(self, xmin: float, ymin: float, xmax: float, ymax: float) -> List[Polygon]:
        """Wall and corner polygons that may intersect the given rectangle."""
        # Walls straddle tile edges, so look one tile beyond the rectangle
        x0, y0 = self.discretize(xmin, ymin)
        x1, y1 = self.discretize(xmax, ymax)
        polygons: List[Polygon] = []
        for tx in range(max(0, x0 - 1), min(self.width, x1 + 2)):
            for ty in range(max(0, y0 - 1), min(self.height, y1 + 2)):
                polygons.extend(self._wall_polygons[(tx, ty)])
                polygons.extend(self._corner_polygons[(tx, ty)])
        return polygons

    def _build_wall_polygons(self, tile: Tile) -> List[Polygon]:
        length = self.tile_length
        half = self.wall_width / 2.0
        x0, y0 = tile.x * length, tile.y * length
        x1, y1 = x0 + length, y0 + length
        spans = {
            Direction.NORTH: (x0 + half, y1 - half, x1 - half, y1 + half),
            Direction.SOUTH: (x0 + half, y0 - half, x1 - half, y0 + half),
            Direction.EAST: (x1 - half, y0 + half, x1 + half, y1 - half),
            Direction.WEST: (x0 - half, y0 + half, x0 + half, y1 - half),
        }
        return [rectangle(*spans[d]) for d in Direction if tile.is_wall(d)]

    def _build_corner_polygons(self, tile: Tile) -> List[Polygon]:
        length = self.tile_length
        half = self.wall_width / 2.0
        corners = [
            (tile.x * length, tile.y * length),
            ((tile.x + 1) * length, tile.y * length),
            ((tile.x + 1) * length, (tile.y + 1) * length),
            (tile.x * length, (tile.y + 1) * length),
        ]
        return [rectangle(cx - half, cy - half, cx + half, cy + half) for cx, cy in corners]
