from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
import bisect
import math

from .errors import ConfigurationFault, GeometryFault
from .geometry_utils import (
    EPSILON,
    Point,
    Polygon,
    circle,
    fan,
    normalize_angle_positive,
    rect_overlap,
    require_positive_area,
    segment_intersect,
    sight_line_hit,
)
from .maze import Maze

# Sight lines are cast this far (radians) to either side of each corner
SWEEP_EPSILON = 1e-9
# Explicit views must start within this distance of the mount point (meters)
MOUNT_TOLERANCE = 1e-9


@dataclass
class SensorConfig:
    """Configuration for a single range sensor.

    Attributes
    ----------
    x, y : float
        Mount point in the mouse description frame (meters).
    radius : float
        Radius of the sensor body outline (meters).
    range : float
        Length of the view cone (meters).
    half_width : float
        Half the opening angle of the view cone (radians).
    direction : float
        Center line of the view cone (radians, CCW from +x, at mouse rotation 0).
    read_time : float
        Sampling latency charged to the caller per reading (seconds).
    arc_points : int
        Number of sight lines along the far edge of a generated cone.
    view : list of (x, y), optional
        Explicit view outline: the mount point (x, y) first, then the far
        boundary counter-clockwise. Overrides range/half_width.
    """

    x: float
    y: float
    radius: float
    range: float
    half_width: float
    direction: float
    read_time: float = 0.0
    arc_points: int = 9
    view: Optional[List[Point]] = None


class Sensor:
    """Area-based occlusion sensor.

    The reading is the fraction of the full view cone hidden behind maze
    walls. The visible part is found with an angular sweep from the apex:
    sight lines run to every far vertex of the cone, to both sides of every
    obstacle corner inside the cone, and to both sides of every point where
    an obstacle edge crosses the far boundary. Between two neighbouring
    sight lines the nearest surface is a single straight edge, so the
    clipped outline is exact for polygonal walls.

    Raises
    ------
    ConfigurationFault
        If the geometry is degenerate, the cone has no area, an explicit view
        does not start at the mount point or the read time is negative.
    """

    def __init__(self, config: SensorConfig, offset: Tuple[float, float] = (0.0, 0.0)) -> None:
        if not (config.read_time >= 0.0 and math.isfinite(config.read_time)):
            raise ConfigurationFault(f"Sensor read_time must be >= 0, got {config.read_time}")
        if not config.radius > 0.0:
            raise ConfigurationFault(f"Sensor radius must be positive, got {config.radius}")
        self.config = config
        dx, dy = offset

        if config.view is not None:
            view = Polygon(config.view)
            _check_explicit_view(view, config.x, config.y)
        else:
            if not (config.range > 0.0 and 0.0 < config.half_width < math.pi / 2.0):
                raise ConfigurationFault(
                    f"Sensor cone needs range > 0 and 0 < half_width < pi/2, "
                    f"got range={config.range}, half_width={config.half_width}"
                )
            view = fan(config.x, config.y, config.range, config.direction, config.half_width, config.arc_points)
        self._view = require_positive_area(view.translate((dx, dy)), "Sensor view cone")
        self._polygon = circle(config.x + dx, config.y + dy, config.radius)

    @property
    def read_time(self) -> float:
        return self.config.read_time

    def polygon(self) -> Polygon:
        """Sensor body outline at construction pose."""
        return self._polygon

    def view_polygon(self) -> Polygon:
        """Full (unobstructed) view cone at construction pose, apex first."""
        return self._view

    # ------------------------------------------------------------------
    # Occlusion
    # ------------------------------------------------------------------
    def current_view(self, full_view: Polygon, maze: Maze) -> Polygon:
        """Clip a world-frame full view cone against the maze walls.

        Parameters
        ----------
        full_view : Polygon
            The view cone already transformed to the mouse's current pose.
        maze : Maze
            Maze whose walls and posts block the view.
        """
        vertices = full_view.points()
        (ax, ay), far = vertices[0], vertices[1:]
        xmin, ymin, xmax, ymax = full_view.bounds()
        obstacles = [
            poly
            for poly in maze.obstacles_in_bounds(xmin, ymin, xmax, ymax)
            if rect_overlap(xmin, ymin, xmax, ymax, *poly.bounds())
        ]

        offsets = _sweep_offsets(ax, ay, far)
        span = offsets[-1]
        rays: List[Tuple[float, Point]] = list(zip(offsets, far))
        for critical in _critical_offsets(ax, ay, far, offsets, obstacles):
            for angle in (critical - SWEEP_EPSILON, critical + SWEEP_EPSILON):
                if 0.0 < angle < span:
                    end = _far_point(ax, ay, far, offsets, angle)
                    if end is not None:
                        rays.append((angle, end))
        rays.sort(key=lambda ray: ray[0])

        clipped: List[Point] = [(ax, ay)]
        for _, (vx, vy) in rays:
            t = sight_line_hit(ax, ay, vx, vy, obstacles)
            clipped.append((ax + t * (vx - ax), ay + t * (vy - ay)))
        return Polygon(clipped)

    def read(self, full_view: Polygon, maze: Maze) -> float:
        """Occlusion in [0, 1]: 0.0 when nothing is in view, 1.0 when fully blocked."""
        full_area = full_view.area()
        if full_area <= EPSILON:
            raise GeometryFault("Sensor full view has zero area")
        visible = self.current_view(full_view, maze).area()
        ratio = 1.0 - visible / full_area
        if not math.isfinite(ratio):
            raise GeometryFault(f"Occlusion ratio is not finite ({visible} / {full_area})")
        return max(0.0, min(1.0, ratio))


# ---------------------------------------------------------------------------
# Angular sweep helpers
# ---------------------------------------------------------------------------


def _sweep_offsets(ax: float, ay: float, far: List[Point]) -> List[float]:
    """Bearing of each far vertex, CCW from the first one (radians)."""
    base = math.atan2(far[0][1] - ay, far[0][0] - ax)
    offsets = [0.0]
    for vx, vy in far[1:]:
        offsets.append(normalize_angle_positive(math.atan2(vy - ay, vx - ax) - base))
    return offsets


def _check_explicit_view(view: Polygon, mount_x: float, mount_y: float) -> None:
    points = view.points()
    (ax, ay), far = points[0], points[1:]
    if not (math.isclose(ax, mount_x, abs_tol=MOUNT_TOLERANCE) and math.isclose(ay, mount_y, abs_tol=MOUNT_TOLERANCE)):
        raise ConfigurationFault(
            f"Explicit sensor view must start at the mount point ({mount_x}, {mount_y}), got ({ax}, {ay})"
        )
    offsets = _sweep_offsets(ax, ay, far)
    increasing = all(b > a for a, b in zip(offsets, offsets[1:]))
    if not (increasing and offsets[-1] < math.pi):
        raise ConfigurationFault(
            "Explicit sensor view must list its far boundary counter-clockwise "
            "as seen from the mount point, spanning less than pi"
        )


def _critical_offsets(
    ax: float,
    ay: float,
    far: List[Point],
    offsets: List[float],
    obstacles: List[Polygon],
) -> List[float]:
    """Bearings where the nearest visible surface can change."""
    base = math.atan2(far[0][1] - ay, far[0][0] - ax)
    points: List[Point] = []
    for poly in obstacles:
        points.extend(poly.points())
        for (x1, y1), (x2, y2) in poly.edges():
            for (fx1, fy1), (fx2, fy2) in zip(far, far[1:]):
                hit = segment_intersect(x1, y1, x2, y2, fx1, fy1, fx2, fy2)
                if hit is not None:
                    points.append((hit.x, hit.y))

    span = offsets[-1]
    critical = set()
    for px, py in points:
        if math.hypot(px - ax, py - ay) <= EPSILON:
            continue
        angle = normalize_angle_positive(math.atan2(py - ay, px - ax) - base)
        if angle <= span + SWEEP_EPSILON:
            critical.add(angle)
    return sorted(critical)


def _far_point(
    ax: float,
    ay: float,
    far: List[Point],
    offsets: List[float],
    angle: float,
) -> Optional[Point]:
    """Where the sight line at the given sweep bearing meets the far boundary."""
    i = bisect.bisect_right(offsets, angle) - 1
    if i < 0 or i >= len(far) - 1:
        return None
    (x1, y1), (x2, y2) = far[i], far[i + 1]
    bearing = math.atan2(far[0][1] - ay, far[0][0] - ax) + angle
    ux, uy = math.cos(bearing), math.sin(bearing)
    # Ray (ax, ay) + s * u against the chord far[i] -> far[i + 1]
    ex, ey = x2 - x1, y2 - y1
    denom = ux * ey - uy * ex
    if abs(denom) <= EPSILON:
        return None
    s = ((x1 - ax) * ey - (y1 - ay) * ex) / denom
    return ax + s * ux, ay + s * uy


def sensor_config_from_dict(data: Dict[str, Any]) -> SensorConfig:
    """Build a SensorConfig from a description dict (angles in degrees)."""
    view = data.get("view")
    return SensorConfig(
        x=float(data["x"]),
        y=float(data["y"]),
        radius=float(data.get("radius", 0.005)),
        range=float(data.get("range", 0.0)),
        half_width=math.radians(float(data.get("half_width", 0.0))),
        direction=math.radians(float(data.get("direction", 90.0))),
        read_time=float(data.get("read_time", 0.0)),
        arc_points=int(data.get("arc_points", 9)),
        view=[(float(p[0]), float(p[1])) for p in view] if view is not None else None,
    )

