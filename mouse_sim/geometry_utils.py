"""
Geometry kernel for the mouse simulator.

Provides the immutable Polygon value type (translate, rotate, area),
convex hull construction, polygon overlap tests, segment/ray intersection
and the shape factories used to describe mice and maze walls.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple
import math

import numpy as np

from .errors import ConfigurationFault

Point = Tuple[float, float]

EPSILON = 1e-12


# ---------------------------------------------------------------------------
# Angle helpers
# ---------------------------------------------------------------------------


def wrap_angle(theta: float) -> float:
    """Wrap angle to [-pi, pi] radians."""
    return (theta + math.pi) % (2.0 * math.pi) - math.pi


def normalize_angle_positive(theta: float) -> float:
    """Wrap angle to [0, 2*pi)."""
    t = theta % (2.0 * math.pi)
    if t < 0.0:
        t += 2.0 * math.pi
    return t


# ---------------------------------------------------------------------------
# Polygon value type
# ---------------------------------------------------------------------------


class Polygon:
    """Immutable simple polygon, stored as a read-only (N, 2) float array.

    Vertex order is preserved exactly as given; no orientation or convexity
    is implied. Transform methods return new polygons.

    Raises
    ------
    ConfigurationFault
        If fewer than three vertices are given or any coordinate is not finite.
    """

    __slots__ = ("_vertices",)

    def __init__(self, vertices: Iterable[Sequence[float]]) -> None:
        arr = np.array([tuple(v) for v in vertices], dtype=float)
        if arr.ndim != 2 or arr.shape[0] < 3 or arr.shape[1] != 2:
            raise ConfigurationFault(
                f"A polygon needs at least 3 two-dimensional vertices, got shape {arr.shape}"
            )
        if not np.all(np.isfinite(arr)):
            raise ConfigurationFault("Polygon vertices must be finite numbers")
        arr.setflags(write=False)
        self._vertices = arr

    @classmethod
    def _from_array(cls, arr: np.ndarray) -> "Polygon":
        # Trusted fast path for transforms of an already valid polygon
        poly = cls.__new__(cls)
        arr.setflags(write=False)
        poly._vertices = arr
        return poly

    @property
    def vertices(self) -> np.ndarray:
        """Read-only view of the vertex array."""
        return self._vertices

    def points(self) -> List[Point]:
        return [(float(x), float(y)) for x, y in self._vertices]

    def __len__(self) -> int:
        return int(self._vertices.shape[0])

    def __iter__(self) -> Iterator[Point]:
        return iter(self.points())

    def __repr__(self) -> str:
        pts = ", ".join(f"({x:.4f}, {y:.4f})" for x, y in self.points())
        return f"Polygon([{pts}])"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Polygon):
            return NotImplemented
        return np.array_equal(self._vertices, other._vertices)

    __hash__ = None  # type: ignore[assignment]

    def almost_equal(self, other: "Polygon", tol: float = 1e-9) -> bool:
        """True if both polygons have the same vertices (in order) within tol."""
        if len(self) != len(other):
            return False
        return bool(np.allclose(self._vertices, other._vertices, rtol=0.0, atol=tol))

    # ------------------------------------------------------------------
    # Rigid transforms
    # ------------------------------------------------------------------
    def translate(self, vector: Sequence[float]) -> "Polygon":
        """Shift every vertex by vector (dx, dy)."""
        dx, dy = float(vector[0]), float(vector[1])
        return Polygon._from_array(self._vertices + np.array([dx, dy]))

    def rotate_around_point(self, angle: float, pivot: Sequence[float]) -> "Polygon":
        """Rotate every vertex by angle (radians, CCW positive) about pivot."""
        px, py = float(pivot[0]), float(pivot[1])
        c = math.cos(angle)
        s = math.sin(angle)
        rot = np.array([[c, -s], [s, c]])
        centered = self._vertices - np.array([px, py])
        return Polygon._from_array(centered @ rot.T + np.array([px, py]))

    # ------------------------------------------------------------------
    # Measures
    # ------------------------------------------------------------------
    def signed_area(self) -> float:
        """Shoelace area; positive for counter-clockwise vertex order."""
        return polygon_signed_area(self._vertices)

    def area(self) -> float:
        """Non-negative area (orientation ignored)."""
        return abs(self.signed_area())

    def bounds(self) -> Tuple[float, float, float, float]:
        """Return (xmin, ymin, xmax, ymax)."""
        xmin, ymin = self._vertices.min(axis=0)
        xmax, ymax = self._vertices.max(axis=0)
        return float(xmin), float(ymin), float(xmax), float(ymax)

    def centroid(self) -> Point:
        return polygon_centroid(self.points())

    def edges(self) -> Iterator[Tuple[Point, Point]]:
        pts = self.points()
        n = len(pts)
        for i in range(n):
            yield pts[i], pts[(i + 1) % n]

    def contains_point(self, px: float, py: float) -> bool:
        return point_in_polygon(px, py, self.points())


def polygon_signed_area(vertices: np.ndarray) -> float:
    """Shoelace formula over an (N, 2) array, positive for CCW order."""
    x = vertices[:, 0]
    y = vertices[:, 1]
    return 0.5 * float(np.dot(x, np.roll(y, -1)) - np.dot(np.roll(x, -1), y))


def require_positive_area(polygon: Polygon, what: str) -> Polygon:
    """Return polygon unchanged, or raise ConfigurationFault if it has no area."""
    if polygon.area() <= EPSILON:
        raise ConfigurationFault(f"{what} has zero area")
    return polygon


# ---------------------------------------------------------------------------
# Convex hull
# ---------------------------------------------------------------------------


def _cross(o: Point, a: Point, b: Point) -> float:
    return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])


def convex_hull(polygons: Iterable[Polygon]) -> Polygon:
    """Smallest convex polygon enclosing every vertex of every input polygon.

    Andrew's monotone chain. The result is counter-clockwise, starts at the
    lowest-x (then lowest-y) vertex and drops duplicate and colinear points,
    so the output is deterministic for a given vertex set.

    Raises
    ------
    ConfigurationFault
        If the inputs are empty or all vertices are colinear.
    """
    pts = sorted({(float(x), float(y)) for poly in polygons for x, y in poly.vertices})
    if len(pts) < 3:
        raise ConfigurationFault("Convex hull needs at least 3 distinct points")

    lower: List[Point] = []
    for p in pts:
        while len(lower) >= 2 and _cross(lower[-2], lower[-1], p) <= EPSILON:
            lower.pop()
        lower.append(p)

    upper: List[Point] = []
    for p in reversed(pts):
        while len(upper) >= 2 and _cross(upper[-2], upper[-1], p) <= EPSILON:
            upper.pop()
        upper.append(p)

    hull = lower[:-1] + upper[:-1]
    if len(hull) < 3:
        raise ConfigurationFault("Convex hull of colinear points is degenerate")
    return Polygon(hull)


# ---------------------------------------------------------------------------
# Overlap tests
# ---------------------------------------------------------------------------


def _project(vertices: np.ndarray, axis: np.ndarray) -> Tuple[float, float]:
    dots = vertices @ axis
    return float(dots.min()), float(dots.max())


def convex_polygons_overlap(a: Polygon, b: Polygon) -> bool:
    """Separating-axis test for two convex polygons.

    Touching boundaries count as overlap.
    """
    for poly in (a, b):
        verts = poly.vertices
        edges = np.roll(verts, -1, axis=0) - verts
        for ex, ey in edges:
            length = math.hypot(ex, ey)
            if length < EPSILON:
                continue
            axis = np.array([-ey / length, ex / length])
            a_min, a_max = _project(a.vertices, axis)
            b_min, b_max = _project(b.vertices, axis)
            if a_max < b_min or b_max < a_min:
                return False
    return True


def polygons_intersect(a: Polygon, b: Polygon) -> bool:
    """Overlap test for arbitrary simple polygons (edge crossing or containment)."""
    a_xmin, a_ymin, a_xmax, a_ymax = a.bounds()
    b_xmin, b_ymin, b_xmax, b_ymax = b.bounds()
    if not rect_overlap(a_xmin, a_ymin, a_xmax, a_ymax, b_xmin, b_ymin, b_xmax, b_ymax):
        return False
    for (ax1, ay1), (ax2, ay2) in a.edges():
        for (bx1, by1), (bx2, by2) in b.edges():
            if segment_intersect(ax1, ay1, ax2, ay2, bx1, by1, bx2, by2) is not None:
                return True
    ax, ay = a.points()[0]
    bx, by = b.points()[0]
    return b.contains_point(ax, ay) or a.contains_point(bx, by)


def rect_overlap(
    a_xmin: float,
    a_ymin: float,
    a_xmax: float,
    a_ymax: float,
    b_xmin: float,
    b_ymin: float,
    b_xmax: float,
    b_ymax: float,
) -> bool:
    """Return True if two axis-aligned rectangles overlap."""
    if a_xmax < b_xmin or b_xmax < a_xmin:
        return False
    if a_ymax < b_ymin or b_ymax < a_ymin:
        return False
    return True


# ---------------------------------------------------------------------------
# Segment intersection and ray casting
# ---------------------------------------------------------------------------


@dataclass
class SegmentIntersection:
    """Result of segment-segment intersection test."""

    intersects: bool
    x: float
    y: float
    t_a: float  # parameter on segment A [0,1]
    t_b: float  # parameter on segment B [0,1]


def segment_intersect(
    a_x1: float,
    a_y1: float,
    a_x2: float,
    a_y2: float,
    b_x1: float,
    b_y1: float,
    b_x2: float,
    b_y2: float,
) -> Optional[SegmentIntersection]:
    """
    Find intersection of line segment A (a_x1,a_y1)-(a_x2,a_y2)
    and segment B (b_x1,b_y1)-(b_x2,b_y2).
    Returns SegmentIntersection or None if no intersection (parallel segments
    are reported as not intersecting).
    """
    dx_a = a_x2 - a_x1
    dy_a = a_y2 - a_y1
    dx_b = b_x2 - b_x1
    dy_b = b_y2 - b_y1

    denom = dx_a * dy_b - dy_a * dx_b
    if abs(denom) < 1e-18:
        return None

    t_num = (b_x1 - a_x1) * dy_b - (b_y1 - a_y1) * dx_b
    s_num = (b_x1 - a_x1) * dy_a - (b_y1 - a_y1) * dx_a
    t = t_num / denom
    s = s_num / denom

    if 0.0 <= t <= 1.0 and 0.0 <= s <= 1.0:
        x = a_x1 + t * dx_a
        y = a_y1 + t * dy_a
        return SegmentIntersection(intersects=True, x=x, y=y, t_a=t, t_b=s)
    return None


def sight_line_hit(
    ox: float,
    oy: float,
    ex: float,
    ey: float,
    obstacles: Sequence[Polygon],
) -> float:
    """Fraction in [0, 1] of the sight line (ox,oy)->(ex,ey) that is unobstructed.

    Returns 1.0 when nothing is hit, 0.0 when the origin lies inside an obstacle.
    """
    nearest = 1.0
    for poly in obstacles:
        if poly.contains_point(ox, oy):
            return 0.0
        for (x1, y1), (x2, y2) in poly.edges():
            hit = segment_intersect(ox, oy, ex, ey, x1, y1, x2, y2)
            if hit is not None and hit.t_a < nearest:
                nearest = hit.t_a
    return nearest


# ---------------------------------------------------------------------------
# Point helpers
# ---------------------------------------------------------------------------


def polygon_centroid(vertices: List[Point]) -> Point:
    """Compute centroid of a simple polygon (list of (x,y) vertices)."""
    n = len(vertices)
    if n == 0:
        return 0.0, 0.0
    if n == 1:
        return vertices[0][0], vertices[0][1]
    ax = 0.0
    ay = 0.0
    signed_area = 0.0
    for i in range(n):
        j = (i + 1) % n
        xi, yi = vertices[i]
        xj, yj = vertices[j]
        cross = xi * yj - xj * yi
        signed_area += cross
        ax += (xi + xj) * cross
        ay += (yi + yj) * cross
    if abs(signed_area) < 1e-18:
        return vertices[0][0], vertices[0][1]
    signed_area *= 0.5
    ax /= 6.0 * signed_area
    ay /= 6.0 * signed_area
    return ax, ay


def point_in_polygon(px: float, py: float, vertices: List[Point]) -> bool:
    """
    Ray-casting test: True if (px, py) is strictly inside polygon (list of (x,y) in order).
    """
    n = len(vertices)
    if n < 3:
        return False
    inside = False
    j = n - 1
    for i in range(n):
        xi, yi = vertices[i]
        xj, yj = vertices[j]
        if ((yi > py) != (yj > py)) and (
            px < (xj - xi) * (py - yi) / (yj - yi) + xi
        ):
            inside = not inside
        j = i
    return inside


def point_in_convex_polygon(px: float, py: float, polygon: Polygon, tol: float = 1e-9) -> bool:
    """True if (px, py) lies inside or on the boundary of a convex polygon."""
    sign = 0.0
    for (x1, y1), (x2, y2) in polygon.edges():
        cross = (x2 - x1) * (py - y1) - (y2 - y1) * (px - x1)
        if abs(cross) <= tol:
            continue
        if sign == 0.0:
            sign = cross
        elif (cross > 0.0) != (sign > 0.0):
            return False
    return True


def polar_to_cartesian(distance: float, angle: float) -> Point:
    return distance * math.cos(angle), distance * math.sin(angle)


# ---------------------------------------------------------------------------
# Shape factories
# ---------------------------------------------------------------------------


def rectangle(xmin: float, ymin: float, xmax: float, ymax: float) -> Polygon:
    """Axis-aligned rectangle, counter-clockwise from bottom-left."""
    return Polygon([(xmin, ymin), (xmax, ymin), (xmax, ymax), (xmin, ymax)])


def circle(cx: float, cy: float, radius: float, sides: int = 8) -> Polygon:
    """Regular polygon approximating a circle."""
    sides = max(3, int(sides))
    return Polygon(
        [
            (cx + radius * math.cos(2.0 * math.pi * i / sides), cy + radius * math.sin(2.0 * math.pi * i / sides))
            for i in range(sides)
        ]
    )


def fan(
    apex_x: float,
    apex_y: float,
    radius: float,
    direction: float,
    half_width: float,
    arc_points: int = 9,
) -> Polygon:
    """Circular sector with the apex as vertex 0, then arc points CCW.

    Parameters
    ----------
    direction : float
        Center line of the sector (radians, CCW from +x).
    half_width : float
        Half the opening angle (radians).
    arc_points : int
        Number of vertices along the arc (at least 2).
    """
    arc_points = max(2, int(arc_points))
    start = direction - half_width
    step = 2.0 * half_width / (arc_points - 1)
    vertices: List[Point] = [(apex_x, apex_y)]
    for i in range(arc_points):
        angle = start + i * step
        vertices.append((apex_x + radius * math.cos(angle), apex_y + radius * math.sin(angle)))
    return Polygon(vertices)
