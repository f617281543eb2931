from __future__ import annotations

import math

import numpy as np
import pytest

from mouse_sim.errors import ConfigurationFault
from mouse_sim.geometry_utils import (
    Polygon,
    convex_hull,
    convex_polygons_overlap,
    fan,
    point_in_convex_polygon,
    polygons_intersect,
    rectangle,
    sight_line_hit,
)


def test_rotate_then_unrotate_restores_polygon() -> None:
    poly = Polygon([(0.1, 0.2), (0.4, 0.1), (0.5, 0.6), (0.2, 0.45)])
    pivot = (0.3, -0.2)
    for theta in (0.0, 0.3, -1.7, math.pi, 5.0):
        back = poly.rotate_around_point(theta, pivot).rotate_around_point(-theta, pivot)
        assert back.almost_equal(poly, tol=1e-12)


def test_rotation_is_counter_clockwise() -> None:
    poly = Polygon([(1.0, 0.0), (2.0, 0.0), (1.0, 1.0)])
    rotated = poly.rotate_around_point(math.pi / 2.0, (0.0, 0.0))
    assert rotated.almost_equal(Polygon([(0.0, 1.0), (0.0, 2.0), (-1.0, 1.0)]), tol=1e-12)


def test_translations_compose() -> None:
    poly = rectangle(0.0, 0.0, 1.0, 2.0)
    v1 = (0.25, -1.5)
    v2 = (-3.0, 0.125)
    twice = poly.translate(v1).translate(v2)
    once = poly.translate((v1[0] + v2[0], v1[1] + v2[1]))
    assert twice.almost_equal(once, tol=1e-12)


def test_transforms_return_new_polygons() -> None:
    poly = rectangle(0.0, 0.0, 1.0, 1.0)
    poly.translate((5.0, 5.0))
    poly.rotate_around_point(1.0, (0.0, 0.0))
    assert poly == rectangle(0.0, 0.0, 1.0, 1.0)
    with pytest.raises(ValueError):
        poly.vertices[0, 0] = 3.0


def test_area_ignores_orientation() -> None:
    ccw = rectangle(0.0, 0.0, 2.0, 3.0)
    cw = Polygon(list(reversed(ccw.points())))
    assert ccw.area() == pytest.approx(6.0)
    assert cw.area() == pytest.approx(6.0)
    assert cw.signed_area() == pytest.approx(-6.0)


def test_polygon_rejects_bad_input() -> None:
    with pytest.raises(ConfigurationFault):
        Polygon([(0.0, 0.0), (1.0, 1.0)])
    with pytest.raises(ConfigurationFault):
        Polygon([(0.0, 0.0), (1.0, float("nan")), (1.0, 0.0)])


def test_convex_hull_contains_every_input_point() -> None:
    rng = np.random.default_rng(0)
    polygons = [Polygon(rng.uniform(-1.0, 1.0, size=(5, 2))) for _ in range(6)]
    hull = convex_hull(polygons)
    assert hull.signed_area() > 0.0
    for poly in polygons:
        for x, y in poly.points():
            assert point_in_convex_polygon(x, y, hull)


def test_convex_hull_drops_interior_colinear_and_duplicate_points() -> None:
    square = rectangle(0.0, 0.0, 1.0, 1.0)
    inner = Polygon([(0.2, 0.2), (0.5, 0.0), (0.5, 0.0), (0.8, 0.3)])
    hull = convex_hull([square, inner])
    assert sorted(hull.points()) == sorted(square.points())
    assert hull.points()[0] == (0.0, 0.0)


def test_convex_hull_of_colinear_points_is_a_fault() -> None:
    line = Polygon([(0.0, 0.0), (1.0, 1.0), (2.0, 2.0)])
    with pytest.raises(ConfigurationFault):
        convex_hull([line])


def test_convex_overlap() -> None:
    a = rectangle(0.0, 0.0, 1.0, 1.0)
    assert convex_polygons_overlap(a, rectangle(0.5, 0.5, 2.0, 2.0))
    assert convex_polygons_overlap(a, rectangle(1.0, 0.0, 2.0, 1.0))  # touching
    assert not convex_polygons_overlap(a, rectangle(1.01, 0.0, 2.0, 1.0))
    diamond = Polygon([(1.6, 0.5), (2.1, 1.0), (1.6, 1.5), (1.1, 1.0)])
    assert not convex_polygons_overlap(a, diamond)


def test_hull_over_approximates_a_concave_shape() -> None:
    # L shape with a notch in the top-right corner
    ell = Polygon([(0.0, 0.0), (2.0, 0.0), (2.0, 1.0), (1.0, 1.0), (1.0, 2.0), (0.0, 2.0)])
    in_notch = rectangle(1.4, 1.4, 1.8, 1.8)
    assert not polygons_intersect(ell, in_notch)
    assert convex_polygons_overlap(convex_hull([ell]), in_notch)


def test_sight_line_hit() -> None:
    wall = rectangle(1.0, -1.0, 1.2, 1.0)
    assert sight_line_hit(0.0, 0.0, 2.0, 0.0, [wall]) == pytest.approx(0.5)
    assert sight_line_hit(0.0, 0.0, 0.5, 0.0, [wall]) == 1.0
    assert sight_line_hit(1.1, 0.0, 2.0, 0.0, [wall]) == 0.0


def test_fan_has_apex_first_and_expected_area() -> None:
    cone = fan(0.0, 0.0, 1.0, math.pi / 2.0, math.radians(30.0), arc_points=61)
    assert cone.points()[0] == (0.0, 0.0)
    sector = 0.5 * math.radians(60.0)
    assert cone.area() == pytest.approx(sector, rel=1e-3)
