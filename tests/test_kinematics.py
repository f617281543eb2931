from __future__ import annotations

import math

import pytest

from mouse_sim.mouse import Mouse


def test_equal_wheel_speeds_drive_straight(mouse: Mouse) -> None:
    # 0.5 rad/s on a 0.02 m wheel: 0.01 m/s surface speed
    x0, y0 = mouse.get_current_translation()
    mouse.set_wheel_speeds(0.5, 0.5)
    mouse.update(1.0)

    x, y = mouse.get_current_translation()
    assert mouse.get_current_rotation() == 0.0
    assert math.isclose(math.hypot(x - x0, y - y0), 0.01, rel_tol=1e-9)
    # Initial heading is +y
    assert math.isclose(x, x0, abs_tol=1e-12)
    assert math.isclose(y, y0 + 0.01, rel_tol=1e-9)


def test_one_wheel_turns_and_moves_along_new_heading(mouse: Mouse) -> None:
    x0, y0 = mouse.get_current_translation()
    mouse.set_wheel_speeds(0.0, 1.0)
    pose = mouse.update(1.0)

    expected_rotation = 0.02 / 0.09
    assert pose.rotation == pytest.approx(0.2222, abs=1e-4)
    assert pose.rotation == pytest.approx(expected_rotation, rel=1e-12)

    dx, dy = pose.x - x0, pose.y - y0
    assert math.hypot(dx, dy) == pytest.approx(0.01, rel=1e-9)
    assert math.atan2(dy, dx) == pytest.approx(math.pi / 2.0 + expected_rotation, rel=1e-9)


def test_opposite_wheel_speeds_spin_in_place(mouse: Mouse) -> None:
    x0, y0 = mouse.get_current_translation()
    mouse.set_wheel_speeds(-1.0, 1.0)
    pose = mouse.update(1.0)

    assert pose.x == pytest.approx(x0, abs=1e-15)
    assert pose.y == pytest.approx(y0, abs=1e-15)
    # (right - left) surface speed over the wheel base
    assert pose.rotation == pytest.approx((0.02 - -0.02) / 0.09 * 1.0, rel=1e-12)


def test_right_faster_turns_counter_clockwise(mouse: Mouse) -> None:
    mouse.set_wheel_speeds(1.0, 2.0)
    mouse.update(0.1)
    assert mouse.get_current_rotation() > 0.0


def test_zero_elapsed_does_not_move(mouse: Mouse) -> None:
    before = mouse.get_pose()
    mouse.set_wheel_speeds(3.0, -1.0)
    assert mouse.update(0.0) == before


def test_update_rejects_bad_elapsed(mouse: Mouse) -> None:
    with pytest.raises(ValueError):
        mouse.update(-0.1)
    with pytest.raises(ValueError):
        mouse.update(float("inf"))


def _arc_error(mouse: Mouse, tick: float, total: float) -> float:
    """Distance between the integrated position and the exact circular arc."""
    x0, y0 = mouse.get_current_translation()
    left, right = 0.25, 0.75
    mouse.set_wheel_speeds(left, right)
    steps = int(round(total / tick))
    for _ in range(steps):
        mouse.update(tick)

    v = (left + right) * 0.02 / 2.0
    w = (right - left) * 0.02 / 0.09
    h0 = math.pi / 2.0
    ex = x0 + v / w * (math.sin(h0 + w * total) - math.sin(h0))
    ey = y0 - v / w * (math.cos(h0 + w * total) - math.cos(h0))
    x, y = mouse.get_current_translation()
    assert mouse.get_current_rotation() == pytest.approx(w * total, rel=1e-9)
    return math.hypot(x - ex, y - ey)


def test_integration_error_shrinks_with_tick(make_description, open_maze) -> None:
    coarse = _arc_error(Mouse(make_description(), open_maze), tick=0.1, total=2.0)
    fine = _arc_error(Mouse(make_description(), open_maze), tick=0.001, total=2.0)

    # First order: error is about v * w * total * tick / 2
    v, w = 0.01, 0.5 * 0.02 / 0.09
    assert fine < v * w * 2.0 * 0.001
    assert coarse < v * w * 2.0 * 0.1
    assert fine < coarse
