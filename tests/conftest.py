from __future__ import annotations

import math
from typing import Callable, Dict, Optional

import pytest

from mouse_sim.map_generator import generate_open_maze
from mouse_sim.maze import Maze
from mouse_sim.mouse import Mouse, MouseDescription
from mouse_sim.sensors import SensorConfig
from mouse_sim.wheel import Wheel

BASE = 0.09
WHEEL_RADIUS = 0.02


def front_sensor(range_: float = 0.05, read_time: float = 0.002) -> SensorConfig:
    return SensorConfig(
        x=0.0,
        y=0.05,
        radius=0.004,
        range=range_,
        half_width=math.radians(10.0),
        direction=math.pi / 2.0,
        read_time=read_time,
    )


@pytest.fixture
def make_description() -> Callable[..., MouseDescription]:
    """Factory for a small rectangular mouse facing +y, axle midpoint at the origin."""

    def _make(sensors: Optional[Dict[str, SensorConfig]] = None, base: float = BASE) -> MouseDescription:
        return MouseDescription(
            body=[(-0.035, -0.03), (0.035, -0.03), (0.035, 0.04), (-0.035, 0.04)],
            left_wheel=Wheel(radius=WHEEL_RADIUS, width=0.01, x=-base / 2.0, y=0.0),
            right_wheel=Wheel(radius=WHEEL_RADIUS, width=0.01, x=base / 2.0, y=0.0),
            sensors=sensors if sensors is not None else {"front": front_sensor()},
        )

    return _make


@pytest.fixture
def open_maze() -> Maze:
    return Maze.from_map_dict(generate_open_maze(5, 5))


@pytest.fixture
def mouse(make_description, open_maze) -> Mouse:
    return Mouse(make_description(), open_maze)
