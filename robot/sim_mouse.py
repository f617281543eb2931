from __future__ import annotations

import time

from mouse_sim.mouse import Mouse
from mouse_sim.world import World
from robot.api import MouseInterface


class SimMouseInterface(MouseInterface):
    """MouseInterface backed by a simulated Mouse inside a running World.

    Sensor latency is charged here, not in the core: read() sleeps for the
    sensor's read time scaled by the world's current sim speed.
    """

    def __init__(self, mouse: Mouse, world: World, charge_read_time: bool = True) -> None:
        self.mouse = mouse
        self.world = world
        self.charge_read_time = charge_read_time

    def set_wheel_speeds(self, left: float, right: float) -> None:
        self.mouse.set_wheel_speeds(left, right)

    def read(self, sensor_name: str) -> float:
        value = self.mouse.read(sensor_name)
        if self.charge_read_time:
            self.delay(self.mouse.get_read_time(sensor_name))
        return value

    def get_read_time(self, sensor_name: str) -> float:
        return self.mouse.get_read_time(sensor_name)

    def delay(self, seconds: float) -> None:
        if seconds < 0.0:
            raise ValueError(f"Cannot delay a negative time: {seconds}")
        if seconds > 0.0:
            time.sleep(seconds / self.world.sim_speed)
