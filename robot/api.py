from __future__ import annotations

from abc import ABC, abstractmethod


class MouseInterface(ABC):
    """Sense/act interface consumed by maze-solving algorithms.

    Readings are raw occlusion ratios; deciding whether a wall is present is
    up to the algorithm.
    """

    @abstractmethod
    def set_wheel_speeds(self, left: float, right: float) -> None:
        """Set left/right wheel angular velocities (rad/s, positive drives forward)."""

    @abstractmethod
    def read(self, sensor_name: str) -> float:
        """Return occlusion of the named sensor, 0.0 (clear) to 1.0 (blocked)."""

    @abstractmethod
    def get_read_time(self, sensor_name: str) -> float:
        """Return the latency (seconds) of one reading of the named sensor."""

    @abstractmethod
    def delay(self, seconds: float) -> None:
        """Let the given amount of simulated time pass."""

    def stop(self) -> None:
        """Stop both wheels (safe state)."""
        self.set_wheel_speeds(0.0, 0.0)
