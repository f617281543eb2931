from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple
import math
import threading

from .errors import ConfigurationFault
from .geometry_utils import Polygon, rectangle


@dataclass(frozen=True)
class Wheel:
    """Fixed geometry of one drive wheel.

    Attributes
    ----------
    radius : float
        Wheel radius (meters).
    width : float
        Tread width (meters), used only for the wheel outline.
    x, y : float
        Mount point (center of the wheel) at construction time (meters).
    """

    radius: float
    width: float
    x: float
    y: float

    # Heading of "forward" relative to the mouse rotation: the axle lies
    # along x, so a mouse at rotation 0 drives toward +y.
    INITIAL_ROTATION = math.pi / 2.0

    def __post_init__(self) -> None:
        if not (self.radius > 0.0 and self.width > 0.0):
            raise ConfigurationFault(
                f"Wheel radius and width must be positive, got radius={self.radius}, width={self.width}"
            )

    def polygon(self) -> Polygon:
        """Side-on outline: a diameter-long, width-wide rectangle on the mount point."""
        half_w = self.width / 2.0
        return rectangle(self.x - half_w, self.y - self.radius, self.x + half_w, self.y + self.radius)

    def surface_speed(self, angular_velocity: float) -> float:
        """Linear speed of the tread (m/s); positive drives the mouse forward."""
        return angular_velocity * self.radius

    def translated(self, dx: float, dy: float) -> "Wheel":
        return Wheel(radius=self.radius, width=self.width, x=self.x + dx, y=self.y + dy)


class DriveActuator:
    """Left/right wheel angular velocities, read and written only as a pair.

    The controller thread writes with set() while the simulation thread reads
    with get(); both hold the same lock for a plain field copy so neither
    side can observe half of an update.
    """

    def __init__(self, max_angular_velocity: Optional[float] = None) -> None:
        if max_angular_velocity is not None and not max_angular_velocity > 0.0:
            raise ConfigurationFault(
                f"max_angular_velocity must be positive, got {max_angular_velocity}"
            )
        self.max_angular_velocity = max_angular_velocity
        self._lock = threading.Lock()
        self._left = 0.0
        self._right = 0.0

    def set(self, left: float, right: float) -> None:
        """Write both wheel angular velocities (rad/s) as one unit."""
        left = self._limit(float(left))
        right = self._limit(float(right))
        with self._lock:
            self._left = left
            self._right = right

    def get(self) -> Tuple[float, float]:
        """Return (left, right) angular velocities (rad/s) from a single write."""
        with self._lock:
            return self._left, self._right

    def _limit(self, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError(f"Wheel speed must be finite, got {value}")
        if self.max_angular_velocity is None:
            return value
        return max(-self.max_angular_velocity, min(self.max_angular_velocity, value))
