from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import logging
import math

import yaml

from .errors import ConfigurationFault, QueryFault
from .geometry_utils import Point, Polygon, convex_hull, polar_to_cartesian, require_positive_area
from .maze import Direction, Maze
from .sensors import Sensor, SensorConfig, sensor_config_from_dict
from .wheel import DriveActuator, Wheel

logger = logging.getLogger(__name__)

# Axle offsets closer than this are treated as identical
AXLE_TOLERANCE = 1e-9


@dataclass(frozen=True)
class MousePose:
    """Pose of the mouse in maze coordinates.

    Attributes
    ----------
    x, y : float
        Axle midpoint (meters).
    rotation : float
        Rotation from the starting orientation (radians, CCW positive, not wrapped).
    """

    x: float
    y: float
    rotation: float

    @property
    def heading(self) -> float:
        """Direction of forward travel (radians, CCW from +x)."""
        return self.rotation + Wheel.INITIAL_ROTATION


@dataclass
class MouseDescription:
    """Declarative description of a mouse, in its own description frame."""

    body: List[Point]
    left_wheel: Wheel
    right_wheel: Wheel
    sensors: Dict[str, SensorConfig] = field(default_factory=dict)
    max_wheel_speed: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MouseDescription":
        """Parse a description dict (lengths in meters, angles in degrees).

        Raises
        ------
        ConfigurationFault
            On missing keys, malformed values or repeated sensor names.
        """
        try:
            wheels = data["wheels"]
            left = _wheel_from_dict(wheels["left"])
            right = _wheel_from_dict(wheels["right"])
            body = [(float(p[0]), float(p[1])) for p in data["body"]]

            sensors: Dict[str, SensorConfig] = {}
            for entry in data.get("sensors") or []:
                name = str(entry["name"])
                if name in sensors:
                    raise ConfigurationFault(f"Sensor name {name!r} is used more than once")
                sensors[name] = sensor_config_from_dict(entry)

            max_speed = data.get("max_wheel_speed")
            return cls(
                body=body,
                left_wheel=left,
                right_wheel=right,
                sensors=sensors,
                max_wheel_speed=float(max_speed) if max_speed is not None else None,
            )
        except ConfigurationFault:
            raise
        except (KeyError, TypeError, ValueError, IndexError) as exc:
            raise ConfigurationFault(f"Malformed mouse description: {exc!r}") from exc

    @classmethod
    def from_yaml_file(cls, path: str) -> "MouseDescription":
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if not isinstance(data, dict):
            raise ConfigurationFault(f"{path} does not contain a mouse description mapping")
        return cls.from_dict(data.get("mouse", data))


def _wheel_from_dict(data: Dict[str, Any]) -> Wheel:
    return Wheel(
        radius=float(data["radius"]),
        width=float(data.get("width", 0.01)),
        x=float(data["x"]),
        y=float(data["y"]),
    )


class Mouse:
    """Differential-drive mouse: body, two wheels on one axle and named sensors.

    Two threads act on a mouse. The controller calls set_wheel_speeds(),
    read() and get_read_time(); the simulation calls update(). Only the
    wheel-speed pair is synchronized. A sensor reading may see a pose that
    the simulation is replacing at the same moment; every pose is a single
    immutable MousePose, so readers never see a torn pose.

    Parameters
    ----------
    description : MouseDescription
        Shapes in the description frame.
    maze : Maze
        Maze used for sensor occlusion (never modified).
    start : (x, y), optional
        Where the axle midpoint is placed; defaults to the center of tile (0, 0).

    Raises
    ------
    ConfigurationFault
        If the wheels are not on one straight axle (different y, or the right
        wheel is not to the right of the left wheel), or any shape is degenerate.
    """

    def __init__(
        self,
        description: MouseDescription,
        maze: Maze,
        start: Optional[Tuple[float, float]] = None,
    ) -> None:
        left, right = description.left_wheel, description.right_wheel
        if abs(left.y - right.y) > AXLE_TOLERANCE:
            raise ConfigurationFault(
                f"Wheels must share an axle: left y={left.y}, right y={right.y}"
            )
        if right.x - left.x <= AXLE_TOLERANCE:
            raise ConfigurationFault(
                f"Right wheel (x={right.x}) must be to the right of the left wheel (x={left.x})"
            )

        self._maze = maze
        start_x, start_y = start if start is not None else maze.tile_center(0, 0)
        dx = start_x - (left.x + right.x) / 2.0
        dy = start_y - (left.y + right.y) / 2.0

        self._left_wheel = left.translated(dx, dy)
        self._right_wheel = right.translated(dx, dy)
        self._base = self._right_wheel.x - self._left_wheel.x
        self._actuator = DriveActuator(description.max_wheel_speed)

        body = require_positive_area(Polygon(description.body), "Mouse body")
        self._initial_body_polygon = body.translate((dx, dy))
        self._sensors: Dict[str, Sensor] = {
            name: Sensor(config, offset=(dx, dy)) for name, config in description.sensors.items()
        }

        # The pivot for every rotation is the axle midpoint
        self._initial_translation = (
            (self._left_wheel.x + self._right_wheel.x) / 2.0,
            (self._left_wheel.y + self._right_wheel.y) / 2.0,
        )
        self._pose = MousePose(self._initial_translation[0], self._initial_translation[1], 0.0)

        # Silhouette: hull of every collidable part, built once
        self._initial_parts: List[Polygon] = [
            self._initial_body_polygon,
            self._left_wheel.polygon(),
            self._right_wheel.polygon(),
        ] + [sensor.polygon() for sensor in self._sensors.values()]
        self._initial_collision_polygon = convex_hull(self._initial_parts)

        logger.debug(
            "Built mouse: base=%.4f m, %d sensor(s), start=(%.4f, %.4f)",
            self._base,
            len(self._sensors),
            *self._initial_translation,
        )

    # ------------------------------------------------------------------
    # Pose
    # ------------------------------------------------------------------
    @property
    def base(self) -> float:
        """Distance between the two wheel mount points (meters)."""
        return self._base

    @property
    def sensor_names(self) -> List[str]:
        return list(self._sensors)

    def get_pose(self) -> MousePose:
        return self._pose

    def get_initial_translation(self) -> Tuple[float, float]:
        return self._initial_translation

    def get_current_translation(self) -> Tuple[float, float]:
        pose = self._pose
        return pose.x, pose.y

    def get_current_rotation(self) -> float:
        return self._pose.rotation

    def get_current_discretized_translation(self) -> Tuple[int, int]:
        pose = self._pose
        return self._maze.discretize(pose.x, pose.y)

    def get_current_discretized_rotation(self) -> Direction:
        return Direction.from_angle(self._pose.heading)

    def teleport(self, x: float, y: float, rotation: float = 0.0) -> None:
        """Place the mouse; call from the simulation thread only."""
        if not all(math.isfinite(v) for v in (x, y, rotation)):
            raise ValueError(f"Pose must be finite, got ({x}, {y}, {rotation})")
        self._pose = MousePose(float(x), float(y), float(rotation))

    # ------------------------------------------------------------------
    # Presentation accessors
    # ------------------------------------------------------------------
    def _place(self, polygon: Polygon, pose: MousePose) -> Polygon:
        ix, iy = self._initial_translation
        return polygon.translate((pose.x - ix, pose.y - iy)).rotate_around_point(
            pose.rotation, (pose.x, pose.y)
        )

    def get_collision_polygon(self) -> Polygon:
        """Precomputed silhouette moved to the current pose."""
        return self._place(self._initial_collision_polygon, self._pose)

    def get_collision_parts(self) -> List[Polygon]:
        """Every collidable part (body, wheels, sensors) moved to the current pose."""
        pose = self._pose
        return [self._place(p, pose) for p in self._initial_parts]

    def get_body_polygon(self) -> Polygon:
        return self._place(self._initial_body_polygon, self._pose)

    def get_wheel_polygons(self) -> List[Polygon]:
        """[left, right] wheel outlines at the current pose."""
        pose = self._pose
        return [self._place(w.polygon(), pose) for w in (self._left_wheel, self._right_wheel)]

    def get_sensor_polygons(self) -> List[Polygon]:
        pose = self._pose
        return [self._place(s.polygon(), pose) for s in self._sensors.values()]

    def get_view_polygons(self) -> List[Polygon]:
        """Full (unobstructed) view cones at the current pose."""
        pose = self._pose
        return [self._place(s.view_polygon(), pose) for s in self._sensors.values()]

    def get_current_view_polygons(self) -> List[Polygon]:
        """View cones at the current pose, clipped by the maze walls."""
        pose = self._pose
        return [
            s.current_view(self._place(s.view_polygon(), pose), self._maze)
            for s in self._sensors.values()
        ]

    # ------------------------------------------------------------------
    # Kinematics
    # ------------------------------------------------------------------
    def update(self, elapsed: float) -> MousePose:
        """Advance the pose by elapsed seconds of differential-drive motion.

        First-order integration: the wheel speeds and heading are held
        constant over the step, so the result is exact for straight motion
        and spins in place, and otherwise drifts by roughly
        (rotational rate * elapsed) relative to the true arc.

            rotational rate = (right - left) / base
            forward speed   = (right + left) / 2

        with each wheel's surface speed positive when it drives forward.
        """
        if not (math.isfinite(elapsed) and elapsed >= 0.0):
            raise ValueError(f"elapsed must be a finite, non-negative time, got {elapsed}")

        left_w, right_w = self._actuator.get()
        left_speed = self._left_wheel.surface_speed(left_w)
        right_speed = self._right_wheel.surface_speed(right_w)

        pose = self._pose
        rotation = pose.rotation + (right_speed - left_speed) / self._base * elapsed
        distance = (right_speed + left_speed) / 2.0 * elapsed
        dx, dy = polar_to_cartesian(distance, Wheel.INITIAL_ROTATION + rotation)

        self._pose = MousePose(pose.x + dx, pose.y + dy, rotation)
        return self._pose

    # ------------------------------------------------------------------
    # Controller interface
    # ------------------------------------------------------------------
    def set_wheel_speeds(self, left: float, right: float) -> None:
        """Set both wheel angular velocities (rad/s, positive drives forward)."""
        self._actuator.set(left, right)

    def get_wheel_speeds(self) -> Tuple[float, float]:
        return self._actuator.get()

    def read(self, name: str) -> float:
        """Occlusion of the named sensor: 0.0 (clear) to 1.0 (blocked)."""
        sensor = self._get_sensor(name)
        full_view = self._place(sensor.view_polygon(), self._pose)
        return sensor.read(full_view, self._maze)

    def get_read_time(self, name: str) -> float:
        """Latency (seconds) the caller should charge for one reading."""
        return self._get_sensor(name).read_time

    def _get_sensor(self, name: str) -> Sensor:
        try:
            return self._sensors[name]
        except KeyError:
            raise QueryFault(f"No sensor named {name!r}; available: {list(self._sensors)}") from None
