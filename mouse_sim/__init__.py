"""
Top-level package for the 2D micromouse simulator.

Components:
- geometry_utils: Polygon value type, convex hull, overlap and sight-line tests
- maze: tile grid with wall geometry and distances to the center
- map_generator: procedural mazes (open arena, perfect maze)
- wheel: wheel geometry and the synchronized wheel-speed actuator
- sensors: area-based occlusion sensors
- mouse: differential-drive mouse kinematics and sense/act interface
- world: fixed-step simulation loop, collision detection and run statistics
- config: YAML run configuration
"""

from .errors import ConfigurationFault, GeometryFault, MouseSimError, QueryFault
from .geometry_utils import Polygon, convex_hull
from .maze import Direction, Maze, Tile
from .wheel import DriveActuator, Wheel
from .sensors import Sensor, SensorConfig
from .mouse import Mouse, MouseDescription, MousePose
from .world import MouseStats, MouseStatus, SimConfig, World

__all__ = [
    "ConfigurationFault",
    "GeometryFault",
    "MouseSimError",
    "QueryFault",
    "Polygon",
    "convex_hull",
    "Direction",
    "Maze",
    "Tile",
    "DriveActuator",
    "Wheel",
    "Sensor",
    "SensorConfig",
    "Mouse",
    "MouseDescription",
    "MousePose",
    "MouseStats",
    "MouseStatus",
    "SimConfig",
    "World",
]
