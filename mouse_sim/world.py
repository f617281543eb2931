from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set, Tuple
import logging
import threading
import time

from .errors import ConfigurationFault, QueryFault
from .geometry_utils import convex_polygons_overlap, polygons_intersect, wrap_angle
from .maze import Maze
from .mouse import Mouse
from telemetry.logger import TelemetryLogger

logger = logging.getLogger(__name__)

COLLISION_SHAPES = ("convex_hull", "parts")

TileListener = Callable[[str, int, int], None]


@dataclass
class SimConfig:
    """Simulation loop parameters.

    Attributes
    ----------
    tick_duration : float
        Simulated seconds integrated per tick. Keep small relative to the
        mouse's angular rate; the integrator is first order.
    sim_speed : float
        Simulated seconds per real second when pacing in real time.
    real_time : bool
        Sleep between ticks so simulated time tracks the wall clock.
    collision_detection : bool
        Test mice against the walls every tick.
    collision_shape : str
        "convex_hull" tests the precomputed silhouette; "parts" tests the
        body, wheels and sensors individually (closer to the exact union).
    collision_reach : int
        Tiles around the mouse's current tile whose walls are tested.
    """

    tick_duration: float = 0.005
    sim_speed: float = 1.0
    real_time: bool = True
    collision_detection: bool = True
    collision_shape: str = "convex_hull"
    collision_reach: int = 1

    def __post_init__(self) -> None:
        if not self.tick_duration > 0.0:
            raise ConfigurationFault(f"tick_duration must be positive, got {self.tick_duration}")
        if not self.sim_speed > 0.0:
            raise ConfigurationFault(f"sim_speed must be positive, got {self.sim_speed}")
        if self.collision_shape not in COLLISION_SHAPES:
            raise ConfigurationFault(
                f"Unknown collision_shape {self.collision_shape!r}; expected one of {COLLISION_SHAPES}"
            )
        if self.collision_reach < 0:
            raise ConfigurationFault(f"collision_reach must be >= 0, got {self.collision_reach}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SimConfig":
        return cls(
            tick_duration=float(data.get("tick_duration", 0.005)),
            sim_speed=float(data.get("sim_speed", 1.0)),
            real_time=bool(data.get("real_time", True)),
            collision_detection=bool(data.get("collision_detection", True)),
            collision_shape=str(data.get("collision_shape", "convex_hull")),
            collision_reach=int(data.get("collision_reach", 1)),
        )


class MouseStatus(Enum):
    RUNNING = "running"
    PAUSED = "paused"
    CRASHED = "crashed"


@dataclass(frozen=True)
class MouseStats:
    """Snapshot of one mouse's run statistics.

    Attributes
    ----------
    tiles_traversed : int
        Distinct tiles visited, including the start tile.
    closest_distance_to_center : int or None
        Fewest moves to the center from any visited tile.
    time_since_origin_departure : float or None
        Simulated seconds since the mouse last left tile (0, 0).
    best_time_to_center : float or None
        Fastest origin-to-center run so far (simulated seconds).
    crashed : bool
        The mouse hit a wall; its stats no longer change.
    crash_time : float or None
        Simulated time of the crash.
    """

    tiles_traversed: int
    closest_distance_to_center: Optional[int]
    time_since_origin_departure: Optional[float]
    best_time_to_center: Optional[float]
    crashed: bool = False
    crash_time: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tiles_traversed": self.tiles_traversed,
            "closest_distance_to_center": self.closest_distance_to_center,
            "time_since_origin_departure": self.time_since_origin_departure,
            "best_time_to_center": self.best_time_to_center,
            "crashed": self.crashed,
            "crash_time": self.crash_time,
        }


class _MouseRecord:
    """Mutable per-mouse bookkeeping; touched only by the simulation thread."""

    def __init__(self, name: str, mouse: Mouse, maze: Maze, now: float) -> None:
        self.name = name
        self.mouse = mouse
        self.tile: Tuple[int, int] = mouse.get_current_discretized_translation()
        self.traversed: Set[Tuple[int, int]] = {self.tile}
        self.closest: Optional[int] = maze.distance_to_center(*self.tile)
        self.departure_time: Optional[float] = None if self.tile == (0, 0) else now
        self.best_time: Optional[float] = None
        self.crashed = False
        self.crash_time: Optional[float] = None
        self.stats = self.snapshot(now)

    def snapshot(self, now: float) -> MouseStats:
        return MouseStats(
            tiles_traversed=len(self.traversed),
            closest_distance_to_center=self.closest,
            time_since_origin_departure=(
                None if self.departure_time is None else now - self.departure_time
            ),
            best_time_to_center=self.best_time,
            crashed=self.crashed,
            crash_time=self.crash_time,
        )


class World:
    """Simulation context: one maze, any number of mice, fixed-step ticks.

    Created once per run and owned by the caller. Mice are advanced with
    step() (one tick) or by a background thread (start()/stop(), or use the
    world as a context manager). Readers on other threads should use only
    the snapshot accessors: get_mouse_stats(), get_mouse_status() and the
    Mouse polygon getters.
    """

    def __init__(
        self,
        maze: Maze,
        config: Optional[SimConfig] = None,
        telemetry: Optional[TelemetryLogger] = None,
    ) -> None:
        self.maze = maze
        self.config = config or SimConfig()
        self.telemetry = telemetry

        self._records: Dict[str, _MouseRecord] = {}
        self._listeners: List[TileListener] = []
        self._listeners_lock = threading.Lock()

        self._sim_time = 0.0
        self._sim_speed = self.config.sim_speed
        self._paused = threading.Event()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._error: Optional[BaseException] = None

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------
    def add_mouse(self, name: str, mouse: Mouse) -> None:
        """Register a mouse; call before the simulation thread starts."""
        if name in self._records:
            raise ConfigurationFault(f"A mouse named {name!r} already exists")
        if self._thread is not None:
            raise RuntimeError("Mice must be added before the simulation starts")
        self._records[name] = _MouseRecord(name, mouse, self.maze, self._sim_time)
        logger.info("Added mouse %r at tile %s", name, self._records[name].tile)

    def get_mouse(self, name: str) -> Mouse:
        return self._record(name).mouse

    def mouse_names(self) -> List[str]:
        return list(self._records)

    def add_tile_listener(self, listener: TileListener) -> None:
        """Call listener(mouse_name, x, y) each time a mouse enters a new tile."""
        with self._listeners_lock:
            self._listeners.append(listener)

    def remove_tile_listener(self, listener: TileListener) -> None:
        with self._listeners_lock:
            self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Snapshot accessors
    # ------------------------------------------------------------------
    def get_mouse_stats(self, name: str) -> MouseStats:
        """Immutable stats snapshot for the named mouse."""
        return self._record(name).stats

    def get_mouse_status(self, name: str) -> MouseStatus:
        record = self._record(name)
        if record.crashed:
            return MouseStatus.CRASHED
        if self._paused.is_set():
            return MouseStatus.PAUSED
        return MouseStatus.RUNNING

    @property
    def elapsed_sim_time(self) -> float:
        return self._sim_time

    @property
    def sim_speed(self) -> float:
        return self._sim_speed

    def set_sim_speed(self, speed: float) -> None:
        if not speed > 0.0:
            raise ValueError(f"sim_speed must be positive, got {speed}")
        self._sim_speed = float(speed)

    def _record(self, name: str) -> _MouseRecord:
        try:
            return self._records[name]
        except KeyError:
            raise QueryFault(f"No mouse named {name!r}") from None

    # ------------------------------------------------------------------
    # Pause / resume
    # ------------------------------------------------------------------
    def pause(self) -> None:
        self._paused.set()

    def resume(self) -> None:
        self._paused.clear()

    @property
    def is_paused(self) -> bool:
        return self._paused.is_set()

    # ------------------------------------------------------------------
    # Ticking
    # ------------------------------------------------------------------
    def step(self) -> None:
        """Advance every running mouse by one tick.

        Does nothing while paused. Per mouse: integrate motion, test the
        collision shape against nearby walls (a hit freezes the mouse), then
        update stats and notify listeners if the mouse changed tiles.
        """
        if self._paused.is_set():
            return
        elapsed = self.config.tick_duration
        self._sim_time += elapsed
        now = self._sim_time

        for record in self._records.values():
            if record.crashed:
                continue
            record.mouse.update(elapsed)

            if self.config.collision_detection and self._collides(record.mouse):
                self._crash(record, now)
                continue

            tile = record.mouse.get_current_discretized_translation()
            entered = tile != record.tile
            if entered:
                self._enter_tile(record, tile, now)
            record.stats = record.snapshot(now)
            if entered:
                self._notify(record.name, tile)

    def _collides(self, mouse: Mouse) -> bool:
        tx, ty = mouse.get_current_discretized_translation()
        walls = self.maze.obstacles_near(tx, ty, self.config.collision_reach)
        if not walls:
            return False
        if self.config.collision_shape == "convex_hull":
            silhouette = mouse.get_collision_polygon()
            return any(convex_polygons_overlap(silhouette, wall) for wall in walls)
        parts = mouse.get_collision_parts()
        return any(polygons_intersect(part, wall) for part in parts for wall in walls)

    def _crash(self, record: _MouseRecord, now: float) -> None:
        record.crashed = True
        record.crash_time = now
        # Everything but the crash flag keeps its pre-crash value
        record.stats = MouseStats(
            tiles_traversed=record.stats.tiles_traversed,
            closest_distance_to_center=record.stats.closest_distance_to_center,
            time_since_origin_departure=record.stats.time_since_origin_departure,
            best_time_to_center=record.stats.best_time_to_center,
            crashed=True,
            crash_time=now,
        )
        pose = record.mouse.get_pose()
        logger.warning(
            "Mouse %r crashed at t=%.3fs, pose=(%.4f, %.4f), heading=%.3f rad",
            record.name,
            now,
            pose.x,
            pose.y,
            wrap_angle(pose.heading),
        )
        self._log_telemetry(
            {
                "event": "crash",
                "mouse": record.name,
                "sim_time": now,
                "pose": {"x": pose.x, "y": pose.y, "rotation": pose.rotation},
                "stats": record.stats.to_dict(),
            }
        )

    def _enter_tile(self, record: _MouseRecord, tile: Tuple[int, int], now: float) -> None:
        record.tile = tile
        record.traversed.add(tile)

        distance = self.maze.distance_to_center(*tile)
        if distance is not None and (record.closest is None or distance < record.closest):
            record.closest = distance

        if tile == (0, 0):
            record.departure_time = None
        elif record.departure_time is None:
            record.departure_time = now
        if self.maze.is_center(*tile) and record.departure_time is not None:
            run_time = now - record.departure_time
            if record.best_time is None or run_time < record.best_time:
                record.best_time = run_time
                logger.info("Mouse %r reached the center in %.3fs", record.name, run_time)

        pose = record.mouse.get_pose()
        self._log_telemetry(
            {
                "event": "tile",
                "mouse": record.name,
                "sim_time": now,
                "tile": list(tile),
                "pose": {"x": pose.x, "y": pose.y, "rotation": pose.rotation},
            }
        )

    def _notify(self, name: str, tile: Tuple[int, int]) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(name, tile[0], tile[1])
            except Exception:  # noqa: BLE001
                # A broken presentation listener must not stop the simulation
                logger.exception("Tile listener %r failed for mouse %r", listener, name)

    def _log_telemetry(self, record: Dict[str, Any]) -> None:
        if self.telemetry is not None:
            self.telemetry.log_step(record)

    # ------------------------------------------------------------------
    # Background loop
    # ------------------------------------------------------------------
    def simulate(self, stop_event: Optional[threading.Event] = None) -> None:
        """Tick until stop_event is set, pacing to sim_speed if real_time is on."""
        stop_event = stop_event or self._stop_event
        logger.info(
            "Simulation started: tick=%.4fs, speed=%.2fx, %d mouse/mice",
            self.config.tick_duration,
            self._sim_speed,
            len(self._records),
        )
        while not stop_event.is_set():
            t_start = time.monotonic()
            self.step()
            if self.config.real_time or self._paused.is_set():
                sleep_time = self.config.tick_duration / self._sim_speed - (time.monotonic() - t_start)
                if sleep_time > 0:
                    stop_event.wait(sleep_time)
        logger.info("Simulation stopped at t=%.3fs", self._sim_time)

    def start(self) -> None:
        """Run simulate() on a daemon thread."""
        if self._thread is not None:
            raise RuntimeError("Simulation already started")
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="MouseSimWorld", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        try:
            self.simulate(self._stop_event)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Simulation thread failed")
            self._error = exc

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the background thread; re-raise any error it hit.

        Raises RuntimeError if the thread is still running after timeout;
        the world keeps tracking it, so start() cannot launch a second loop.
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                raise RuntimeError(f"Simulation thread did not stop within {timeout}s")
            self._thread = None
        if self._error is not None:
            error, self._error = self._error, None
            raise error

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def __enter__(self) -> "World":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
