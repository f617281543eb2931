from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

# Ensure project root is on path when running this script directly
_script_dir = Path(__file__).resolve().parent
_project_root = _script_dir.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from mouse_sim.config import RunConfig
from mouse_sim.map_generator import maze_from_generator
from mouse_sim.maze import Maze
from mouse_sim.mouse import Mouse, MouseDescription
from mouse_sim.world import World
from robot.sim_mouse import SimMouseInterface
from telemetry.logger import TelemetryLogger, setup_logger

logger = logging.getLogger("mouse_sim.run")


def build_maze(cfg: RunConfig) -> Maze:
    if cfg.maze.file:
        return Maze.from_map_file(cfg.maze.file)
    return maze_from_generator(cfg.maze.generator, cfg.maze.width, cfg.maze.height, seed=cfg.maze.seed)


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless micromouse simulation run.")
    parser.add_argument(
        "--config",
        type=str,
        default=str(_project_root / "configs" / "sim.yaml"),
        help="Path to sim YAML config.",
    )
    parser.add_argument("--mouse", type=str, default=None, help="Mouse description YAML (overrides config).")
    parser.add_argument("--maze", type=str, default=None, help="Maze file, .json or .num (overrides config).")
    parser.add_argument("--seconds", type=float, default=5.0, help="Wall-clock seconds to run.")
    parser.add_argument("--speed", type=float, default=10.0, help="Forward wheel speed (rad/s).")
    parser.add_argument(
        "--threshold",
        type=float,
        default=0.3,
        help="Front occlusion above which the demo controller stops.",
    )
    args = parser.parse_args()

    cfg = RunConfig.from_yaml_file(args.config)
    if args.maze:
        cfg.maze.file = args.maze
    mouse_file = args.mouse or cfg.mouse_file
    if mouse_file is None:
        parser.error("No mouse description given (--mouse or mouse_file in the config).")

    setup_logger("mouse_sim", log_file=cfg.logging.log_file, level=cfg.logging.level_value)
    telemetry = TelemetryLogger(cfg.logging.telemetry_path) if cfg.logging.telemetry_path else None

    maze = build_maze(cfg)
    mouse = Mouse(MouseDescription.from_yaml_file(mouse_file), maze)
    world = World(maze, cfg.sim, telemetry=telemetry)
    world.add_mouse("mouse", mouse)
    world.add_tile_listener(lambda name, x, y: logger.info("%s entered tile (%d, %d)", name, x, y))

    interface = SimMouseInterface(mouse, world)
    front = "front" if "front" in mouse.sensor_names else None

    # Drive straight until something blocks the front sensor
    try:
        with world:
            deadline = time.monotonic() + args.seconds
            interface.set_wheel_speeds(args.speed, args.speed)
            while time.monotonic() < deadline and world.is_running:
                if front is not None and interface.read(front) > args.threshold:
                    interface.stop()
                    logger.info("Front blocked, stopping")
                    break
                interface.delay(0.01)
            interface.stop()
    except KeyboardInterrupt:
        print("Stopping simulation (KeyboardInterrupt).")
    finally:
        if telemetry is not None:
            telemetry.close()

    stats = world.get_mouse_stats("mouse")
    print(f"Elapsed sim time:            {world.elapsed_sim_time:.3f} s")
    print(f"Tiles traversed:             {stats.tiles_traversed}/{maze.width * maze.height}")
    print(f"Closest distance to center:  {stats.closest_distance_to_center}")
    print(f"Crashed:                     {stats.crashed}")


if __name__ == "__main__":
    main()
