from __future__ import annotations

import logging
import os

import pytest

from mouse_sim.config import RunConfig, load_yaml
from mouse_sim.errors import ConfigurationFault
from mouse_sim.mouse import Mouse
from mouse_sim.world import SimConfig, World
from robot.api import MouseInterface
from robot.sim_mouse import SimMouseInterface
from telemetry.logger import setup_logger

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


@pytest.fixture
def interface(mouse: Mouse, open_maze) -> SimMouseInterface:
    world = World(open_maze, SimConfig(real_time=False, sim_speed=4.0))
    world.add_mouse("m", mouse)
    return SimMouseInterface(mouse, world)


def test_read_charges_scaled_latency(interface: SimMouseInterface, monkeypatch) -> None:
    slept = []
    monkeypatch.setattr("robot.sim_mouse.time.sleep", slept.append)

    assert isinstance(interface, MouseInterface)
    assert interface.read("front") == pytest.approx(0.0, abs=1e-9)
    assert interface.get_read_time("front") == pytest.approx(0.002)
    assert slept == [pytest.approx(0.002 / 4.0)]

    interface.charge_read_time = False
    interface.read("front")
    assert len(slept) == 1


def test_delay_and_stop(interface: SimMouseInterface, monkeypatch) -> None:
    slept = []
    monkeypatch.setattr("robot.sim_mouse.time.sleep", slept.append)
    interface.delay(0.0)
    assert slept == []
    with pytest.raises(ValueError):
        interface.delay(-1.0)

    interface.set_wheel_speeds(3.0, 4.0)
    assert interface.mouse.get_wheel_speeds() == (3.0, 4.0)
    interface.stop()
    assert interface.mouse.get_wheel_speeds() == (0.0, 0.0)


def test_run_config_resolves_paths_against_project_root() -> None:
    cfg = RunConfig.from_yaml_file(os.path.join(PROJECT_ROOT, "configs", "sim.yaml"))
    assert cfg.mouse_file == os.path.join(PROJECT_ROOT, "configs/mouse.yaml")
    assert os.path.exists(cfg.mouse_file)
    assert cfg.sim.tick_duration == pytest.approx(0.005)
    assert cfg.maze.file is None
    assert (cfg.maze.generator, cfg.maze.width, cfg.maze.seed) == ("perfect", 16, 0)
    assert cfg.logging.level_value == logging.INFO
    assert cfg.logging.log_file == os.path.join(PROJECT_ROOT, "runs/sim.log")
    assert cfg.logging.telemetry_path == os.path.join(PROJECT_ROOT, "runs/telemetry.jsonl")


def test_run_config_resolves_every_relative_path(tmp_path) -> None:
    base = str(tmp_path)
    absolute = os.path.join(base, "elsewhere", "run.log")
    cfg = RunConfig.from_dict(
        {
            "maze": {"file": "mazes/m.num"},
            "mouse_file": "configs/mouse.yaml",
            "logging": {"log_file": absolute, "telemetry_path": "runs/t.jsonl"},
        },
        base_dir=base,
    )
    assert cfg.maze.file == os.path.join(base, "mazes/m.num")
    assert cfg.mouse_file == os.path.join(base, "configs/mouse.yaml")
    assert cfg.logging.log_file == absolute
    assert cfg.logging.telemetry_path == os.path.join(base, "runs/t.jsonl")


def test_run_config_faults(tmp_path) -> None:
    with pytest.raises(ConfigurationFault):
        RunConfig.from_dict({"sim": {"collision_shape": "exact_union"}})
    with pytest.raises(ConfigurationFault):
        RunConfig.from_dict({"sim": {"tick_duration": "fast"}})
    with pytest.raises(ConfigurationFault):
        RunConfig.from_dict({"logging": {"level": "LOUD"}}).logging.level_value

    listing = tmp_path / "list.yaml"
    listing.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ConfigurationFault):
        load_yaml(str(listing))


def test_setup_logger_writes_to_file(tmp_path) -> None:
    path = tmp_path / "logs" / "run.log"
    logger = setup_logger("mouse_sim_test_file", log_file=str(path), console=False)
    logger.info("entered tile %d", 3)
    for handler in logger.handlers:
        handler.flush()
    assert "entered tile 3" in path.read_text(encoding="utf-8")
    # A second call keeps the existing handlers
    assert setup_logger("mouse_sim_test_file", console=False) is logger
    assert len(logger.handlers) == 1
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
