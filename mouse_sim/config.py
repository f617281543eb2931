"""
Run configuration loading.

A run is described by a YAML file with ``sim``, ``maze`` and ``logging``
sections; the mouse itself is described in a separate YAML file (see
configs/mouse.yaml).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import logging
import os

import yaml

from .errors import ConfigurationFault
from .world import SimConfig


def load_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationFault(f"{path} must contain a YAML mapping")
    return data


@dataclass
class MazeSource:
    """Where the maze comes from: a file, or a generator preset."""

    file: Optional[str] = None
    generator: str = "perfect"
    width: int = 16
    height: int = 16
    seed: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MazeSource":
        seed = data.get("seed")
        return cls(
            file=data.get("file"),
            generator=str(data.get("generator", "perfect")),
            width=int(data.get("width", 16)),
            height=int(data.get("height", 16)),
            seed=int(seed) if seed is not None else None,
        )


@dataclass
class LoggingConfig:
    level: str = "INFO"
    log_file: Optional[str] = None
    telemetry_path: Optional[str] = None

    @property
    def level_value(self) -> int:
        value = logging.getLevelName(self.level.upper())
        if not isinstance(value, int):
            raise ConfigurationFault(f"Unknown log level {self.level!r}")
        return value

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingConfig":
        return cls(
            level=str(data.get("level", "INFO")),
            log_file=data.get("log_file"),
            telemetry_path=data.get("telemetry_path"),
        )


@dataclass
class RunConfig:
    sim: SimConfig = field(default_factory=SimConfig)
    maze: MazeSource = field(default_factory=MazeSource)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    mouse_file: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: str = ".") -> "RunConfig":
        """Build a run config; relative file paths resolve against base_dir."""
        maze = MazeSource.from_dict(data.get("maze") or {})
        maze.file = _resolve(maze.file, base_dir)
        log_cfg = LoggingConfig.from_dict(data.get("logging") or {})
        log_cfg.log_file = _resolve(log_cfg.log_file, base_dir)
        log_cfg.telemetry_path = _resolve(log_cfg.telemetry_path, base_dir)
        try:
            sim = SimConfig.from_dict(data.get("sim") or {})
        except ConfigurationFault:
            raise
        except (TypeError, ValueError) as exc:
            raise ConfigurationFault(f"Malformed sim section: {exc!r}") from exc
        return cls(
            sim=sim,
            maze=maze,
            logging=log_cfg,
            mouse_file=_resolve(data.get("mouse_file"), base_dir),
        )

    @classmethod
    def from_yaml_file(cls, path: str) -> "RunConfig":
        """Load a run config; relative paths resolve against the project root
        (the parent of the configs/ directory holding the file)."""
        base_dir = os.path.dirname(os.path.dirname(os.path.abspath(path)))
        return cls.from_dict(load_yaml(path), base_dir=base_dir)


def _resolve(path: Optional[str], base_dir: str) -> Optional[str]:
    if path is None or os.path.isabs(path):
        return path
    return os.path.join(base_dir, path)
