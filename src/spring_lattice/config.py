"""
Configuration loading and validation for lattice simulation.

Loads YAML config and validates all parameters against physical constraints.
"""

import yaml
from dataclasses import dataclass, field, asdict
from typing import Optional
from pathlib import Path

from .force_laws import SpringParams


@dataclass
class LatticeConfig:
    """Lattice dimensions, initial layout and anchors."""
    width: int = 30
    height: int = 30
    y_offset: float = 10.0
    anchors: Optional[list[list[int]]] = None  # [x, y] pairs; None = top corners

    def validate(self) -> tuple[bool, Optional[str]]:
        for name in ("width", "height"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                return False, f"{name} must be an integer"
            if value <= 0:
                return False, f"{name} must be positive"
        if self.anchors is not None:
            if not isinstance(self.anchors, (list, tuple)):
                return False, "anchors must be a list of [x, y] pairs"
            for anchor in self.anchors:
                if not isinstance(anchor, (list, tuple)) or len(anchor) != 2:
                    return False, f"each anchor must be an [x, y] pair, got {anchor!r}"
                if any(isinstance(v, bool) or not isinstance(v, int) for v in anchor):
                    return False, f"anchor coordinates must be integers, got {list(anchor)}"
                x, y = anchor
                if not (0 <= x < self.width and 0 <= y < self.height):
                    return False, f"anchor {list(anchor)} outside {self.width}x{self.height} lattice"
        return True, None


@dataclass
class PhysicsConfig:
    """Physical constants shared by every node and spring."""
    mass: float = 0.01
    gravity: float = -9.81
    rest_length: float = 1.0
    spring_coefficient: float = 10.0
    damping_coefficient: float = 0.03
    external_magnitude: float = 0.2

    def validate(self) -> tuple[bool, Optional[str]]:
        if self.mass <= 0:
            return False, "mass must be positive"
        if self.damping_coefficient < 0:
            return False, "damping_coefficient must be non-negative"
        if self.external_magnitude < 0:
            return False, "external_magnitude must be non-negative"
        return self.spring_params.validate()

    @property
    def spring_params(self) -> SpringParams:
        return SpringParams(k=self.spring_coefficient, rest_length=self.rest_length)


@dataclass
class DynamicsConfig:
    """Time stepping and parallelism."""
    dt: float = 0.01
    substep_height_threshold: int = 100
    small_lattice_substeps: int = 20
    n_workers: Optional[int] = None  # None = half the available CPUs

    def validate(self) -> tuple[bool, Optional[str]]:
        if self.dt <= 0:
            return False, "dt must be positive"
        if self.substep_height_threshold < 0:
            return False, "substep_height_threshold must be non-negative"
        if self.small_lattice_substeps < 1:
            return False, "small_lattice_substeps must be >= 1"
        if self.n_workers is not None and self.n_workers < 1:
            return False, "n_workers must be >= 1"
        return True, None


@dataclass
class ControlConfig:
    """Initial toggle values and perturbation seed."""
    gravity_enabled: bool = True
    external_enabled: bool = False
    seed: Optional[int] = None

    def validate(self) -> tuple[bool, Optional[str]]:
        if self.seed is not None and self.seed < 0:
            return False, "seed must be non-negative"
        return True, None


@dataclass
class SchedulerConfig:
    """Scheduler pacing and optional benchmark window."""
    pace: bool = True
    benchmark_duration_s: Optional[float] = None
    frame_interval_s: float = 1.0 / 60.0

    def validate(self) -> tuple[bool, Optional[str]]:
        if self.benchmark_duration_s is not None and self.benchmark_duration_s <= 0:
            return False, "benchmark_duration_s must be positive"
        if self.frame_interval_s <= 0:
            return False, "frame_interval_s must be positive"
        return True, None


@dataclass
class OutputConfig:
    """Output configuration."""
    out_dir: str = "output"
    run_name: str = "lattice_run"
    write_png: bool = False

    def validate(self) -> tuple[bool, Optional[str]]:
        if not self.run_name:
            return False, "run_name must not be empty"
        return True, None


@dataclass
class SimulationConfig:
    """Complete simulation configuration."""
    lattice: LatticeConfig = field(default_factory=LatticeConfig)
    physics: PhysicsConfig = field(default_factory=PhysicsConfig)
    dynamics: DynamicsConfig = field(default_factory=DynamicsConfig)
    controls: ControlConfig = field(default_factory=ControlConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    def validate(self) -> tuple[bool, Optional[str]]:
        for section_name in ["lattice", "physics", "dynamics", "controls", "scheduler", "output"]:
            section = getattr(self, section_name)
            is_valid, error = section.validate()
            if not is_valid:
                return False, f"{section_name}: {error}"
        return True, None

    def to_dict(self) -> dict:
        """Serializable copy of every section."""
        return asdict(self)


_SECTIONS = {
    "lattice": LatticeConfig,
    "physics": PhysicsConfig,
    "dynamics": DynamicsConfig,
    "controls": ControlConfig,
    "scheduler": SchedulerConfig,
    "output": OutputConfig,
}


def config_from_dict(raw: dict) -> SimulationConfig:
    """
    Build and validate a configuration from a plain dict.

    Missing sections and keys take their defaults.

    Raises:
        ValueError: If a section or key is unknown, or the config is invalid.
    """
    raw = raw or {}
    unknown = set(raw) - set(_SECTIONS)
    if unknown:
        raise ValueError(f"Invalid configuration: unknown section(s) {sorted(unknown)}")

    sections = {}
    for name, section_cls in _SECTIONS.items():
        section_raw = raw.get(name) or {}
        try:
            sections[name] = section_cls(**section_raw)
        except TypeError as e:
            raise ValueError(f"Invalid configuration: {name}: {e}") from e

    config = SimulationConfig(**sections)

    is_valid, error = config.validate()
    if not is_valid:
        raise ValueError(f"Invalid configuration: {error}")

    return config


def load_config(path: Path) -> SimulationConfig:
    """
    Load and validate configuration from YAML file.

    Args:
        path: Path to YAML config file.

    Returns:
        Validated SimulationConfig.

    Raises:
        ValueError: If config is invalid.
        FileNotFoundError: If file doesn't exist.
    """
    with open(path, 'r') as f:
        raw = yaml.safe_load(f)

    if raw is not None and not isinstance(raw, dict):
        raise ValueError("Invalid configuration: top level must be a mapping")

    return config_from_dict(raw)
