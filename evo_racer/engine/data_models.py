from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from enum import Enum, IntFlag
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from evo_racer.config import config_section

if TYPE_CHECKING:
    from .genome import Genome


class Layer(IntFlag):
    """Collision layers shared with the physics collaborator."""

    AGENT = 1
    WALL = 2
    CHECKPOINT = 4
    START = 8
    FINISH = 16


class AgentStatus(Enum):
    RACING = "racing"
    ELIMINATED = "eliminated"
    FINISHED = "finished"

    @property
    def is_terminal(self) -> bool:
        return self is not AgentStatus.RACING


class CheckpointPolicy(Enum):
    """Which checkpoint contacts count toward progress."""

    ANY_ORDER = "any_order"
    STRICT = "strict"

    @classmethod
    def from_str(cls, value: str) -> "CheckpointPolicy":
        try:
            return cls(value.lower())
        except ValueError as exc:
            raise ValueError(f"Unknown checkpoint policy: {value}") from exc


class MutationPolicy(Enum):
    PROBABILISTIC = "probabilistic"
    ALWAYS = "always"

    @classmethod
    def from_str(cls, value: str) -> "MutationPolicy":
        try:
            return cls(value.lower())
        except ValueError as exc:
            raise ValueError(f"Unknown mutation policy: {value}") from exc


class OutputPolicy(Enum):
    """How sigmoid outputs become control magnitudes."""

    ANALOG = "analog"
    BINARY = "binary"

    @classmethod
    def from_str(cls, value: str) -> "OutputPolicy":
        try:
            return cls(value.lower())
        except ValueError as exc:
            raise ValueError(f"Unknown output policy: {value}") from exc


@dataclass(frozen=True)
class Pose:
    x: float
    y: float
    angle: float  # heading in radians

    @property
    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class Velocity:
    vx: float
    vy: float
    omega: float = 0.0

    @property
    def speed(self) -> float:
        return math.hypot(self.vx, self.vy)


@dataclass(frozen=True)
class Controls:
    """Four-way control vector, each channel in [0, 1]."""

    left: float = 0.0
    right: float = 0.0
    up: float = 0.0
    down: float = 0.0

    def __post_init__(self) -> None:
        for f in fields(self):
            value = float(getattr(self, f.name))
            object.__setattr__(self, f.name, min(1.0, max(0.0, value)))

    @classmethod
    def zero(cls) -> "Controls":
        return cls()

    def as_dict(self) -> Dict[str, float]:
        return {"left": self.left, "right": self.right, "up": self.up, "down": self.down}


@dataclass(frozen=True)
class DriveCommand:
    """What the physics collaborator receives each tick."""

    steer: float = 0.0  # -1 full left, +1 full right
    throttle: float = 0.0
    brake: float = 0.0

    @classmethod
    def from_controls(cls, controls: Controls) -> "DriveCommand":
        return cls(steer=controls.right - controls.left, throttle=controls.up, brake=controls.down)

    @classmethod
    def idle(cls) -> "DriveCommand":
        return cls()


@dataclass(frozen=True)
class ContactEvent:
    """Begin-contact between an agent's vehicle and a track collider."""

    agent_id: int
    layer: Layer
    checkpoint_index: Optional[int] = None


@dataclass(frozen=True)
class ScoreEntry:
    generation: int
    agent_id: int
    time: float
    checkpoint_times: Tuple[float, ...] = field(default_factory=tuple)


@dataclass
class HistoryEntry:
    """Parent genomes that seeded the generation after `generation`."""

    generation: int
    genomes: List["Genome"] = field(default_factory=list)


# --- Settings ------------------------------------------------------------


def _overlay(cls, section: Dict[str, Any], converters: Optional[Dict[str, Any]] = None):
    converters = converters or {}
    kwargs = {}
    for f in fields(cls):
        if f.name not in section:
            continue
        value = section[f.name]
        convert = converters.get(f.name)
        kwargs[f.name] = convert(value) if convert else value
    return cls(**kwargs)


@dataclass(frozen=True)
class SensorSettings:
    ray_count: int = 5
    ray_length: float = 20.0
    spread_degrees: float = 120.0
    deviation_degrees: float = -60.0

    def __post_init__(self) -> None:
        if self.ray_count < 1:
            raise ValueError("ray_count must be at least 1")
        if self.ray_length <= 0:
            raise ValueError("ray_length must be positive")

    @classmethod
    def from_config(cls) -> "SensorSettings":
        return _overlay(cls, config_section("sensors"), {"ray_count": int, "ray_length": float})


@dataclass(frozen=True)
class GenomeSettings:
    hidden_size: int = 6
    output_size: int = 4

    @classmethod
    def from_config(cls) -> "GenomeSettings":
        return _overlay(cls, config_section("genome"), {"hidden_size": int, "output_size": int})


@dataclass(frozen=True)
class ControllerSettings:
    output_policy: OutputPolicy = OutputPolicy.ANALOG
    max_speed: float = 10.0

    @classmethod
    def from_config(cls) -> "ControllerSettings":
        return _overlay(
            cls,
            config_section("controller"),
            {"output_policy": OutputPolicy.from_str, "max_speed": float},
        )


@dataclass(frozen=True)
class MutationSettings:
    policy: MutationPolicy = MutationPolicy.PROBABILISTIC
    rate: float = 0.1
    magnitude: float = 0.5
    breed_rate: float = 0.05

    def __post_init__(self) -> None:
        for name in ("rate", "breed_rate"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")

    @classmethod
    def from_config(cls) -> "MutationSettings":
        return _overlay(cls, config_section("mutation"), {"policy": MutationPolicy.from_str})


@dataclass(frozen=True)
class AgentSettings:
    checkpoint_policy: CheckpointPolicy = CheckpointPolicy.ANY_ORDER
    eliminate_on_wall: bool = True
    wall_speed_threshold: float = 0.1
    collision_damping: float = 0.5

    @classmethod
    def from_config(cls) -> "AgentSettings":
        return _overlay(cls, config_section("agent"), {"checkpoint_policy": CheckpointPolicy.from_str})


@dataclass(frozen=True)
class FitnessWeights:
    checkpoint: float = 1000.0
    wall_penalty: float = 500.0
    distance: float = 3.0

    @classmethod
    def from_config(cls) -> "FitnessWeights":
        return _overlay(cls, config_section("fitness"))


@dataclass(frozen=True)
class EvolutionSettings:
    population_size: int = 10
    tick_rate: int = 60
    generation_time_budget: float = 30.0
    countdown_seconds: float = 0.0
    storage_dir: str = "saves"

    def __post_init__(self) -> None:
        if self.population_size < 1:
            raise ValueError("population_size must be at least 1")
        if self.tick_rate < 1:
            raise ValueError("tick_rate must be at least 1")

    @property
    def dt(self) -> float:
        return 1.0 / self.tick_rate

    @classmethod
    def from_config(cls) -> "EvolutionSettings":
        return _overlay(cls, config_section("evolution"), {"population_size": int, "tick_rate": int})
