from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple


@dataclass
class TelemetryAgentFrame:
    agent_id: int
    status: str
    world_position: Tuple[float, float]
    speed: float
    checkpoints_hit: int
    wall_collisions: int
    race_time: float
    fitness: float
    selected: bool = False


@dataclass
class TelemetryFrame:
    tick: int
    generation: int
    time: float
    countdown: bool
    agents: List[TelemetryAgentFrame] = field(default_factory=list)


class TelemetryCollector:
    def __init__(self) -> None:
        self.frames: List[TelemetryFrame] = []

    def record_frame(self, frame: TelemetryFrame) -> None:
        self.frames.append(frame)

    def export(self) -> Sequence[TelemetryFrame]:
        return tuple(self.frames)

    def for_generation(self, generation: int) -> List[TelemetryFrame]:
        return [frame for frame in self.frames if frame.generation == generation]

    def clear(self) -> None:
        self.frames.clear()
