from collections import defaultdict
from typing import Dict, List, Tuple

import pytest

from evo_racer.engine.data_models import ContactEvent, DriveCommand, Layer, Pose, Velocity


class ScriptedWorld:
    """Physics stand-in that replays contacts on fixed frames."""

    def __init__(self, speed: float = 1.0, ray_fraction: float = 1.0) -> None:
        self.frame = 0
        self.speed = speed
        self.ray_fraction = ray_fraction
        self.spawned: List[int] = []
        self.commands: Dict[int, DriveCommand] = {}
        self.damped: List[Tuple[int, float]] = []
        self.script: Dict[int, List[ContactEvent]] = defaultdict(list)
        self.poses: Dict[int, Pose] = {}

    def at(self, frame: int, event: ContactEvent) -> "ScriptedWorld":
        self.script[frame].append(event)
        return self

    def spawn(self, agent_id: int) -> None:
        self.spawned.append(agent_id)

    def despawn(self, agent_id: int) -> None:
        if agent_id in self.spawned:
            self.spawned.remove(agent_id)

    def step(self, dt: float) -> List[ContactEvent]:
        self.frame += 1
        return list(self.script.get(self.frame, []))

    def pose(self, agent_id: int) -> Pose:
        return self.poses.get(agent_id, Pose(0.0, 0.0, 0.0))

    def velocity(self, agent_id: int) -> Velocity:
        return Velocity(self.speed, 0.0)

    def apply_controls(self, agent_id: int, command: DriveCommand) -> None:
        self.commands[agent_id] = command

    def damp(self, agent_id: int, factor: float) -> None:
        self.damped.append((agent_id, factor))

    def cast_ray(self, origin, angle, max_length, layer_mask=Layer.WALL) -> float:
        return self.ray_fraction


class StaticTrack:
    def __init__(self, checkpoints=((10.0, 0.0), (20.0, 0.0)), finish=(0.0, 0.0)) -> None:
        self._checkpoints = list(checkpoints)
        self._finish = finish

    def checkpoint_count(self) -> int:
        return len(self._checkpoints)

    def checkpoint_positions(self):
        return list(self._checkpoints)

    def finish_position(self):
        return self._finish


@pytest.fixture
def world() -> ScriptedWorld:
    return ScriptedWorld()


@pytest.fixture
def track() -> StaticTrack:
    return StaticTrack()
