"""
Small kinematic top-down car world.

Good enough to race a population headlessly: bicycle-model steering, engine
and brake forces with rolling friction, gate crossing by swept segment tests
and edge-triggered wall contacts. Cars do not collide with each other.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, fields
from typing import Dict, List, Optional, Tuple

import numpy as np

from evo_racer.config import config_section

from .data_models import ContactEvent, DriveCommand, Layer, Pose, Velocity
from .geometry import Point, heading_vector, segment_intersection
from .track import TrackLayout

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArcadeSettings:
    engine_force: float = 7.0
    reverse_force: float = 2.0
    brake_force: float = 5.0
    friction: float = 0.6
    max_speed: float = 10.0
    max_reverse_speed: float = 3.0
    max_steer: float = math.pi / 4
    wheel_base: float = 1.0
    car_radius: float = 0.5

    @classmethod
    def from_config(cls) -> "ArcadeSettings":
        section = config_section("arcade")
        known = {f.name for f in fields(cls)}
        return cls(**{key: float(value) for key, value in section.items() if key in known})


@dataclass
class _Car:
    x: float
    y: float
    angle: float
    speed: float = 0.0
    omega: float = 0.0
    command: DriveCommand = field(default_factory=DriveCommand.idle)
    touching_wall: bool = False


class ArcadeWorld:
    def __init__(self, track: TrackLayout, settings: Optional[ArcadeSettings] = None) -> None:
        self.track = track
        self.settings = settings or ArcadeSettings.from_config()
        self._cars: Dict[int, _Car] = {}

        starts = np.array([wall.start for wall in track.walls], dtype=float).reshape(-1, 2)
        ends = np.array([wall.end for wall in track.walls], dtype=float).reshape(-1, 2)
        self._wall_starts = starts
        self._wall_vectors = ends - starts
        lengths_sq = np.einsum("ij,ij->i", self._wall_vectors, self._wall_vectors)
        self._wall_lengths_sq = np.where(lengths_sq == 0.0, 1.0, lengths_sq)

    # --- Lifecycle -----------------------------------------------------

    def spawn(self, agent_id: int) -> None:
        start = self.track.start_pose()
        self._cars[agent_id] = _Car(x=start.x, y=start.y, angle=start.angle)
        log.debug("[ArcadeWorld] spawned agent %s at (%.1f, %.1f)", agent_id, start.x, start.y)

    def despawn(self, agent_id: int) -> None:
        self._cars.pop(agent_id, None)

    def agent_ids(self) -> List[int]:
        return list(self._cars)

    def _car(self, agent_id: int) -> _Car:
        try:
            return self._cars[agent_id]
        except KeyError:
            raise KeyError(f"agent {agent_id} is not spawned") from None

    # --- Queries -------------------------------------------------------

    def pose(self, agent_id: int) -> Pose:
        car = self._car(agent_id)
        return Pose(car.x, car.y, car.angle)

    def velocity(self, agent_id: int) -> Velocity:
        car = self._car(agent_id)
        hx, hy = heading_vector(car.angle)
        return Velocity(hx * car.speed, hy * car.speed, car.omega)

    def cast_ray(
        self,
        origin: Tuple[float, float],
        angle: float,
        max_length: float,
        layer_mask: Layer = Layer.WALL,
    ) -> float:
        if not layer_mask & Layer.WALL or len(self._wall_starts) == 0:
            return 1.0
        rx, ry = heading_vector(angle)
        rx, ry = rx * max_length, ry * max_length
        sx, sy = self._wall_vectors[:, 0], self._wall_vectors[:, 1]
        qx = self._wall_starts[:, 0] - origin[0]
        qy = self._wall_starts[:, 1] - origin[1]

        denom = rx * sy - ry * sx
        parallel = np.abs(denom) < 1e-12
        safe = np.where(parallel, 1.0, denom)
        t = (qx * sy - qy * sx) / safe
        u = (qx * ry - qy * rx) / safe
        hits = ~parallel & (t >= 0.0) & (t <= 1.0) & (u >= 0.0) & (u <= 1.0)
        if not hits.any():
            return 1.0
        return float(t[hits].min())

    def wall_distance(self, point: Point) -> float:
        if len(self._wall_starts) == 0:
            return math.inf
        p = np.asarray(point, dtype=float)
        rel = p - self._wall_starts
        t = np.clip(np.einsum("ij,ij->i", rel, self._wall_vectors) / self._wall_lengths_sq, 0.0, 1.0)
        closest = self._wall_starts + self._wall_vectors * t[:, None]
        return float(np.min(np.linalg.norm(p - closest, axis=1)))

    # --- Control -------------------------------------------------------

    def apply_controls(self, agent_id: int, command: DriveCommand) -> None:
        self._car(agent_id).command = command

    def damp(self, agent_id: int, factor: float) -> None:
        car = self._car(agent_id)
        car.speed *= factor
        car.omega *= factor

    def step(self, dt: float) -> List[ContactEvent]:
        events: List[ContactEvent] = []
        for agent_id, car in self._cars.items():
            previous = (car.x, car.y)
            self._integrate(car, dt)
            current = (car.x, car.y)
            events.extend(self._gate_events(agent_id, previous, current))

            if self.wall_distance(current) < self.settings.car_radius:
                car.x, car.y = previous
                if not car.touching_wall:
                    events.append(ContactEvent(agent_id, Layer.WALL))
                car.touching_wall = True
            else:
                car.touching_wall = False
        return events

    def _integrate(self, car: _Car, dt: float) -> None:
        s = self.settings
        cmd = car.command
        speed = car.speed + cmd.throttle * s.engine_force * dt
        if cmd.brake > 0.0:
            if speed > 0.0:
                speed = max(0.0, speed - cmd.brake * s.brake_force * dt)
            else:
                speed -= cmd.brake * s.reverse_force * dt
        speed -= speed * s.friction * dt
        car.speed = min(s.max_speed, max(-s.max_reverse_speed, speed))

        steer = max(-1.0, min(1.0, cmd.steer)) * s.max_steer
        car.omega = car.speed * math.tan(steer) / s.wheel_base
        car.angle += car.omega * dt
        hx, hy = heading_vector(car.angle)
        car.x += hx * car.speed * dt
        car.y += hy * car.speed * dt

    def _gate_events(self, agent_id: int, previous: Point, current: Point) -> List[ContactEvent]:
        if previous == current:
            return []
        events = []
        for index, gate in enumerate(self.track.checkpoint_gates):
            if segment_intersection(previous, current, gate.start, gate.end) is not None:
                events.append(ContactEvent(agent_id, Layer.CHECKPOINT, index))
        finish = self.track.finish_gate
        if segment_intersection(previous, current, finish.start, finish.end) is not None:
            events.append(ContactEvent(agent_id, Layer.FINISH))
        return events
