"""
Collaborator interfaces consumed by the evolution engine.

The engine never integrates vehicle dynamics or builds colliders itself.
Anything satisfying these protocols (a rigid-body engine binding, the
bundled ArcadeWorld, or a scripted fake in tests) can drive a generation.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence, Tuple

from .data_models import ContactEvent, DriveCommand, Layer, Pose, Velocity


class RayCaster(Protocol):
    def cast_ray(
        self,
        origin: Tuple[float, float],
        angle: float,
        max_length: float,
        layer_mask: Layer = Layer.WALL,
    ) -> float:
        """Fraction of `max_length` travelled before the first hit, 1.0 when clear."""
        ...


class PhysicsWorld(RayCaster, Protocol):
    def spawn(self, agent_id: int) -> None:
        ...

    def despawn(self, agent_id: int) -> None:
        ...

    def step(self, dt: float) -> List[ContactEvent]:
        """Advance the world and return begin-contact events in the order they occurred."""
        ...

    def pose(self, agent_id: int) -> Pose:
        ...

    def velocity(self, agent_id: int) -> Velocity:
        ...

    def apply_controls(self, agent_id: int, command: DriveCommand) -> None:
        ...

    def damp(self, agent_id: int, factor: float) -> None:
        """Scale linear and angular velocity by `factor`."""
        ...


class TrackModel(Protocol):
    def checkpoint_count(self) -> int:
        ...

    def checkpoint_positions(self) -> Sequence[Tuple[float, float]]:
        ...

    def finish_position(self) -> Optional[Tuple[float, float]]:
        ...
