from __future__ import annotations

import logging
from typing import Optional, Tuple

from .checkpoints import CheckpointState
from .controllers import Controller
from .data_models import (
    AgentSettings,
    AgentStatus,
    ContactEvent,
    Controls,
    DriveCommand,
    FitnessWeights,
    Layer,
    ScoreEntry,
)
from .genome import Genome
from .geometry import distance
from .physics import PhysicsWorld, TrackModel
from .sensors import SensorArray, SensorReading

log = logging.getLogger(__name__)


class Agent:
    """One vehicle in the physics world plus its controller and race progress."""

    def __init__(
        self,
        agent_id: int,
        controller: Controller,
        physics: PhysicsWorld,
        track: TrackModel,
        sensors: SensorArray,
        settings: Optional[AgentSettings] = None,
        weights: Optional[FitnessWeights] = None,
    ) -> None:
        self.agent_id = agent_id
        self.controller = controller
        self.physics = physics
        self.track = track
        self.sensors = sensors
        self.settings = settings or AgentSettings.from_config()
        self.weights = weights or FitnessWeights.from_config()

        self.checkpoints = CheckpointState(track.checkpoint_count(), self.settings.checkpoint_policy)
        self.status = AgentStatus.RACING
        self.wall_collisions = 0
        self.race_time = 0.0
        self.finish_time: Optional[float] = None
        self.score_recorded = False
        self.selected = False
        self.focused = False
        self.fault_count = 0

        self.last_senses: SensorReading = ()
        self.last_controls = Controls.zero()
        self.last_command = DriveCommand.idle()

    @property
    def genome(self) -> Optional[Genome]:
        return self.controller.genome

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def is_finished(self) -> bool:
        return self.status is AgentStatus.FINISHED

    @property
    def is_eliminated(self) -> bool:
        return self.status is AgentStatus.ELIMINATED

    # --- Per-tick driving ----------------------------------------------

    def drive(self) -> DriveCommand:
        """Sense, think and push this tick's command to the physics world."""
        if self.is_terminal:
            return self.last_command
        pose = self.physics.pose(self.agent_id)
        speed = self.physics.velocity(self.agent_id).speed
        self.last_senses = self.sensors.sense(pose, self.physics)
        self.last_controls = self.controller.compute_controls(self.last_senses, speed)
        return self._apply(DriveCommand.from_controls(self.last_controls))

    def hold(self) -> None:
        """Zero output while the start countdown runs."""
        self.last_controls = Controls.zero()
        self._apply(DriveCommand.idle())

    def advance_clock(self, race_time: float) -> None:
        if not self.is_terminal:
            self.race_time = race_time

    def _apply(self, command: DriveCommand) -> DriveCommand:
        self.last_command = command
        self.physics.apply_controls(self.agent_id, command)
        return command

    # --- Contacts ------------------------------------------------------

    def handle_contact(self, event: ContactEvent) -> None:
        if self.is_terminal:
            return
        if event.layer & Layer.CHECKPOINT:
            if event.checkpoint_index is not None:
                self.on_checkpoint(event.checkpoint_index)
        elif event.layer & Layer.FINISH:
            self.on_finish()
        elif event.layer & Layer.WALL:
            self.on_wall()

    def on_checkpoint(self, index: int) -> bool:
        return self.checkpoints.register(index, self.race_time)

    def on_finish(self) -> bool:
        if self.is_terminal or not self.checkpoints.all_hit:
            return False
        self.status = AgentStatus.FINISHED
        self.finish_time = self.race_time
        self._apply(DriveCommand.idle())
        log.debug("[Agent %s] finished in %.2fs", self.agent_id, self.finish_time)
        return True

    def on_wall(self) -> bool:
        if self.is_terminal:
            return False
        speed = self.physics.velocity(self.agent_id).speed
        if speed <= self.settings.wall_speed_threshold:
            return False
        self.wall_collisions += 1
        self.physics.damp(self.agent_id, self.settings.collision_damping)
        if self.settings.eliminate_on_wall:
            self.status = AgentStatus.ELIMINATED
            self._apply(DriveCommand.idle())
        else:
            last = self.last_command
            self._apply(DriveCommand(steer=last.steer, throttle=0.0, brake=last.brake))
        return True

    def take_score(self, generation: int) -> Optional[ScoreEntry]:
        """Returns the finish record the first time it is asked for after finishing."""
        if not self.is_finished or self.score_recorded:
            return None
        self.score_recorded = True
        return ScoreEntry(
            generation=generation,
            agent_id=self.agent_id,
            time=float(self.finish_time),
            checkpoint_times=tuple(self.checkpoints.checkpoint_times),
        )

    # --- Fitness -------------------------------------------------------

    def next_target_position(self) -> Optional[Tuple[float, float]]:
        position = self.physics.pose(self.agent_id).position
        positions = self.track.checkpoint_positions()
        index = self.checkpoints.next_target(position, positions)
        if index is not None:
            return positions[index]
        return self.track.finish_position()

    def distance_to_next(self) -> float:
        target = self.next_target_position()
        if target is None:
            return 0.0
        return distance(self.physics.pose(self.agent_id).position, target)

    def fitness(self) -> float:
        return (
            self.checkpoints.hit_count * self.weights.checkpoint
            - self.wall_collisions * self.weights.wall_penalty
            - self.distance_to_next() * self.weights.distance
        )

    def __repr__(self) -> str:
        return f"Agent(id={self.agent_id}, status={self.status.value}, checkpoints={self.checkpoints.hit_count})"
