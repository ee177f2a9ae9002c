"""
Generation lifecycle for the human-in-the-loop evolutionary trainer.

A generation races until either every agent is terminal, or the time budget
has run out and the operator has picked two parents. The operator then
evolves (next generation bred from the selection), restarts the current
generation, or undoes the last evolution step. History and finish scores are
persisted after every change, best effort.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

from .agent import Agent
from .controllers import OUTPUT_CHANNELS, NeuralController
from .data_models import (
    AgentSettings,
    ControllerSettings,
    EvolutionSettings,
    FitnessWeights,
    GenomeSettings,
    HistoryEntry,
    MutationSettings,
    ScoreEntry,
    SensorSettings,
)
from .errors import EmptyHistory, NoSelection, OperationResult, PersistenceFailure
from .genome import Genome
from .leaderboard import Leaderboard
from .persistence import EvolutionRecord, EvolutionStore
from .physics import PhysicsWorld, TrackModel
from .sensors import SensorArray
from .telemetry import TelemetryAgentFrame, TelemetryCollector, TelemetryFrame

log = logging.getLogger(__name__)

MAX_SELECTED = 2

ScoreSink = Callable[[ScoreEntry, int], None]


class ManagerPhase(Enum):
    POPULATING = "populating"
    COUNTDOWN = "countdown"
    RACING = "racing"
    COMPLETE = "complete"


class GeneticManager:
    def __init__(
        self,
        physics: PhysicsWorld,
        track: TrackModel,
        store: Optional[EvolutionStore] = None,
        score_sink: Optional[ScoreSink] = None,
        settings: Optional[EvolutionSettings] = None,
        sensor_settings: Optional[SensorSettings] = None,
        genome_settings: Optional[GenomeSettings] = None,
        controller_settings: Optional[ControllerSettings] = None,
        mutation_settings: Optional[MutationSettings] = None,
        agent_settings: Optional[AgentSettings] = None,
        fitness_weights: Optional[FitnessWeights] = None,
        telemetry: Optional[TelemetryCollector] = None,
        rng: Optional[np.random.Generator] = None,
        autostart: bool = True,
    ) -> None:
        self.physics = physics
        self.track = track
        self.store = store
        self.score_sink = score_sink
        self.settings = settings or EvolutionSettings.from_config()
        self.sensors = SensorArray(sensor_settings or SensorSettings.from_config())
        self.genome_settings = genome_settings or GenomeSettings.from_config()
        self.controller_settings = controller_settings or ControllerSettings.from_config()
        self.mutation_settings = mutation_settings or MutationSettings.from_config()
        self.agent_settings = agent_settings or AgentSettings.from_config()
        self.fitness_weights = fitness_weights or FitnessWeights.from_config()
        self.telemetry = telemetry
        self.rng = rng or np.random.default_rng()

        self.population_size = self.settings.population_size
        self.generation = 1
        self.agents: List[Agent] = []
        self.selected: List[Agent] = []
        self.focused_index = 0
        self.history: List[HistoryEntry] = []
        self.leaderboard = Leaderboard()
        self.phase = ManagerPhase.POPULATING

        self.frame = 0
        self.generation_start_frame = 0
        self._agents_by_id: Dict[int, Agent] = {}

        if autostart:
            self.start()

    @property
    def input_size(self) -> int:
        return self.sensors.ray_count + 1

    @property
    def countdown_frames(self) -> int:
        return int(round(self.settings.countdown_seconds * self.settings.tick_rate))

    @property
    def time_elapsed(self) -> float:
        """Seconds since the generation started, countdown included."""
        return (self.frame - self.generation_start_frame) / self.settings.tick_rate

    @property
    def race_time(self) -> float:
        race_frames = self.frame - self.generation_start_frame - self.countdown_frames
        return max(0, race_frames) / self.settings.tick_rate

    @property
    def in_countdown(self) -> bool:
        return self.frame - self.generation_start_frame < self.countdown_frames

    def start(self) -> None:
        """Resume from the persisted record when there is one, else seed generation 1."""
        self.load()
        if self.history:
            self.restart_from_history()
        else:
            self.initialize_population()

    # --- Population building -------------------------------------------

    def initialize_population(self, size: Optional[int] = None) -> None:
        if size is not None:
            if size < 1:
                raise ValueError("population size must be at least 1")
            self.population_size = size
        self.leaderboard.discard_generation(self.generation)
        genomes = [self._random_genome() for _ in range(self.population_size)]
        self._populate(genomes)
        self.save()

    def restart_from_history(self) -> OperationResult:
        if not self.history:
            error = EmptyHistory("no evolution history to restart from")
            log.warning("[GeneticManager] %s", error)
            return OperationResult.failure(error)
        self.leaderboard.discard_generation(self.generation)
        self._populate(self._offspring(self.history[-1].genomes))
        self.save()
        return OperationResult.success(f"restarted generation {self.generation} from history")

    def _random_genome(self) -> Genome:
        return Genome.create(
            self.input_size,
            self.genome_settings.hidden_size,
            self.genome_settings.output_size,
            rng=self.rng,
        )

    def _offspring(self, parents: Sequence[Genome]) -> List[Genome]:
        """Clone+mutate parents into a full population.

        With two parents the first floor(size / 2) slots descend from the first
        parent and the rest from the second.
        """
        half = self.population_size // 2
        genomes: List[Genome] = []
        for slot in range(self.population_size):
            if len(parents) >= 2:
                base = parents[0] if slot < half else parents[1]
            else:
                base = parents[0]
            genomes.append(base.clone().mutate_with(self.mutation_settings, rng=self.rng))
        return genomes

    def _populate(self, genomes: Sequence[Genome]) -> None:
        self.phase = ManagerPhase.POPULATING
        for agent in self.agents:
            self.physics.despawn(agent.agent_id)

        self.agents = []
        self.selected = []
        for display_index, genome in enumerate(genomes, start=1):
            controller = NeuralController(genome, self.controller_settings)
            agent = Agent(
                display_index,
                controller,
                self.physics,
                self.track,
                self.sensors,
                settings=self.agent_settings,
                weights=self.fitness_weights,
            )
            self.physics.spawn(display_index)
            self.agents.append(agent)
        self._agents_by_id = {agent.agent_id: agent for agent in self.agents}

        self.focused_index = 0
        if self.agents:
            self.agents[0].focused = True

        # every agent starts on the same frame
        self.generation_start_frame = self.frame
        self.phase = ManagerPhase.COUNTDOWN if self.countdown_frames > 0 else ManagerPhase.RACING
        log.info(
            "[GeneticManager] generation %s populated with %s agents",
            self.generation,
            len(self.agents),
        )

    # --- Tick ----------------------------------------------------------

    def update(self) -> None:
        self.frame += 1
        countdown = self.in_countdown
        race_time = self.race_time

        for agent in self.agents:
            if agent.is_terminal:
                continue
            agent.advance_clock(race_time)
            try:
                if countdown:
                    agent.hold()
                else:
                    agent.drive()
            except Exception as exc:
                self._agent_fault(agent, exc)

        try:
            contacts = self.physics.step(self.settings.dt)
        except Exception as exc:
            log.error("[GeneticManager] physics step failed on frame %s: %s", self.frame, exc)
            contacts = []

        if countdown and contacts:
            log.debug("[GeneticManager] ignoring %s contacts during countdown", len(contacts))
            contacts = []

        for event in contacts:
            agent = self._agents_by_id.get(event.agent_id)
            if agent is None:
                continue
            try:
                agent.handle_contact(event)
            except Exception as exc:
                self._agent_fault(agent, exc)

        for agent in self.agents:
            entry = agent.take_score(self.generation)
            if entry is not None:
                self._record_score(entry, agent)

        if self.phase is not ManagerPhase.COMPLETE:
            if self.is_generation_complete():
                self.phase = ManagerPhase.COMPLETE
            elif not countdown:
                self.phase = ManagerPhase.RACING

        if self.telemetry is not None:
            self._record_telemetry(countdown)

    def _agent_fault(self, agent: Agent, exc: Exception) -> None:
        agent.fault_count += 1
        if agent.fault_count == 1:
            log.error("[GeneticManager] agent %s failed during tick: %s", agent.agent_id, exc, exc_info=exc)
        else:
            log.debug("[GeneticManager] agent %s failed again (%s): %s", agent.agent_id, agent.fault_count, exc)

    def _record_score(self, entry: ScoreEntry, agent: Agent) -> None:
        position = self.leaderboard.add(entry)
        log.info(
            "[GeneticManager] agent %s finished generation %s in %.2fs (position %s)",
            entry.agent_id,
            entry.generation,
            entry.time,
            position,
        )
        if len(self.leaderboard) == 1 and not agent.focused:
            self.focus_agent(self.agents.index(agent))
        if self.score_sink is not None:
            try:
                self.score_sink(entry, position)
            except Exception as exc:
                log.error("[GeneticManager] score sink failed: %s", exc)
        self.save()

    def _record_telemetry(self, countdown: bool) -> None:
        frames: List[TelemetryAgentFrame] = []
        for agent in self.agents:
            try:
                pose = self.physics.pose(agent.agent_id)
                speed = self.physics.velocity(agent.agent_id).speed
                fitness = agent.fitness()
            except Exception as exc:
                log.debug("[GeneticManager] telemetry skipped agent %s: %s", agent.agent_id, exc)
                continue
            frames.append(
                TelemetryAgentFrame(
                    agent_id=agent.agent_id,
                    status=agent.status.value,
                    world_position=pose.position,
                    speed=speed,
                    checkpoints_hit=agent.checkpoints.hit_count,
                    wall_collisions=agent.wall_collisions,
                    race_time=agent.race_time,
                    fitness=fitness,
                    selected=agent.selected,
                )
            )
        self.telemetry.record_frame(
            TelemetryFrame(
                tick=self.frame,
                generation=self.generation,
                time=self.race_time,
                countdown=countdown,
                agents=frames,
            )
        )

    def is_generation_complete(self) -> bool:
        if self.agents and all(agent.is_terminal for agent in self.agents):
            return True
        budget_spent = self.time_elapsed >= self.settings.generation_time_budget
        return budget_spent and len(self.selected) == MAX_SELECTED

    # --- Selection and focus -------------------------------------------

    def select_agent(self, agent: Agent) -> None:
        """Toggle `agent` in the selection; a third pick evicts the oldest."""
        if agent in self.selected:
            self.selected.remove(agent)
            agent.selected = False
            return
        if len(self.selected) >= MAX_SELECTED:
            evicted = self.selected.pop(0)
            evicted.selected = False
        self.selected.append(agent)
        agent.selected = True

    def select_focused(self) -> None:
        agent = self.focused_agent
        if agent is not None:
            self.select_agent(agent)

    def clear_selection(self) -> None:
        for agent in self.selected:
            agent.selected = False
        self.selected = []

    @property
    def focused_agent(self) -> Optional[Agent]:
        if 0 <= self.focused_index < len(self.agents):
            return self.agents[self.focused_index]
        return None

    def focus_agent(self, index: int) -> None:
        if not 0 <= index < len(self.agents):
            raise IndexError(f"no agent at index {index}")
        current = self.focused_agent
        if current is not None:
            current.focused = False
        self.focused_index = index
        self.agents[index].focused = True

    def cycle_focus(self) -> None:
        if self.agents:
            self.focus_agent((self.focused_index + 1) % len(self.agents))

    def focus_best(self) -> Optional[Agent]:
        """Focus the best finisher, or the most advanced agent still in the race.

        Repeated calls walk down the same ranking.
        """
        finished = sorted((a for a in self.agents if a.is_finished), key=lambda a: a.finish_time)
        if finished:
            candidates = finished
        else:
            candidates = sorted(
                (a for a in self.agents if not a.is_eliminated),
                key=lambda a: (-a.checkpoints.hit_count, a.race_time),
            )
        if not candidates:
            log.info("[GeneticManager] no active agents to focus")
            return None
        current = self.focused_agent
        position = candidates.index(current) if current in candidates else -1
        target = candidates[(position + 1) % len(candidates)]
        self.focus_agent(self.agents.index(target))
        return target

    def rank_by_fitness(self) -> List[Agent]:
        return sorted(self.agents, key=lambda a: a.fitness(), reverse=True)

    def auto_select(self, count: int = MAX_SELECTED) -> List[Agent]:
        """Select the top agents: finishers by time first, then the rest by live fitness."""
        count = max(0, min(count, MAX_SELECTED))
        finishers = sorted((a for a in self.agents if a.is_finished), key=lambda a: a.finish_time)
        others = [a for a in self.rank_by_fitness() if not a.is_finished]
        self.clear_selection()
        for agent in (finishers + others)[:count]:
            self.select_agent(agent)
        return list(self.selected)

    # --- Operator actions ----------------------------------------------

    def evolve(self) -> OperationResult:
        parents = [agent.genome for agent in self.selected if agent.genome is not None]
        if not parents:
            error = NoSelection("select at least one agent before evolving")
            log.warning("[GeneticManager] %s", error)
            return OperationResult.failure(error)

        offspring = self._offspring(parents)
        self.history.append(HistoryEntry(self.generation, [genome.clone() for genome in parents]))
        self.generation += 1
        self.clear_selection()
        self._populate(offspring)
        self.save()
        return OperationResult.success(f"evolved to generation {self.generation}")

    def restart_generation(self) -> OperationResult:
        """Rebuild the current generation without advancing the counter."""
        self.leaderboard.discard_generation(self.generation)
        parents = [agent.genome for agent in self.selected if agent.genome is not None]
        if parents:
            self.history.append(HistoryEntry(self.generation, [genome.clone() for genome in parents]))
            genomes = self._offspring(parents)
        elif self.history:
            genomes = self._offspring(self.history[-1].genomes)
        else:
            genomes = [self._random_genome() for _ in range(self.population_size)]
        self.clear_selection()
        self._populate(genomes)
        self.save()
        return OperationResult.success(f"restarted generation {self.generation}")

    def undo_last_evolution(self) -> OperationResult:
        if len(self.history) <= 1:
            error = EmptyHistory("no previous evolution to undo")
            log.warning("[GeneticManager] %s", error)
            return OperationResult.failure(error)
        self.history.pop()
        self.generation -= 1
        self.restart_from_history()
        return OperationResult.success(f"returned to generation {self.generation}")

    def reset_evolution(self) -> None:
        self.generation = 1
        self.history = []
        self.leaderboard.clear()
        if self.store is not None:
            try:
                self.store.clear()
            except PersistenceFailure as exc:
                log.error("[GeneticManager] could not clear saved evolution: %s", exc)
        self.initialize_population()

    # --- Persistence ---------------------------------------------------

    def scores(self) -> List[ScoreEntry]:
        return self.leaderboard.entries()

    def to_record(self) -> EvolutionRecord:
        return EvolutionRecord(generation=self.generation, history=list(self.history), scores=self.scores())

    def save(self) -> bool:
        if self.store is None:
            return False
        try:
            self.store.save(self.to_record())
        except PersistenceFailure as exc:
            log.error("[GeneticManager] failed to save evolution: %s", exc)
            return False
        return True

    def load(self) -> bool:
        if self.store is None:
            return False
        try:
            record = self.store.load()
            if record is None:
                return False
            self._check_record(record)
        except PersistenceFailure as exc:
            log.error("[GeneticManager] failed to load evolution, starting fresh: %s", exc)
            return False
        self.generation = record.generation
        self.history = list(record.history)
        self.leaderboard = Leaderboard(record.scores)
        log.info(
            "[GeneticManager] resumed at generation %s with %s history entries",
            self.generation,
            len(self.history),
        )
        return True

    def _check_record(self, record: EvolutionRecord) -> None:
        """Raises PersistenceFailure when a saved record cannot seed this manager."""
        if record.generation < 1:
            raise PersistenceFailure(f"saved generation {record.generation} is not positive")
        expected = (self.input_size, self.genome_settings.hidden_size, len(OUTPUT_CHANNELS))
        for entry in record.history:
            if not entry.genomes:
                raise PersistenceFailure(f"history entry for generation {entry.generation} has no genomes")
            for genome in entry.genomes:
                if genome.shape != expected:
                    raise PersistenceFailure(
                        f"saved genome shape {genome.shape} does not match {expected} "
                        f"(generation {entry.generation})"
                    )
