"""
Neuroevolution engine for top-down racing agents.

The package is split into data models, genomes and controllers, per-agent
race progress, and the generation manager that breeds new populations from
operator-selected parents. The physics world is a collaborator; the bundled
ArcadeWorld and TrackLayout are a small reference implementation.
"""

from .agent import Agent  # noqa: F401
from .arcade import ArcadeSettings, ArcadeWorld  # noqa: F401
from .controllers import HumanController, NeuralController  # noqa: F401
from .data_models import (  # noqa: F401
    AgentStatus,
    CheckpointPolicy,
    ContactEvent,
    Controls,
    DriveCommand,
    HistoryEntry,
    Layer,
    MutationPolicy,
    OutputPolicy,
    Pose,
    ScoreEntry,
    Velocity,
)
from .errors import (  # noqa: F401
    EmptyHistory,
    EvolutionError,
    NoSelection,
    OperationResult,
    PersistenceFailure,
    ShapeMismatch,
)
from .genetic_manager import GeneticManager  # noqa: F401
from .genome import Genome  # noqa: F401
from .leaderboard import Leaderboard, format_time  # noqa: F401
from .persistence import EvolutionRecord, EvolutionStore  # noqa: F401
from .sensors import SensorArray  # noqa: F401
from .telemetry import TelemetryAgentFrame, TelemetryCollector, TelemetryFrame  # noqa: F401
from .track import TrackLayout, TrackSegment  # noqa: F401

__all__ = [
    "Agent",
    "ArcadeSettings",
    "ArcadeWorld",
    "HumanController",
    "NeuralController",
    "AgentStatus",
    "CheckpointPolicy",
    "ContactEvent",
    "Controls",
    "DriveCommand",
    "HistoryEntry",
    "Layer",
    "MutationPolicy",
    "OutputPolicy",
    "Pose",
    "ScoreEntry",
    "Velocity",
    "EmptyHistory",
    "EvolutionError",
    "NoSelection",
    "OperationResult",
    "PersistenceFailure",
    "ShapeMismatch",
    "GeneticManager",
    "Genome",
    "Leaderboard",
    "format_time",
    "EvolutionRecord",
    "EvolutionStore",
    "SensorArray",
    "TelemetryAgentFrame",
    "TelemetryCollector",
    "TelemetryFrame",
    "TrackLayout",
    "TrackSegment",
]
