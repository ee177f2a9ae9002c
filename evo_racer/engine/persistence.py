"""
Best-effort local storage for evolution history and scores.

Record layout (JSON):

    {
        "generation": 3,
        "brainHistory": [
            {"generation": 1, "brains": [{"weights": {"hidden": [[...]], "output": [[...]]}}]}
        ],
        "scores": [
            {"generation": 2, "agentId": 4, "time": 41.2, "checkpointTimes": [3.1, 7.9]}
        ]
    }
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .data_models import HistoryEntry, ScoreEntry
from .errors import PersistenceFailure, ShapeMismatch
from .genome import Genome

log = logging.getLogger(__name__)


@dataclass
class EvolutionRecord:
    generation: int = 1
    history: List[HistoryEntry] = field(default_factory=list)
    scores: List[ScoreEntry] = field(default_factory=list)


def encode_record(record: EvolutionRecord) -> Dict[str, Any]:
    return {
        "generation": record.generation,
        "brainHistory": [
            {
                "generation": entry.generation,
                "brains": [{"weights": genome.to_dict()} for genome in entry.genomes],
            }
            for entry in record.history
        ],
        "scores": [
            {
                "generation": score.generation,
                "agentId": score.agent_id,
                "time": score.time,
                "checkpointTimes": list(score.checkpoint_times),
            }
            for score in record.scores
        ],
    }


def _expect(value: Any, kind: type, what: str) -> Any:
    if not isinstance(value, kind):
        raise PersistenceFailure(
            f"malformed evolution record: {what} is {type(value).__name__}, expected {kind.__name__}"
        )
    return value


def decode_record(data: Dict[str, Any]) -> EvolutionRecord:
    _expect(data, dict, "record")
    try:
        history = []
        for entry in _expect(data.get("brainHistory", []), list, "brainHistory"):
            _expect(entry, dict, "history entry")
            brains = [_expect(brain, dict, "brain") for brain in _expect(entry["brains"], list, "brains")]
            history.append(
                HistoryEntry(
                    generation=int(entry["generation"]),
                    genomes=[Genome.from_dict(_expect(brain["weights"], dict, "weights")) for brain in brains],
                )
            )
        scores = []
        for score in _expect(data.get("scores", []), list, "scores"):
            _expect(score, dict, "score")
            scores.append(
                ScoreEntry(
                    generation=int(score["generation"]),
                    agent_id=int(score["agentId"]),
                    time=float(score["time"]),
                    checkpoint_times=tuple(float(t) for t in score.get("checkpointTimes", [])),
                )
            )
        return EvolutionRecord(generation=int(data["generation"]), history=history, scores=scores)
    except (KeyError, TypeError, ValueError, ShapeMismatch) as exc:
        raise PersistenceFailure(f"malformed evolution record: {exc}") from exc


class EvolutionStore:
    """One JSON file per track (or a single shared slot when no track id is given)."""

    def __init__(self, directory: Union[str, Path], track_id: Optional[str] = None) -> None:
        self.directory = Path(directory)
        name = f"evolution-{track_id}.json" if track_id else "evolution.json"
        self.path = self.directory / name

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Optional[EvolutionRecord]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            raise PersistenceFailure(f"could not read {self.path}: {exc}") from exc
        return decode_record(data)

    def save(self, record: EvolutionRecord) -> None:
        payload = encode_record(record)
        fd = None
        tmp_name = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".evolution-", suffix=".tmp")
            f = os.fdopen(fd, "w")
            # the file object owns the descriptor from here on
            fd = None
            with f:
                json.dump(payload, f)
            os.replace(tmp_name, self.path)
        except (OSError, TypeError, ValueError) as exc:
            if fd is not None:
                os.close(fd)
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceFailure(f"could not write {self.path}: {exc}") from exc
        log.debug("[EvolutionStore] saved generation %s to %s", record.generation, self.path)

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise PersistenceFailure(f"could not remove {self.path}: {exc}") from exc
