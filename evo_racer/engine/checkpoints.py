from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Set, Tuple

from .data_models import CheckpointPolicy
from .geometry import distance

log = logging.getLogger(__name__)


class CheckpointState:
    """Tracks which checkpoints an agent has crossed and when.

    STRICT only accepts the next expected index; ANY_ORDER accepts any index
    not hit yet. Either way an index is recorded at most once.
    """

    def __init__(self, total: int, policy: CheckpointPolicy = CheckpointPolicy.ANY_ORDER) -> None:
        if total < 0:
            raise ValueError("checkpoint total cannot be negative")
        self.total = total
        self.policy = policy
        self.hit: Set[int] = set()
        self._times: List[Optional[float]] = [None] * total
        self.next_expected = 0

    @property
    def hit_count(self) -> int:
        return len(self.hit)

    @property
    def all_hit(self) -> bool:
        return len(self.hit) == self.total

    @property
    def checkpoint_times(self) -> List[float]:
        """Hit times in checkpoint order; unhit checkpoints are skipped."""
        return [t for t in self._times if t is not None]

    def time_for(self, index: int) -> Optional[float]:
        if 0 <= index < self.total:
            return self._times[index]
        return None

    def register(self, index: int, race_time: float) -> bool:
        """Record a contact with checkpoint `index`; returns True when it counted."""
        if not 0 <= index < self.total:
            log.debug("[CheckpointState] ignoring unknown checkpoint index %s", index)
            return False
        if index in self.hit:
            return False
        if self.policy is CheckpointPolicy.STRICT and index != self.next_expected:
            return False

        self.hit.add(index)
        self._times[index] = race_time
        if self.policy is CheckpointPolicy.STRICT:
            self.next_expected += 1
        else:
            while self.next_expected in self.hit:
                self.next_expected += 1
        return True

    def next_target(self, position: Tuple[float, float], positions: Sequence[Tuple[float, float]]) -> Optional[int]:
        """Index of the checkpoint the agent should head for, or None when all are hit."""
        if self.all_hit or not positions:
            return None
        if self.policy is CheckpointPolicy.STRICT:
            return self.next_expected if self.next_expected < len(positions) else None
        remaining = [idx for idx in range(min(self.total, len(positions))) if idx not in self.hit]
        if not remaining:
            return None
        return min(remaining, key=lambda idx: distance(position, positions[idx]))

    def reset(self) -> None:
        self.hit.clear()
        self._times = [None] * self.total
        self.next_expected = 0
