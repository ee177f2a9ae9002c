from __future__ import annotations

import bisect
from typing import Iterable, Iterator, List, Optional

from .data_models import ScoreEntry


def format_time(seconds: float) -> str:
    """Formats a race time as m:ss.ss."""
    minutes = int(seconds // 60)
    remaining = seconds - minutes * 60
    return f"{minutes}:{remaining:05.2f}"


class Leaderboard:
    """Finish times across all generations, ascending by time."""

    def __init__(self, entries: Optional[Iterable[ScoreEntry]] = None) -> None:
        self._entries: List[ScoreEntry] = []
        for entry in entries or ():
            self.add(entry)

    def add(self, entry: ScoreEntry) -> int:
        """Insert an entry and return its 1-based position."""
        self._entries.append(entry)
        # stable: equal times keep insertion order
        self._entries.sort(key=lambda e: e.time)
        return next(idx for idx, e in enumerate(self._entries, start=1) if e is entry)

    def position_of(self, time: float) -> int:
        """Position a new time would take if added now."""
        times = [e.time for e in self._entries]
        return bisect.bisect_right(times, time) + 1

    def best(self) -> Optional[ScoreEntry]:
        return self._entries[0] if self._entries else None

    def for_generation(self, generation: int) -> List[ScoreEntry]:
        return [e for e in self._entries if e.generation == generation]

    def discard_generation(self, generation: int) -> int:
        before = len(self._entries)
        self._entries = [e for e in self._entries if e.generation != generation]
        return before - len(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def entries(self) -> List[ScoreEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ScoreEntry]:
        return iter(list(self._entries))
