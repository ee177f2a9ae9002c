from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class EvolutionError(RuntimeError):
    """Base class for errors raised by the evolution engine."""


class ShapeMismatch(EvolutionError, ValueError):
    """Raised when genome matrices or an input vector do not line up."""

    def __init__(self, message: str, expected=None, actual=None) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class NoSelection(EvolutionError):
    """Evolution was requested without any selected agent."""


class EmptyHistory(EvolutionError):
    """Undo was requested with no earlier history entry to return to."""


class PersistenceFailure(EvolutionError):
    """Saving or loading the evolution record failed."""


@dataclass(frozen=True)
class OperationResult:
    """Outcome of an operator-triggered action on the manager.

    Recoverable conditions are reported here instead of being raised so the
    tick loop keeps running.
    """

    ok: bool
    message: str = ""
    error: Optional[EvolutionError] = None

    @classmethod
    def success(cls, message: str = "") -> "OperationResult":
        return cls(ok=True, message=message)

    @classmethod
    def failure(cls, error: EvolutionError) -> "OperationResult":
        return cls(ok=False, message=str(error), error=error)

    def __bool__(self) -> bool:
        return self.ok
