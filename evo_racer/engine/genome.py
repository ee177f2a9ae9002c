"""
Two-layer, bias-free weight genome driving the neural controller.

hidden = sigmoid(inputs @ hidden_weights)
output = sigmoid(hidden @ output_weights)
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np

from .data_models import MutationPolicy, MutationSettings
from .errors import ShapeMismatch


def sigmoid(x: np.ndarray) -> np.ndarray:
    # tanh form does not overflow for large |x|
    return 0.5 * (1.0 + np.tanh(0.5 * x))


def _as_matrix(values: Any, name: str) -> np.ndarray:
    try:
        matrix = np.array(values, dtype=float)
    except ValueError as exc:
        raise ShapeMismatch(f"{name} weights are not rectangular") from exc
    if matrix.ndim != 2 or 0 in matrix.shape:
        raise ShapeMismatch(f"{name} weights must be a non-empty 2D matrix", actual=matrix.shape)
    return matrix


class Genome:
    def __init__(self, hidden: Any, output: Any) -> None:
        hidden_matrix = _as_matrix(hidden, "hidden")
        output_matrix = _as_matrix(output, "output")
        if hidden_matrix.shape[1] != output_matrix.shape[0]:
            raise ShapeMismatch(
                "hidden width does not match output height",
                expected=hidden_matrix.shape[1],
                actual=output_matrix.shape[0],
            )
        self._hidden = hidden_matrix
        self._output = output_matrix

    @classmethod
    def create(
        cls,
        input_size: int,
        hidden_size: int,
        output_size: int,
        rng: Optional[np.random.Generator] = None,
    ) -> "Genome":
        rng = rng or np.random.default_rng()
        return cls(
            rng.standard_normal((input_size, hidden_size)),
            rng.standard_normal((hidden_size, output_size)),
        )

    # --- Shape ---------------------------------------------------------

    @property
    def hidden(self) -> np.ndarray:
        view = self._hidden.view()
        view.flags.writeable = False
        return view

    @property
    def output(self) -> np.ndarray:
        view = self._output.view()
        view.flags.writeable = False
        return view

    @property
    def input_size(self) -> int:
        return self._hidden.shape[0]

    @property
    def hidden_size(self) -> int:
        return self._hidden.shape[1]

    @property
    def output_size(self) -> int:
        return self._output.shape[1]

    @property
    def shape(self) -> Tuple[int, int, int]:
        return (self.input_size, self.hidden_size, self.output_size)

    # --- Evaluation ----------------------------------------------------

    def forward(self, inputs: Sequence[float]) -> np.ndarray:
        vector = np.asarray(inputs, dtype=float)
        if vector.ndim != 1 or vector.shape[0] != self.input_size:
            raise ShapeMismatch(
                f"expected {self.input_size} inputs, got {vector.shape}",
                expected=self.input_size,
                actual=vector.shape,
            )
        hidden = sigmoid(vector @ self._hidden)
        return sigmoid(hidden @ self._output)

    # --- Variation -----------------------------------------------------

    def clone(self) -> "Genome":
        return Genome(self._hidden.copy(), self._output.copy())

    def mutate(
        self,
        rate: float = 0.1,
        magnitude: float = 0.5,
        policy: MutationPolicy = MutationPolicy.PROBABILISTIC,
        rng: Optional[np.random.Generator] = None,
    ) -> "Genome":
        """Perturb weights in place by uniform deltas in [-magnitude, magnitude].

        PROBABILISTIC touches each weight independently with probability `rate`;
        ALWAYS touches every weight.
        """
        rng = rng or np.random.default_rng()
        for matrix in (self._hidden, self._output):
            delta = rng.uniform(-magnitude, magnitude, size=matrix.shape)
            if policy is MutationPolicy.PROBABILISTIC:
                delta *= rng.random(matrix.shape) < rate
            matrix += delta
        return self

    def mutate_with(self, settings: MutationSettings, rng: Optional[np.random.Generator] = None) -> "Genome":
        return self.mutate(settings.rate, settings.magnitude, settings.policy, rng)

    def breed(
        self,
        other: "Genome",
        mutation_rate: float = 0.05,
        magnitude: float = 0.5,
        rng: Optional[np.random.Generator] = None,
    ) -> "Genome":
        """Uniform crossover with `other`, followed by light per-weight mutation."""
        if self.shape != other.shape:
            raise ShapeMismatch("cannot breed genomes of different shapes", expected=self.shape, actual=other.shape)
        rng = rng or np.random.default_rng()
        hidden_mask = rng.random(self._hidden.shape) < 0.5
        output_mask = rng.random(self._output.shape) < 0.5
        child = Genome(
            np.where(hidden_mask, self._hidden, other._hidden),
            np.where(output_mask, self._output, other._output),
        )
        if mutation_rate > 0.0:
            child.mutate(mutation_rate, magnitude, MutationPolicy.PROBABILISTIC, rng)
        return child

    def breed_with(
        self, other: "Genome", settings: MutationSettings, rng: Optional[np.random.Generator] = None
    ) -> "Genome":
        return self.breed(other, settings.breed_rate, settings.magnitude, rng)

    # --- Serialisation -------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {"hidden": self._hidden.tolist(), "output": self._output.tolist()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Genome":
        try:
            return cls(data["hidden"], data["output"])
        except (KeyError, TypeError) as exc:
            raise ShapeMismatch(f"malformed genome weights: {exc}") from exc

    def __repr__(self) -> str:
        return f"Genome(shape={self.shape})"
