from __future__ import annotations

from typing import Dict, Optional, Sequence, Union

import numpy as np

from .data_models import ControllerSettings, Controls, OutputPolicy
from .errors import ShapeMismatch
from .genome import Genome

# Genome output channel order
OUTPUT_CHANNELS = ("up", "down", "left", "right")

KEY_CODES = {
    37: "left",
    38: "up",
    39: "right",
    40: "down",
}


class Controller:
    """Maps one tick's sensor reading to a control vector."""

    genome: Optional[Genome] = None

    def compute_controls(self, senses: Sequence[float], speed: float = 0.0) -> Controls:
        raise NotImplementedError


class HumanController(Controller):
    """Held-key state maps straight to full or zero magnitude on each channel."""

    def __init__(self) -> None:
        self._keys: Dict[str, bool] = {"left": False, "right": False, "up": False, "down": False}

    def press(self, key: Union[str, int]) -> None:
        self._set(key, True)

    def release(self, key: Union[str, int]) -> None:
        self._set(key, False)

    def _set(self, key: Union[str, int], value: bool) -> None:
        name = KEY_CODES.get(key) if isinstance(key, int) else key
        if name in self._keys:
            self._keys[name] = value

    def compute_controls(self, senses: Sequence[float], speed: float = 0.0) -> Controls:
        return Controls(**{name: 1.0 if held else 0.0 for name, held in self._keys.items()})


class NeuralController(Controller):
    def __init__(self, genome: Genome, settings: Optional[ControllerSettings] = None) -> None:
        if genome.output_size != len(OUTPUT_CHANNELS):
            raise ShapeMismatch(
                "controller genome must expose one output per control channel",
                expected=len(OUTPUT_CHANNELS),
                actual=genome.output_size,
            )
        self.genome = genome
        self.settings = settings or ControllerSettings.from_config()

    @property
    def sensor_count(self) -> int:
        return self.genome.input_size - 1

    def build_inputs(self, senses: Sequence[float], speed: float) -> np.ndarray:
        if len(senses) != self.sensor_count:
            raise ShapeMismatch(
                f"expected {self.sensor_count} sensor readings, got {len(senses)}",
                expected=self.sensor_count,
                actual=len(senses),
            )
        max_speed = self.settings.max_speed if self.settings.max_speed > 0 else 1.0
        return np.append(np.asarray(senses, dtype=float), speed / max_speed)

    def compute_controls(self, senses: Sequence[float], speed: float = 0.0) -> Controls:
        outputs = self.genome.forward(self.build_inputs(senses, speed))
        if self.settings.output_policy is OutputPolicy.BINARY:
            outputs = np.where(outputs > 0.5, 1.0, 0.0)
        return Controls(**{name: float(value) for name, value in zip(OUTPUT_CHANNELS, outputs)})
