from __future__ import annotations

import math
from typing import List, Optional, Tuple

from .data_models import Layer, Pose, SensorSettings
from .physics import RayCaster

SensorReading = Tuple[float, ...]


class SensorArray:
    """Casts a fan of rays from an agent's pose and reports normalised hit distances.

    Ray ``i`` points at ``heading + deviation + i * step`` where ``step`` spreads
    the rays evenly over the configured arc. The order never changes between
    ticks, so reading index ``i`` always feeds the same genome input.
    """

    def __init__(self, settings: Optional[SensorSettings] = None) -> None:
        self.settings = settings or SensorSettings.from_config()
        self._offsets = self._build_offsets(self.settings)

    @property
    def ray_count(self) -> int:
        return self.settings.ray_count

    @property
    def ray_offsets(self) -> Tuple[float, ...]:
        return self._offsets

    def sense(self, pose: Pose, caster: RayCaster) -> SensorReading:
        origin = pose.position
        readings: List[float] = []
        for offset in self._offsets:
            fraction = caster.cast_ray(origin, pose.angle + offset, self.settings.ray_length, Layer.WALL)
            readings.append(_clamp_fraction(fraction))
        return tuple(readings)

    @staticmethod
    def _build_offsets(settings: SensorSettings) -> Tuple[float, ...]:
        spread = math.radians(settings.spread_degrees)
        deviation = math.radians(settings.deviation_degrees)
        if settings.ray_count == 1:
            return (deviation,)
        step = spread / (settings.ray_count - 1)
        return tuple(deviation + idx * step for idx in range(settings.ray_count))


def _clamp_fraction(value: float) -> float:
    value = float(value)
    if math.isnan(value):
        return 1.0
    return max(0.0, min(1.0, value))
