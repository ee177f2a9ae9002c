import math

import pytest

from evo_racer.engine import Pose, SensorArray
from evo_racer.engine.data_models import SensorSettings


class _RecordingCaster:
    def __init__(self, fractions):
        self.fractions = list(fractions)
        self.angles = []

    def cast_ray(self, origin, angle, max_length, layer_mask=None):
        self.angles.append(angle)
        return self.fractions[len(self.angles) - 1]


def test_sensor_rays_fan_out_in_fixed_order():
    sensors = SensorArray(SensorSettings(ray_count=5, ray_length=20.0, spread_degrees=120.0, deviation_degrees=-60.0))
    caster = _RecordingCaster([0.1, 0.2, 0.3, 0.4, 0.5])

    readings = sensors.sense(Pose(0.0, 0.0, 0.0), caster)
    assert readings == (0.1, 0.2, 0.3, 0.4, 0.5)
    expected = [math.radians(d) for d in (-60, -30, 0, 30, 60)]
    assert caster.angles == pytest.approx(expected)


def test_sensor_readings_are_clamped():
    sensors = SensorArray(SensorSettings(ray_count=3))

    readings = sensors.sense(Pose(0.0, 0.0, 0.0), _RecordingCaster([1.5, -0.2, float("nan")]))
    assert readings == (1.0, 0.0, 1.0)


def test_single_ray_points_along_deviation():
    sensors = SensorArray(SensorSettings(ray_count=1, deviation_degrees=0.0))
    assert sensors.ray_offsets == (0.0,)
