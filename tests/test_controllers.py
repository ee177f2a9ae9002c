import numpy as np
import pytest

from evo_racer.engine import (
    Controls,
    DriveCommand,
    Genome,
    HumanController,
    NeuralController,
    OutputPolicy,
    ShapeMismatch,
)
from evo_racer.engine.data_models import ControllerSettings


def _zero_genome(inputs: int = 6) -> Genome:
    return Genome(np.zeros((inputs, 6)), np.zeros((6, 4)))


def test_human_controller_maps_held_keys():
    controller = HumanController()
    controller.press("up")
    controller.press(37)  # left arrow
    controls = controller.compute_controls(())
    assert controls == Controls(left=1.0, right=0.0, up=1.0, down=0.0)

    controller.release("up")
    assert controller.compute_controls(()).up == 0.0


def test_human_controller_ignores_unknown_keys():
    controller = HumanController()
    controller.press("jump")
    controller.press(65)
    assert controller.compute_controls(()) == Controls.zero()


def test_neural_controller_analog_outputs():
    controller = NeuralController(_zero_genome(), ControllerSettings(output_policy=OutputPolicy.ANALOG))
    controls = controller.compute_controls([1.0] * 5, speed=3.0)
    assert controls == Controls(left=0.5, right=0.5, up=0.5, down=0.5)


def test_neural_controller_binary_threshold_is_strict():
    controller = NeuralController(_zero_genome(), ControllerSettings(output_policy=OutputPolicy.BINARY))
    assert controller.compute_controls([1.0] * 5) == Controls.zero()


def test_neural_controller_output_order():
    output = np.zeros((6, 4))
    output[:, 0] = 10.0  # up
    output[:, 3] = 10.0  # right
    genome = Genome(np.ones((6, 6)), output)
    controller = NeuralController(genome, ControllerSettings(output_policy=OutputPolicy.BINARY))
    controls = controller.compute_controls([1.0] * 5)
    assert controls.up == 1.0
    assert controls.right == 1.0
    assert controls.left == 0.0
    assert controls.down == 0.0


def test_neural_controller_appends_normalised_speed():
    controller = NeuralController(_zero_genome(), ControllerSettings(max_speed=10.0))
    inputs = controller.build_inputs([0.2, 0.4, 0.6, 0.8, 1.0], speed=5.0)
    assert inputs.tolist() == [0.2, 0.4, 0.6, 0.8, 1.0, 0.5]


def test_neural_controller_rejects_wrong_sensor_count():
    controller = NeuralController(_zero_genome())
    with pytest.raises(ShapeMismatch):
        controller.compute_controls([1.0, 1.0])


def test_neural_controller_needs_four_outputs():
    with pytest.raises(ShapeMismatch):
        NeuralController(Genome(np.zeros((6, 6)), np.zeros((6, 3))))


def test_drive_command_steer_is_right_minus_left():
    command = DriveCommand.from_controls(Controls(left=0.25, right=1.0, up=0.5, down=0.0))
    assert command.steer == pytest.approx(0.75)
    assert command.throttle == 0.5


def test_controls_are_clamped():
    controls = Controls(left=-1.0, right=2.0)
    assert controls.left == 0.0
    assert controls.right == 1.0
