from evo_racer.engine import CheckpointPolicy
from evo_racer.engine.checkpoints import CheckpointState


def test_any_order_accepts_each_index_once():
    state = CheckpointState(3, CheckpointPolicy.ANY_ORDER)
    assert state.register(2, 1.0)
    assert state.register(0, 2.0)
    assert not state.register(2, 3.0)
    assert state.hit_count == 2
    assert state.time_for(2) == 1.0
    assert state.next_expected == 1


def test_strict_rejects_out_of_order_contacts():
    state = CheckpointState(3, CheckpointPolicy.STRICT)
    assert not state.register(1, 1.0)
    assert state.register(0, 1.5)
    assert state.register(1, 2.0)
    assert state.hit_count == 2
    assert state.next_expected == 2


def test_unknown_index_is_ignored():
    state = CheckpointState(2)
    assert not state.register(5, 1.0)
    assert not state.register(-1, 1.0)
    assert state.hit_count == 0


def test_checkpoint_times_follow_index_order():
    state = CheckpointState(3)
    state.register(2, 3.0)
    state.register(0, 5.0)
    assert state.checkpoint_times == [5.0, 3.0]


def test_all_hit_with_no_checkpoints():
    assert CheckpointState(0).all_hit


def test_next_target_any_order_picks_nearest_unhit():
    state = CheckpointState(3)
    positions = [(0.0, 0.0), (10.0, 0.0), (20.0, 0.0)]
    state.register(1, 1.0)
    assert state.next_target((12.0, 0.0), positions) == 2
    assert state.next_target((4.0, 0.0), positions) == 0


def test_next_target_strict_is_next_expected():
    state = CheckpointState(3, CheckpointPolicy.STRICT)
    positions = [(0.0, 0.0), (10.0, 0.0), (20.0, 0.0)]
    state.register(0, 1.0)
    assert state.next_target((19.0, 0.0), positions) == 1


def test_reset_clears_progress():
    state = CheckpointState(2)
    state.register(0, 1.0)
    state.reset()
    assert state.hit_count == 0
    assert state.time_for(0) is None
    assert state.next_expected == 0
