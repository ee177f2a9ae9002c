import json
import os
from unittest.mock import patch

import numpy as np
import pytest

from evo_racer.engine import EvolutionRecord, EvolutionStore, Genome, HistoryEntry, PersistenceFailure, ScoreEntry
from evo_racer.engine.persistence import decode_record, encode_record


def _record() -> EvolutionRecord:
    rng = np.random.default_rng(5)
    parents = [Genome.create(6, 6, 4, rng=rng), Genome.create(6, 6, 4, rng=rng)]
    return EvolutionRecord(
        generation=2,
        history=[HistoryEntry(1, parents)],
        scores=[ScoreEntry(1, 3, 41.5, (3.0, 7.5))],
    )


def test_store_round_trip(tmp_path):
    store = EvolutionStore(tmp_path, "oval")
    record = _record()
    store.save(record)

    assert store.path.name == "evolution-oval.json"
    loaded = store.load()
    assert loaded.generation == 2
    assert loaded.scores == record.scores
    assert len(loaded.history) == 1
    assert loaded.history[0].generation == 1
    for restored, original in zip(loaded.history[0].genomes, record.history[0].genomes):
        assert np.array_equal(restored.hidden, original.hidden)
        assert np.array_equal(restored.output, original.output)


def test_record_uses_documented_keys():
    data = encode_record(_record())
    assert set(data) == {"generation", "brainHistory", "scores"}
    assert set(data["brainHistory"][0]["brains"][0]["weights"]) == {"hidden", "output"}
    assert data["scores"][0] == {"generation": 1, "agentId": 3, "time": 41.5, "checkpointTimes": [3.0, 7.5]}
    # must be plain JSON
    json.dumps(data)


def test_load_missing_file_returns_none(tmp_path):
    assert EvolutionStore(tmp_path).load() is None


def test_load_corrupt_file_raises(tmp_path):
    store = EvolutionStore(tmp_path)
    store.path.write_text("{not json")
    with pytest.raises(PersistenceFailure):
        store.load()


def test_decode_rejects_missing_generation():
    with pytest.raises(PersistenceFailure):
        decode_record({"brainHistory": [], "scores": []})


def test_decode_rejects_bad_weights():
    data = {"generation": 1, "brainHistory": [{"generation": 1, "brains": [{"weights": {"hidden": [[1.0]]}}]}]}
    with pytest.raises(PersistenceFailure):
        decode_record(data)


@pytest.mark.parametrize("data", [[], None, "evolution", 3])
def test_decode_rejects_non_object_record(data):
    with pytest.raises(PersistenceFailure):
        decode_record(data)


@pytest.mark.parametrize(
    "data",
    [
        {"generation": 1, "brainHistory": {"generation": 1}},
        {"generation": 1, "brainHistory": ["brains"]},
        {"generation": 1, "brainHistory": [{"generation": 1, "brains": [None]}]},
        {"generation": 1, "brainHistory": [{"generation": 1, "brains": [{"weights": []}]}]},
        {"generation": 1, "scores": [7]},
    ],
)
def test_decode_rejects_wrongly_typed_members(data):
    with pytest.raises(PersistenceFailure):
        decode_record(data)


def test_load_json_array_raises(tmp_path):
    store = EvolutionStore(tmp_path)
    store.path.write_text("[]")
    with pytest.raises(PersistenceFailure):
        store.load()


def test_save_into_unwritable_location_raises(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory")
    store = EvolutionStore(blocker / "nested")
    with pytest.raises(PersistenceFailure):
        store.save(_record())


def test_clear_removes_file_and_tolerates_absence(tmp_path):
    store = EvolutionStore(tmp_path)
    store.save(EvolutionRecord())
    assert store.exists()
    store.clear()
    assert not store.exists()
    store.clear()


def test_encode_decode_encode_is_stable():
    first = encode_record(_record())
    second = encode_record(decode_record(json.loads(json.dumps(first))))
    assert second == first


def test_failed_fdopen_closes_descriptor_and_removes_temp_file(tmp_path):
    store = EvolutionStore(tmp_path)
    real_close = os.close
    with patch("evo_racer.engine.persistence.os.fdopen", side_effect=OSError("no file object")), patch(
        "evo_racer.engine.persistence.os.close", side_effect=real_close
    ) as close:
        with pytest.raises(PersistenceFailure):
            store.save(_record())
    close.assert_called_once()
    assert list(tmp_path.glob(".evolution-*.tmp")) == []
    assert not store.exists()
