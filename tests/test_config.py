import json
import logging
from unittest.mock import patch

import pytest

from evo_racer import config
from evo_racer.engine import CheckpointPolicy, MutationPolicy, OutputPolicy
from evo_racer.engine.data_models import AgentSettings, EvolutionSettings, MutationSettings, SensorSettings


def test_bundled_config_matches_defaults():
    assert config.get_config("evolution.population_size") == 10
    assert config.get_config("mutation.policy") == "probabilistic"
    assert SensorSettings.from_config() == SensorSettings()
    assert EvolutionSettings.from_config().dt == pytest.approx(1 / 60)


def test_missing_key_returns_default_and_warns(caplog):
    with caplog.at_level(logging.WARNING, logger="evo_racer.config"):
        assert config.get_config("sensors.nope", 42) == 42
    assert "sensors.nope" in caplog.text


def test_settings_overlay_converts_policy_names():
    overrides = {
        "agent": {"checkpoint_policy": "STRICT", "eliminate_on_wall": False},
        "mutation": {"policy": "always", "rate": 0.3},
    }
    with patch.object(config, "EVOLUTION_CONFIG", overrides):
        agent = AgentSettings.from_config()
        mutation = MutationSettings.from_config()
    assert agent.checkpoint_policy is CheckpointPolicy.STRICT
    assert agent.eliminate_on_wall is False
    assert agent.collision_damping == 0.5
    assert mutation.policy is MutationPolicy.ALWAYS
    assert mutation.rate == 0.3


def test_unknown_policy_name_is_rejected():
    with pytest.raises(ValueError):
        OutputPolicy.from_str("fuzzy")
    with pytest.raises(ValueError):
        MutationSettings(rate=1.5)


def test_missing_config_file_yields_none(tmp_path, caplog):
    with caplog.at_level(logging.ERROR, logger="evo_racer.config"):
        assert config.load_config(tmp_path / "absent.json") is None
    assert "Could not find config file" in caplog.text


def test_load_config_reads_file(tmp_path):
    path = tmp_path / "evolution.json"
    path.write_text(json.dumps({"genome": {"hidden_size": 8}}))
    assert config.load_config(path) == {"genome": {"hidden_size": 8}}
