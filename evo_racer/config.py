import json
import logging
from pathlib import Path

log = logging.getLogger(__name__)

CONFIG_FILE_PATH = Path(__file__).resolve().parents[1] / "configs" / "evolution.json"


def load_config(path=CONFIG_FILE_PATH):
    """
    Loads the evolution balance config file.
    """
    try:
        with open(path, "r") as f:
            config = json.load(f)
        return config
    except FileNotFoundError:
        log.error("[config] Could not find config file at %s", path)
        return None
    except Exception as e:
        log.error("[config] Could not parse config file %s: %s", path, e)
        return None


# Load the config ONCE when the module is first imported
EVOLUTION_CONFIG = load_config()


def get_config(key_path, default=None):
    """
    Safely gets a value from the loaded config using a 'dot.path'.
    Example: get_config('mutation.rate')
    """
    if not EVOLUTION_CONFIG:
        return default

    try:
        keys = key_path.split(".")
        value = EVOLUTION_CONFIG
        for key in keys:
            value = value[key]
        return value
    except (KeyError, TypeError):
        log.warning("[config] Could not find config key: %s", key_path)
        return default


def config_section(name):
    """Returns a top-level section as a dict, or an empty dict when absent."""
    section = get_config(name, {})
    if not isinstance(section, dict):
        return {}
    return section
