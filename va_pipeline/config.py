"""
Pipeline configuration.

Defaults live in DEFAULT_CONFIG; a YAML file only needs to list the keys it
overrides.
"""

import copy
import logging
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

CHANNELS = [
    "ecg",
    "bvp",
    "gsr",
    "rsp",
    "skt",
    "emg_zygo",
    "emg_coru",
    "emg_trap",
]

TARGETS = ["valence", "arousal"]

GROUP_KEYS = ["subject", "video"]

META_COLS = ["subject", "video", "time", "fold"]

DEFAULT_CONFIG = {
    "input_paths": {
        "train": None,
        "test": None,
        "combined": None,
    },
    "test_folds": [],
    "channels": list(CHANNELS),
    "targets": list(TARGETS),
    "group_by": list(GROUP_KEYS),
    "rating_scale": [0.0, 10.0],
    "output_dir": "./va_output",
    "plots": {
        "enabled": True,
        "max_groups": 4,
    },
    "synthetic": {
        "n_subjects": 6,
        "videos": ["amusing-1", "boring-1", "relaxed-1", "scary-1"],
        "n_samples": 120,
        "noise": 0.5,
        "seed": 42,
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def validate_config(config: dict) -> dict:
    """Check targets, channels and the rating scale; raise ValueError on bad values."""
    unknown = [t for t in config["targets"] if t not in TARGETS]
    if unknown:
        raise ValueError(f"Unknown target(s) {unknown}; expected a subset of {TARGETS}")
    if not config["targets"]:
        raise ValueError("At least one target must be configured")
    if not config["channels"]:
        raise ValueError("Channel list is empty")
    if len(set(config["channels"])) != len(config["channels"]):
        raise ValueError(f"Duplicate channel names in {config['channels']}")
    if len(config["group_by"]) != 2:
        raise ValueError(f"group_by must name a (subject, video) column pair, got {config['group_by']}")

    lo, hi = config["rating_scale"]
    if not hi > lo:
        raise ValueError(f"rating_scale must be increasing, got {config['rating_scale']}")
    return config


def load_config(config_path: Optional[Path] = None) -> dict:
    """Load YAML configuration file merged over DEFAULT_CONFIG."""
    if config_path is None:
        return validate_config(copy.deepcopy(DEFAULT_CONFIG))

    with open(config_path, "r") as f:
        user_config = yaml.safe_load(f) or {}

    if not isinstance(user_config, dict):
        raise ValueError(f"Config {config_path} must be a mapping, got {type(user_config).__name__}")

    config = _deep_merge(DEFAULT_CONFIG, user_config)
    logger.info(f"Loaded config from {config_path}")
    return validate_config(config)
