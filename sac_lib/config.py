"""Configuration management with inheritance support."""

import copy
from pathlib import Path
from typing import Any, Dict

import yaml

DEFAULT_CONFIG: Dict[str, Any] = {
    "env": {
        "name": "repeat-observation",
        "num_agents": 8,
        "max_episode_steps": 0,
    },
    "network": {
        "hidden_dim": 16,
        "hidden_layers": 3,
    },
    "training": {
        "total_steps": 8192,
        "random_steps": 128,
        "update_after": 128,
        "update_every": 1024,
        "train_batches": 128,
        "batch_size": 128,
        "buffer_size": 65536,
        "deterministic_every": 28,
        "q_lr": 0.001,
        "pi_lr": 0.001,
        "seed": 112,
    },
    "sac": {
        "gamma": 0.99,
        "tau": 0.995,
        "alpha": 0.2,
    },
    "logging": {
        "log_dir": "logs",
        "tensorboard": True,
    },
}


def load_config(config_path: str) -> Dict[str, Any]:
    """Load configuration from YAML file with inheritance support.

    If the config contains `extends: <path>`, the base config is loaded first
    and then merged with the current config (current config takes precedence).
    The result is always merged on top of DEFAULT_CONFIG.

    Args:
        config_path: Path to YAML config file (relative to project root or absolute)

    Returns:
        Merged configuration dictionary
    """
    return merge_configs(DEFAULT_CONFIG, _load_yaml(config_path))


def _load_yaml(config_path) -> Dict[str, Any]:
    config_path = Path(config_path)
    if not config_path.is_absolute() and not config_path.exists():
        # Assume it's relative to the project's configs directory
        project_root = Path(__file__).parent.parent
        config_path = project_root / "configs" / config_path

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    # Handle inheritance (relative to the extending file)
    if "extends" in config:
        base_path = str(config.pop("extends"))
        if not base_path.endswith(".yaml") and not base_path.endswith(".yml"):
            base_path = base_path + ".yaml"
        if not Path(base_path).is_absolute():
            base_path = config_path.parent / base_path
        config = merge_configs(_load_yaml(base_path), config)

    return config


def merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two config dictionaries.

    Args:
        base: Base configuration
        override: Override configuration (takes precedence)

    Returns:
        Merged configuration dictionary (inputs are not modified)
    """
    result = copy.deepcopy(base)

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = copy.deepcopy(value)

    return result


def save_config(config: Dict[str, Any], path) -> None:
    """Save configuration to YAML file.

    Args:
        config: Configuration dictionary
        path: Output file path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config, f, sort_keys=False, allow_unicode=False)
