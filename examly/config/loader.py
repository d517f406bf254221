"""YAML configuration loader with environment variable overrides.

Configuration is layered (later layers override earlier):

  1. config/config.yaml  : static defaults checked into the repo
  2. .env file           : local developer overrides (not committed)
  3. environment vars    : set at deploy time

``load_config`` reads the YAML file and deep-merges the Settings-derived
values on top, so ``{"llm": {"temperature": 0.3}}`` from YAML survives
alongside ``{"llm": {"available_providers": [...]}}`` from Settings.
"""

from pathlib import Path

import yaml

from examly.config.settings import Settings


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.
        settings: Pre-built settings; a fresh ``Settings()`` is read when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "llm": {
            "available_providers": settings.get_available_llm_providers(),
            "max_tokens": settings.llm_max_tokens,
        },
        "ingestion": {
            "timeout_seconds": settings.ingestion_timeout_seconds,
            "max_parallel_chapters": settings.max_parallel_chapters,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
