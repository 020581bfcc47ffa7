"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

  1. ``config/config.yaml`` -- static defaults checked into the repo
     (service name and description published in the capability manifest)
  2. ``.env`` file          -- local developer overrides (not committed)
  3. Environment vars       -- set at deploy time

``load_config`` reads the YAML file first, then deep-merges the
environment-based :class:`Settings` values on top.
"""

from pathlib import Path

import yaml

from coursekb.config.settings import Settings


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Environment variables (via Settings) override YAML values where keys overlap.

    Args:
        path: Path to the YAML configuration file.
        settings: Already-loaded settings; a fresh :class:`Settings` is read
            from the environment when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
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
        "embedding": {
            "provider": settings.embedding_provider,
            "model": settings.openai_embedding_model,
            "configured": settings.is_embedding_configured(),
        },
        "vector_store": {
            "collection": settings.chromadb_collection,
            "remote": bool(settings.chromadb_host),
        },
        "search": {
            "default_top_k": settings.search_default_top_k,
            "default_threshold": settings.search_default_threshold,
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
