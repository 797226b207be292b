"""YAML configuration loader with environment variable overrides.

Configuration is layered (later layers override earlier):

  1. ``config/config.yaml``  -- static defaults checked into the repo
  2. ``.env`` file            -- local developer overrides
  3. Environment variables    -- set by the deployment

:func:`load_config` reads the YAML file first and deep-merges the
environment-based :class:`Settings` values on top.
"""

from __future__ import annotations

from pathlib import Path

import yaml

from libdocs.config.settings import Settings


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.  A missing file yields
            the environment values alone.
        settings: Pre-built settings; constructed from the environment when
            omitted.

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
            "env": settings.app_env,
        },
        "storage": {
            "database_path": settings.database_path,
        },
        "github": {
            "api_base_url": settings.github_api_base_url,
            "raw_base_url": settings.github_raw_base_url,
            "archive_base_url": settings.github_archive_base_url,
            "token_configured": bool(settings.github_token),
        },
        "chunking": {
            "max_chars": settings.chunk_max_chars,
            "overlap_chars": settings.chunk_overlap_chars,
        },
        "embedding": {
            "provider": settings.embedding_provider,
        },
        "vector_index": {
            "backend": settings.vector_backend,
        },
        "scheduler": {
            "enabled": settings.sync_scheduler_enabled,
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
