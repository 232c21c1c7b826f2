"""YAML configuration loader with environment variable overrides.

Configuration is layered (later layers win):

  1. ``config/config.yaml`` -- static defaults, grouped in sections
  2. ``.env`` file          -- local developer overrides
  3. Environment variables  -- set at deploy time

The YAML file groups settings by concern::

    presign:
      backend: graphql
      base_url: https://api.example.com/graphql
      graphql_query: "mutation GetUrl($input: UrlInput!) { getUrl(input: $input) { url } }"
    cache:
      duration_seconds: 259200
    fetch:
      max_retries: 3
      retry_delay_seconds: 1.0
    stream_cache:
      size: 100
    logging:
      level: DEBUG

Each ``section.key`` is flattened to the matching :class:`Settings` field
(``presign.base_url`` -> ``presign_base_url``).  Top-level scalar keys are
taken as field names verbatim.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from aws_image.config.settings import Settings
from aws_image.utils.logging import get_logger

_SECTION_PREFIXES: dict[str, str] = {
    "presign": "presign_",
    "cache": "cache_",
    "fetch": "",
    "descriptor": "",
    "stream_cache": "stream_cache_",
    "app": "app_",
    "logging": "log_",
}

_logger = get_logger(__name__)


def load_config(path: str | Path = "config/config.yaml") -> Settings:
    """Load YAML config and layer environment-based Settings on top.

    Args:
        path: Path to the YAML configuration file.  A missing file is
              treated as empty.

    Returns:
        Fully resolved :class:`Settings`.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    values = _flatten_sections(yaml_config)

    # Only fields that actually came from the environment / .env override YAML.
    env_settings = Settings()
    env_overrides = {
        name: getattr(env_settings, name) for name in env_settings.model_fields_set
    }
    values.update(env_overrides)
    return Settings(**values)


def _flatten_sections(config: dict[str, Any]) -> dict[str, Any]:
    """Flatten ``{section: {key: value}}`` into Settings field names."""
    known = set(Settings.model_fields)
    flat: dict[str, Any] = {}
    for section, body in config.items():
        if isinstance(body, dict) and section in _SECTION_PREFIXES:
            prefix = _SECTION_PREFIXES[section]
            for key, value in body.items():
                flat[f"{prefix}{key}"] = value
        else:
            flat[section] = body

    unknown = sorted(name for name in flat if name not in known)
    if unknown:
        _logger.warning("config_unknown_keys", keys=unknown)
    return {name: value for name, value in flat.items() if name in known}
