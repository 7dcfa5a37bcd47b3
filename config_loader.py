"""Configuration loading: TOML parsing, deep merging, and validation."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = '/etc/tivotomqtt'


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dicts. override values take precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_toml(path: str | Path) -> dict[str, Any]:
    """Load a single TOML file and return its contents as a dict."""
    with open(path, 'rb') as f:
        return tomllib.load(f)


def _load_config_dir(config: dict[str, Any], config_d: Path) -> dict[str, Any]:
    """Load all *.toml files from a config.d directory as overlays."""
    if not config_d.is_dir():
        return config
    for override_file in sorted(config_d.glob('*.toml')):
        logger.info(f"Loading config override: {override_file}")
        config = deep_merge(config, _load_toml(override_file))
    return config


def load_config(config_paths: list[str] | None = None, config_dir: str = DEFAULT_CONFIG_DIR) -> dict[str, Any]:
    """Load and merge TOML configuration.

    When no --config paths are provided (default):
      1. Load base config from /etc/tivotomqtt/config.toml
      2. Overlay files from /etc/tivotomqtt/config.d/*.toml (alphabetical)

    When --config paths are provided:
      Load only those files in order, each overlaying the previous.
      Default search paths and config.d directories are skipped.
    """
    if config_paths:
        config: dict = {}
        for path in config_paths:
            if not os.path.exists(path):
                logger.error(f"Config file not found: {path}")
                continue
            logger.info(f"Loading config: {path}")
            config = deep_merge(config, _load_toml(path))
        return config

    # Default: load system config
    config = {}
    base_path = os.path.join(config_dir, 'config.toml')
    if os.path.exists(base_path):
        config = _load_toml(base_path)
        logger.info(f"Loaded base config from {base_path}")
    else:
        logger.warning(f"Base config not found at {base_path}, using defaults")

    # Load drop-in overrides
    config = _load_config_dir(config, Path(config_dir) / 'config.d')

    return config


def validate_config(config: dict[str, Any]) -> list[str]:
    """Return a list of problems that prevent the bridge from starting."""
    errors: list[str] = []
    tivo = config.get('tivo', {})
    mqtt = config.get('mqtt', {})

    if not tivo.get('name'):
        errors.append("tivo.name is required")
    if not tivo.get('host') and not tivo.get('url'):
        errors.append("tivo.host or tivo.url is required")
    if not mqtt.get('server'):
        errors.append("mqtt.server is required")

    port = tivo.get('port', 31339)
    if not isinstance(port, int) or not 0 < port < 65536:
        errors.append(f"tivo.port must be a TCP port number, got {port!r}")

    return errors


def log_config_sources(config: dict[str, Any]) -> None:
    """Log configuration summary."""
    tivo = config.get('tivo', {})
    mqtt = config.get('mqtt', {})

    logger.info(f"TiVo: {tivo.get('name', 'unknown')}")
    if tivo.get('url'):
        logger.info(f"TiVo address: {tivo['url']}")
    else:
        logger.info(f"TiVo address: {tivo.get('host', 'unknown')}:{tivo.get('port', 31339)}")

    tls_enabled = mqtt.get('tls', {}).get('enabled', False)
    logger.info(f"Broker: {mqtt.get('server', 'unknown')}:{mqtt.get('port', 1883)} (tls={tls_enabled})")
