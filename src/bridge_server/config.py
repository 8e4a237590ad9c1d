"""Configuration loading utilities for the bridge server.

This module handles layered configuration:
1. Explicit path argument (highest precedence)
2. Environment variable BRIDGE_SERVER_CONFIG
3. Fallback to "config/default.yaml"

Values missing from the file are filled from :data:`DEFAULTS`. Environment
variables with prefix ``BRIDGE_SERVER__`` override anything loaded
(e.g., BRIDGE_SERVER__AUTH__TOKEN=s3cret).
"""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)

ENV_PATH = "BRIDGE_SERVER_CONFIG"
ENV_PREFIX = "BRIDGE_SERVER__"
DEFAULT_PATH = "config/default.yaml"

DEFAULTS: Dict[str, Any] = {
    "server": {"cors_origins": ["*"]},
    "relay": {"sender": "GPT", "recipient": "Claude"},
    "auth": {"enabled": False, "token": None},
    "logging": {"level": "INFO"},
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _merge(out[key], value)
        else:
            out[key] = value
    return out


def _parse_env_value(raw: str) -> Any:
    """Read an override value as a YAML scalar or flow collection.

    ``true`` becomes a bool, ``8`` an int and ``[a, b]`` a list. Text that
    is not valid YAML, or that parses to nothing, stays a plain string.
    """
    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw
    return raw if parsed is None else parsed


def _apply_env_overrides(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay ``BRIDGE_SERVER__SECTION__KEY`` variables onto ``cfg``."""
    overrides = sorted(
        (key[len(ENV_PREFIX):].lower().split("__"), value)
        for key, value in os.environ.items()
        if key.startswith(ENV_PREFIX)
    )
    for parts, value in overrides:
        *sections, leaf = parts
        target = cfg
        for section in sections:
            if not isinstance(target.get(section), dict):
                target[section] = {}
            target = target[section]
        target[leaf] = _parse_env_value(value)
        logger.debug("config override %s applied from environment", ".".join(parts))
    return cfg


def load_config(path: str | None = None) -> Dict[str, Any]:
    """Load YAML configuration for the bridge server.

    Parameters
    ----------
    path : str | None
        Optional path to a configuration file. If not provided, the
        environment variable ``BRIDGE_SERVER_CONFIG`` is consulted. As a
        last resort ``config/default.yaml`` is used.

    Returns
    -------
    Dict[str, Any]
        Configuration merged over :data:`DEFAULTS` with environment
        overrides applied.
    """
    if path is None:
        path = os.environ.get(ENV_PATH, DEFAULT_PATH)

    path_obj = Path(path)
    if not path_obj.exists():
        logger.warning("config file not found at %s, using defaults", path_obj)
        return _apply_env_overrides(copy.deepcopy(DEFAULTS))

    with path_obj.open("r", encoding="utf-8") as f:
        try:
            loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise RuntimeError(f"Failed to parse config file {path_obj}: {e}")

    if not isinstance(loaded, dict):
        raise RuntimeError(f"Invalid config format in {path_obj}, expected dict.")

    return _apply_env_overrides(_merge(DEFAULTS, loaded))
