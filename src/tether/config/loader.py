"""
Provider configuration file loading.

A provider config file is a YAML mapping of configuration keys to values.
Nested mappings are flattened with ``:`` separators so that ``aws: {region: x}``
becomes ``aws:region``, and all values are passed to Configure as strings.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog
import yaml

from tether.core.errors import ConfigurationError

logger = structlog.get_logger()


def load_provider_variables(path: str | Path) -> dict[str, str]:
    """Load Configure variables from a YAML file."""
    config_path = Path(path).expanduser()
    if not config_path.exists():
        raise ConfigurationError(
            f"Provider config file not found: {config_path}", {"path": str(config_path)}
        )

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Provider config file is not valid YAML: {e}", {"path": str(config_path)}
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            "Provider config file must contain a mapping", {"path": str(config_path)}
        )

    variables = flatten_variables(data)
    logger.debug("provider_config_loaded", path=str(config_path), keys=sorted(variables))
    return variables


def flatten_variables(data: dict[str, Any], prefix: str = "") -> dict[str, str]:
    variables: dict[str, str] = {}
    for key, value in data.items():
        name = f"{prefix}:{key}" if prefix else str(key)
        if isinstance(value, dict):
            variables.update(flatten_variables(value, name))
        elif value is None:
            continue
        else:
            variables[name] = _stringify(value)
    return variables


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    # Lists and other structured values travel as JSON text
    return json.dumps(value, sort_keys=True)
