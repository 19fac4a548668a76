r"""
Config Loader — Load the optional YAML settings file.

## Example

    log_root: D:\Logs\SiteMirror
    retention_days: 45
    combine: or
    severity_rules:
      - {max_code: 1, band: Success}
      - {max_code: 7, band: Warning}
    responders:
      Error: [infra-oncall]
    paths:
      destination_share: 'E:\Mirror\{code}\Share'
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

import yaml

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load a YAML file and return its contents."""
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_config_file(path: Path) -> Dict[str, Any]:
    """
    Load settings overrides from a YAML file.

    Raises:
        ConfigurationError: If the file is missing, unparsable, or not a mapping
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        data = load_yaml(path)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")

    logger.debug(f"Loaded config file {path}: keys={sorted(data)}")
    return data
