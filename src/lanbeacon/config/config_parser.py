"""YAML configuration loading for the lanbeacon CLI.

Brief:
  Reads a YAML file, validates it into ``AppConfig`` and reports every
  problem as a ``ConfigurationError``.

Inputs:
  - Path to a YAML config file (optional).

Outputs:
  - ``AppConfig`` instance.

Example config:

    logging:
      level: debug
    bonjour:
      domain: local
      jitter: false
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import yaml

from ..errors import ConfigurationError
from .config_schema import AppConfig, coerce_options

logger = logging.getLogger(__name__)


def read_yaml(path: str) -> Dict[str, Any]:
    """Brief: Read a YAML mapping from ``path``.

    Inputs:
      - path: File path (``~`` expanded).

    Outputs:
      - dict: Parsed mapping (an empty file yields ``{}``).

    Raises:
      - ConfigurationError when the file cannot be read, is not valid YAML,
        or its top level is not a mapping.
    """

    full = os.path.expanduser(path)
    try:
        with open(full, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigurationError(f"cannot read config {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"invalid YAML in {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"config {path} must contain a mapping at top level")
    return data


def load_config(path: Optional[str] = None) -> AppConfig:
    """Brief: Load and validate the CLI configuration.

    Inputs:
      - path: Optional YAML path. None returns the defaults.

    Outputs:
      - AppConfig instance.
    """

    if not path:
        return AppConfig()
    cfg = read_yaml(path)
    logger.debug("Loaded config from %s", path)
    return coerce_options(AppConfig, cfg)
