"""Configuration overrides for runtime tunables.

Precedence: CLI flags, then the configuration file (``--config``,
``$PEARLINK_CONFIG`` or a default location), then the ``Constants`` defaults.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import yaml

from constants import Constants, Platform, _load_yaml_config
from errors import ConfigurationError

logger = logging.getLogger(__name__)

# (section, key) -> (Constants attribute, converter)
_CONFIG_KEYS = {
    ("http", "timeout"): ("REQUEST_TIMEOUT", int),
    ("http", "user_agent"): ("USER_AGENT", str),
    ("ingest", "prefix"): ("PACKAGE_PREFIX", str),
    ("install", "store_root"): ("STORE_ROOT", str),
    ("install", "bin_root"): ("BIN_ROOT", str),
    ("install", "package_type"): ("DEFAULT_PACKAGE_TYPE", str),
    ("install", "platform"): ("PLATFORM", lambda value: Platform(str(value).lower())),
    ("install", "default_interpreter"): ("DEFAULT_INTERPRETER", str),
}


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load the configuration file.

    Raises:
        ConfigurationError: an explicit ``path`` is missing or a file is invalid.
    """
    if path and not os.path.isfile(os.path.expanduser(path)):
        raise ConfigurationError(f"Config file not found: {path}")
    try:
        return _load_yaml_config(path)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Failed to load config: {exc}") from exc


def apply_config(cfg: Dict[str, Any]) -> None:
    """Copy known configuration keys onto ``Constants``."""
    for (section, key), (attribute, convert) in _CONFIG_KEYS.items():
        values = cfg.get(section)
        if not isinstance(values, dict) or values.get(key) is None:
            continue
        try:
            setattr(Constants, attribute, convert(values[key]))
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid value for {section}.{key}: {values[key]!r}") from exc
        logger.debug("Config %s.%s -> Constants.%s", section, key, attribute)


def apply_cli_overrides(args) -> None:
    """Apply CLI flags with highest precedence."""
    if getattr(args, "STORE_ROOT", None):
        Constants.STORE_ROOT = args.STORE_ROOT
    if getattr(args, "BIN_ROOT", None):
        Constants.BIN_ROOT = args.BIN_ROOT
    if getattr(args, "PLATFORM", None):
        Constants.PLATFORM = Platform(args.PLATFORM)
