"""Runtime configuration for restorekit.

Tunables live on ``Constants``. Sources apply in increasing precedence:
built-in defaults, config file, environment, CLI. Invalid values are
logged and skipped so a bad setting never breaks the CLI.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import yaml

from constants import Constants

logger = logging.getLogger(__name__)

# config key -> (Constants attribute, converter)
_SETTINGS: Dict[str, Tuple[str, Callable[[Any], Any]]] = {
    "source": ("DEFAULT_SOURCE", str),
    "packages": ("PACKAGES_DIR", os.path.expanduser),
    "lock_dir": ("LOCK_DIR", os.path.expanduser),
    "lock_timeout": ("LOCK_TIMEOUT_SEC", float),
    "request_timeout": ("REQUEST_TIMEOUT", int),
    "feed_cache_ttl": ("FEED_CACHE_TTL_SEC", int),
}

_ENV_SETTINGS: Dict[str, str] = {
    Constants.ENV_SOURCE: "source",
    Constants.ENV_PACKAGES: "packages",
    Constants.ENV_LOCK_TIMEOUT: "lock_timeout",
    Constants.ENV_LOCK_DIR: "lock_dir",
}


def _set(key: str, value: Any, origin: str) -> bool:
    attribute, converter = _SETTINGS[key]
    try:
        converted = converter(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid %s value for %s: %r", origin, key, value)
        return False
    setattr(Constants, attribute, converted)
    logger.debug("Set %s from %s", attribute, origin)
    return True


def load_config_file(path: str) -> Dict[str, Any]:
    """Load a YAML or JSON config file into a mapping.

    A top-level ``restorekit`` section is used when present. A missing
    or unreadable file yields an empty mapping.
    """
    if not os.path.isfile(path):
        logger.warning("Config file not found: %s", path)
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.lower().endswith(".json"):
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.warning("Unable to read config file %s: %s", path, e)
        return {}

    if not isinstance(data, dict):
        return {}
    section = data.get("restorekit")
    if isinstance(section, dict):
        return section
    return data


def apply_config(config: Mapping[str, Any]) -> None:
    """Apply a config file mapping; unknown keys are reported and skipped."""
    for key, value in config.items():
        normalized = str(key).replace("-", "_").lower()
        if normalized not in _SETTINGS:
            logger.warning("Unknown config key: %s", key)
            continue
        if value is None:
            continue
        _set(normalized, value, "config")


def apply_env_overrides(environ: Optional[Mapping[str, str]] = None) -> None:
    """Apply ``RESTOREKIT_*`` environment overrides."""
    env = os.environ if environ is None else environ
    for name, key in _ENV_SETTINGS.items():
        value = env.get(name)
        if value is not None and value.strip():
            _set(key, value.strip(), f"environment ({name})")


def apply_cli_overrides(args) -> None:
    """Apply CLI overrides (highest precedence)."""
    if getattr(args, "SOURCE", None):
        _set("source", args.SOURCE, "CLI")
    if getattr(args, "PACKAGES", None):
        _set("packages", args.PACKAGES, "CLI")
    if getattr(args, "LOCK_TIMEOUT", None) is not None:
        _set("lock_timeout", args.LOCK_TIMEOUT, "CLI")


def configure(args, environ: Optional[Mapping[str, str]] = None) -> None:
    """Apply every configuration layer in precedence order."""
    config_path = getattr(args, "CONFIG", None)
    if config_path:
        apply_config(load_config_file(config_path))
    apply_env_overrides(environ)
    apply_cli_overrides(args)
