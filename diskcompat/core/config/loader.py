"""
Configuration loader — builds the NasTarget for a run.

Settings come from two places, later wins:

    1. ``diskcompat.yml`` (found by walking up from the working directory,
       or given explicitly with --config)
    2. CLI arguments and options

The YAML file is optional. It may hold the settings flat or under a
``nas:`` key:

    nas:
      connect_timeout: 15
      elevation: noninteractive
      remote_db_dir: /var/lib/disk-compatibility
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from diskcompat.core.models.target import NasTarget

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "diskcompat.yml"

# Keys a config file may set; user and host usually come from the CLI
_KNOWN_KEYS = set(NasTarget.model_fields)


class ConfigError(Exception):
    """Raised when configuration is invalid or missing."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for diskcompat.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to diskcompat.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_settings(path: Path) -> dict[str, Any]:
    """Read a config file into a plain settings dict.

    Raises:
        ConfigError: If the file is unreadable, not YAML, or has unknown keys.
    """
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    settings = data["nas"] if "nas" in data else data
    if not isinstance(settings, dict):
        raise ConfigError(f"Expected 'nas' to be a mapping in {path}")

    unknown = sorted(set(settings) - _KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"Unknown setting(s) in {path}: {', '.join(unknown)}")

    return dict(settings)


def build_target(
    config_path: Path | None = None,
    search: bool = True,
    **overrides: Any,
) -> NasTarget:
    """Merge file settings with CLI overrides into a validated NasTarget.

    Args:
        config_path: Explicit config file. If None and ``search`` is set,
            diskcompat.yml is looked up from the working directory.
        search: Whether to look for a config file at all.
        **overrides: Values from the CLI; None means "not given".

    Raises:
        ConfigError: If the file or the merged values are invalid.
    """
    if config_path is None and search:
        config_path = find_config_file()

    settings: dict[str, Any] = load_settings(config_path) if config_path else {}
    settings.update({k: v for k, v in overrides.items() if v is not None})

    try:
        target = NasTarget.model_validate(settings)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e

    logger.debug("Target %s (elevation=%s, timeout=%ss)", target.destination, target.elevation, target.connect_timeout)
    return target
