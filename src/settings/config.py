"""Configuration loading."""

import os
from pathlib import Path
from typing import Optional

import yaml

from .config_models import RapportConfig

CONFIG_ENV_VAR = "RAPPORT_CONFIG"


def find_config() -> Optional[Path]:
    """First existing config file: $RAPPORT_CONFIG, then ./, ~/.rapport/, ~/rapport/."""
    explicit = os.getenv(CONFIG_ENV_VAR)
    if explicit:
        path = Path(explicit).expanduser()
        if not path.exists():
            raise ValueError(f"{CONFIG_ENV_VAR} points to a missing file: {path}")
        return path

    for loc in (
        Path.cwd() / "config.yaml",
        Path.home() / ".rapport" / "config.yaml",
        Path.home() / "rapport" / "config.yaml",
    ):
        if loc.exists():
            return loc
    return None


def load_config_model(config_path: Optional[Path] = None) -> RapportConfig:
    """Load and validate config; defaults apply when no file is found.

    Raises:
        ValueError: unreadable YAML or values that fail validation.
    """
    data = {}
    path = config_path or find_config()
    if path and path.exists():
        try:
            data = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file {path}: {e}")
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")

    try:
        return RapportConfig.from_dict(data)
    except Exception as e:
        raise ValueError(f"Config validation failed: {e}")
