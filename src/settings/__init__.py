"""Configuration and logging setup."""

from .config import find_config, load_config_model
from .config_models import RapportConfig
from .logging_config import configure_from, setup_logging

__all__ = ["RapportConfig", "configure_from", "find_config", "load_config_model", "setup_logging"]
