"""Configuration module: exports Settings and load_config."""

from examly.config.loader import load_config
from examly.config.settings import Settings

__all__ = ["Settings", "load_config"]
