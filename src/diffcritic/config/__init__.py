"""Configuration management."""

from diffcritic.config.loader import load_config
from diffcritic.config.settings import Settings

__all__ = ["Settings", "load_config"]
