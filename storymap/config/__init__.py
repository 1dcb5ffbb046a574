"""Configuration module — exports Settings and load_config."""

from storymap.config.loader import load_config
from storymap.config.settings import Settings

__all__ = ["Settings", "load_config"]
