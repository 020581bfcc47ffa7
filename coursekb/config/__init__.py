"""Configuration module: exports Settings and load_config."""

from coursekb.config.loader import load_config
from coursekb.config.settings import Settings

__all__ = ["Settings", "load_config"]
