"""Configuration module: exports Settings and load_config."""

from rightsdesk.config.loader import load_config
from rightsdesk.config.settings import Settings

__all__ = ["Settings", "load_config"]
