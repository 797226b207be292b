"""Configuration: environment settings and the layered YAML loader."""

from libdocs.config.loader import load_config
from libdocs.config.settings import Settings

__all__ = ["Settings", "load_config"]
