"""Configuration module: exports Settings and the layered YAML loader."""

from aws_image.config.loader import load_config
from aws_image.config.settings import Settings

__all__ = ["Settings", "load_config"]
