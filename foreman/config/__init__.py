"""Configuration module for foreman."""

from foreman.config.loader import load_config
from foreman.config.schema import Config

__all__ = ["Config", "load_config"]
