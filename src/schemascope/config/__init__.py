"""Configuration: TOML loading and config models.

Usage:
    >>> from schemascope.config import load_config, AppConfig
"""

from schemascope.config.loader import load_config
from schemascope.config.models import AppConfig

__all__ = ["load_config", "AppConfig"]
