"""
Configuration management.

Configuration file parsing, environment resolution and the global config holder.
"""

from tributary.config.loader import Config, load_config
from tributary.config.resolver import resolve_config
from tributary.config.singleton import GlobalConfig, get_config

__all__ = [
    "load_config",
    "Config",
    "resolve_config",
    "GlobalConfig",
    "get_config",
]
