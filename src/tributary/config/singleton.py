"""
Global configuration singleton.

Holds the most recently loaded project config so logging can configure
itself lazily. Graph state never lives here; see LineageContext.
"""

import threading

from tributary.config.loader import Config


class GlobalConfig:
    """Global configuration singleton manager."""

    _instance: Config | None = None
    _lock = threading.Lock()

    @classmethod
    def set_config(cls, config: Config):
        """Set the global config instance."""
        with cls._lock:
            cls._instance = config

    @classmethod
    def get_config(cls) -> Config | None:
        """Get the global config instance."""
        return cls._instance

    @classmethod
    def reset_config(cls):
        """Reset the global config instance (for testing)."""
        with cls._lock:
            cls._instance = None


def get_config() -> Config | None:
    """
    Get the global Config instance.

    Returns:
        Config instance if set, None otherwise
    """
    return GlobalConfig.get_config()
