"""
ccontact_sync.config - Configuration management module

Contains configuration loading, validation, and runtime settings.
"""

from ccontact_sync.config.loader import ConfigError, ConfigLoader
from ccontact_sync.config.settings import Settings

__all__ = [
    "ConfigError",
    "ConfigLoader",
    "Settings",
]
