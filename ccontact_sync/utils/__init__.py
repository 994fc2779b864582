"""
ccontact_sync.utils - Utility module

Configuration path resolution and logging configuration.
"""

from ccontact_sync.utils.paths import (
    DEFAULT_CONFIG_DIR,
    DEFAULT_CONFIG_FILE,
    resolve_config_dir,
    resolve_config_file,
)

__all__ = [
    "DEFAULT_CONFIG_DIR",
    "DEFAULT_CONFIG_FILE",
    "resolve_config_dir",
    "resolve_config_file",
]
