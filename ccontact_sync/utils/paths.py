"""
Path resolution for the ccontact-sync configuration directory and file.
"""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_CONFIG_DIR = Path.home() / ".ccontact-sync"

CONFIG_DIR_ENV_VAR = "CCONTACT_SYNC_CONFIG_DIR"

DEFAULT_CONFIG_FILE = "config.yaml"


def resolve_config_dir(config_dir: Path | str | None = None) -> Path:
    """
    Resolve the configuration directory.

    The explicit argument wins, then $CCONTACT_SYNC_CONFIG_DIR, then
    ~/.ccontact-sync. The result is expanded and absolute.
    """
    if config_dir is not None:
        return Path(config_dir).expanduser().resolve()

    env_dir = os.environ.get(CONFIG_DIR_ENV_VAR)
    if env_dir:
        return Path(env_dir).expanduser().resolve()

    return DEFAULT_CONFIG_DIR.expanduser().resolve()


def resolve_config_file(
    config_dir: Path | str | None = None, config_file: Path | str | None = None
) -> Path:
    """
    Resolve the configuration file.

    An explicit file path is used as given (after ~ expansion); otherwise the
    file is config.yaml inside the resolved configuration directory.
    """
    if config_file:
        return Path(config_file).expanduser()
    return resolve_config_dir(config_dir) / DEFAULT_CONFIG_FILE
