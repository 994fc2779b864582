"""
YAML configuration for ccontact-sync.

The file lives at <config dir>/config.yaml. A missing or empty file means
"use the defaults"; a file that exists but cannot be parsed, or holds a
value of the wrong type or out of range, raises ConfigError. Keys this
module does not know are ignored.
"""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlsplit

import yaml

from ccontact_sync.utils.paths import DEFAULT_CONFIG_FILE, resolve_config_dir

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


# Known keys and the YAML types they accept
VALID_KEYS: dict[str, type[Any] | tuple[type[Any], ...]] = {
    "base_url": str,
    "request_timeout": (int, float),
    "registered_list_id": (str, int),
    "unregistered_list_id": (str, int),
    "cache_file": str,
    "downloads_dir": str,
    "sheet_name": str,
    "verbose": bool,
    "log_dir": str,
    "log_retention_count": int,
}


def _check_base_url(value: str) -> Optional[str]:
    parts = urlsplit(value)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return f"base_url must be an http(s) URL, got {value!r}"
    if not parts.path.endswith("/"):
        return f"base_url must end with a trailing slash, got {value!r}"
    return None


def _check_list_id(key: str) -> Callable[[Any], Optional[str]]:
    def check(value: Any) -> Optional[str]:
        return None if str(value).strip() else f"{key} must not be empty"

    return check


# Per-key range checks; each returns an error message or None
RANGE_CHECKS: dict[str, Callable[[Any], Optional[str]]] = {
    "base_url": _check_base_url,
    "request_timeout": lambda v: (
        None if v > 0 else f"request_timeout must be > 0, got {v}"
    ),
    "log_retention_count": lambda v: (
        None if v >= 0 else f"log_retention_count must be >= 0, got {v}"
    ),
    "registered_list_id": _check_list_id("registered_list_id"),
    "unregistered_list_id": _check_list_id("unregistered_list_id"),
}


def _type_name(expected: type[Any] | tuple[type[Any], ...]) -> str:
    if isinstance(expected, tuple):
        return " or ".join(t.__name__ for t in expected)
    return expected.__name__


def _has_type(value: Any, expected: type[Any] | tuple[type[Any], ...]) -> bool:
    # YAML booleans are ints to isinstance; only accept them for bool keys
    if isinstance(value, bool):
        return expected is bool
    return isinstance(value, expected)


class ConfigLoader:
    """
    Reads and checks config.yaml.

    Usage:
        loader = ConfigLoader(config_dir)
        config = loader.load_and_validate()
        settings = Settings.from_config(config)
    """

    def __init__(
        self, config_dir: Optional[Path] = None, config_file: str = DEFAULT_CONFIG_FILE
    ):
        """
        Args:
            config_dir: Where config.yaml lives; defaults to
                $CCONTACT_SYNC_CONFIG_DIR or ~/.ccontact-sync
            config_file: File name inside config_dir
        """
        self.config_dir = resolve_config_dir(config_dir)
        self.config_file = config_file

    @property
    def path(self) -> Path:
        return self.config_dir / self.config_file

    def load(self) -> dict[str, Any]:
        """Read config.yaml from the configuration directory."""
        return self.load_from_file(self.path)

    def load_from_file(self, path: Path | str) -> dict[str, Any]:
        """
        Read a YAML mapping from path.

        Returns:
            The parsed mapping; {} when the file is missing or empty

        Raises:
            ConfigError: If the file can't be read, isn't YAML, or isn't a
                mapping
        """
        path = Path(path)
        if not path.exists():
            logger.debug(f"No configuration file at {path}, using defaults")
            return {}

        try:
            with open(path, encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse YAML configuration file: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read configuration file: {e}") from e

        if config is None:
            logger.debug(f"{path} is empty, using defaults")
            return {}
        if not isinstance(config, dict):
            raise ConfigError(
                f"Configuration file must contain a YAML dictionary, "
                f"got {type(config).__name__}"
            )

        logger.debug(f"Loaded {len(config)} configuration key(s) from {path}")
        return config

    def validate(self, config: dict[str, Any]) -> None:
        """
        Check the type and range of every known key.

        Raises:
            ConfigError: On the first invalid value
        """
        if not isinstance(config, dict):
            raise ConfigError(
                f"Configuration must be a dictionary, got {type(config).__name__}"
            )

        known = {key: value for key, value in config.items() if key in VALID_KEYS}

        for key, value in known.items():
            expected = VALID_KEYS[key]
            if not _has_type(value, expected):
                raise ConfigError(
                    f"Invalid type for '{key}': expected {_type_name(expected)}, "
                    f"got {type(value).__name__}"
                )

        for key, value in known.items():
            check = RANGE_CHECKS.get(key)
            message = check(value) if check else None
            if message:
                raise ConfigError(message)

        registered = known.get("registered_list_id")
        unregistered = known.get("unregistered_list_id")
        if (
            registered is not None
            and unregistered is not None
            and str(registered) == str(unregistered)
        ):
            raise ConfigError(
                "registered_list_id and unregistered_list_id must be different"
            )

    def load_and_validate(self) -> dict[str, Any]:
        """Load config.yaml and validate it; raises ConfigError."""
        config = self.load()
        if config:
            self.validate(config)
        return config
