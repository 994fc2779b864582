"""
Runtime settings for Constant Contact registration sync.

Settings combine the validated configuration file with built-in defaults.
API credentials are read from the environment only when a client
configuration is requested, so nothing below the CLI looks them up.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from ccontact_sync.api.client import DEFAULT_BASE_URL, DEFAULT_TIMEOUT, ClientConfig
from ccontact_sync.config.loader import ConfigError
from ccontact_sync.sources.exports import DEFAULT_DOWNLOADS_DIR
from ccontact_sync.sources.spreadsheet import DEFAULT_SHEET_NAME
from ccontact_sync.storage.cache import DEFAULT_CACHE_FILE

# Reserved lists of the race's Constant Contact account
DEFAULT_REGISTERED_LIST_ID = "1756200534"
DEFAULT_UNREGISTERED_LIST_ID = "1268645980"

# Environment variable names for API credentials
ENV_API_KEY = "CC_API_KEY"
ENV_ACCESS_TOKEN = "CC_ACCESS_TOKEN"


@dataclass
class Settings:
    """
    Settings used by the CLI commands.

    Attributes:
        base_url: Versioned API root
        request_timeout: Per-request timeout in seconds
        registered_list_id: List every reconciled registration joins
        unregistered_list_id: List bulk-loaded contacts join
        cache_file: Location of the local contact cache
        downloads_dir: Directory holding entrant exports
        sheet_name: Worksheet of the entrant export

    Usage:
        settings = Settings.from_config(config)
        client = ConstantContactClient(settings.client_config())
    """

    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = DEFAULT_TIMEOUT
    registered_list_id: str = DEFAULT_REGISTERED_LIST_ID
    unregistered_list_id: str = DEFAULT_UNREGISTERED_LIST_ID
    cache_file: Path = Path(DEFAULT_CACHE_FILE)
    downloads_dir: Path = Path(DEFAULT_DOWNLOADS_DIR)
    sheet_name: str = DEFAULT_SHEET_NAME

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> Settings:
        """Build settings from a validated configuration dictionary."""
        defaults = cls()
        return cls(
            base_url=config.get("base_url", defaults.base_url),
            request_timeout=float(
                config.get("request_timeout", defaults.request_timeout)
            ),
            registered_list_id=str(
                config.get("registered_list_id", defaults.registered_list_id)
            ),
            unregistered_list_id=str(
                config.get("unregistered_list_id", defaults.unregistered_list_id)
            ),
            cache_file=Path(config.get("cache_file", defaults.cache_file)).expanduser(),
            downloads_dir=Path(
                config.get("downloads_dir", defaults.downloads_dir)
            ).expanduser(),
            sheet_name=config.get("sheet_name", defaults.sheet_name),
        )

    @property
    def reserved_list_ids(self) -> frozenset[str]:
        """IDs of the lists that bulk cleanup must keep."""
        return frozenset({self.registered_list_id, self.unregistered_list_id})

    def client_config(
        self, environ: Optional[Mapping[str, str]] = None
    ) -> ClientConfig:
        """
        Build the API client configuration.

        Args:
            environ: Environment to read credentials from (default os.environ)

        Raises:
            ConfigError: If CC_API_KEY or CC_ACCESS_TOKEN is not set
        """
        env = os.environ if environ is None else environ
        api_key = env.get(ENV_API_KEY, "")
        access_token = env.get(ENV_ACCESS_TOKEN, "")

        missing = [
            name
            for name, value in ((ENV_API_KEY, api_key), (ENV_ACCESS_TOKEN, access_token))
            if not value
        ]
        if missing:
            raise ConfigError(
                f"Missing API credentials: set {' and '.join(missing)}"
            )

        return ClientConfig(
            api_key=api_key,
            access_token=access_token,
            base_url=self.base_url,
            timeout=self.request_timeout,
        )
