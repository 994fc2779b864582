"""
Tests for configuration loading, validation, settings and path resolution.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from ccontact_sync.api.client import DEFAULT_BASE_URL
from ccontact_sync.config import ConfigError, ConfigLoader, Settings
from ccontact_sync.config.loader import VALID_KEYS
from ccontact_sync.config.settings import (
    DEFAULT_REGISTERED_LIST_ID,
    DEFAULT_UNREGISTERED_LIST_ID,
)
from ccontact_sync.utils import (
    DEFAULT_CONFIG_DIR,
    resolve_config_dir,
    resolve_config_file,
)


class TestResolvePaths:
    """Tests for configuration path resolution."""

    def test_explicit_dir_wins(self, tmp_path):
        with patch.dict(os.environ, {"CCONTACT_SYNC_CONFIG_DIR": "/elsewhere"}):
            assert resolve_config_dir(tmp_path) == tmp_path.resolve()

    def test_env_dir(self, tmp_path):
        with patch.dict(os.environ, {"CCONTACT_SYNC_CONFIG_DIR": str(tmp_path)}):
            assert resolve_config_dir() == tmp_path.resolve()

    def test_default_dir(self):
        with patch.dict(os.environ, {}, clear=True):
            assert resolve_config_dir() == DEFAULT_CONFIG_DIR.resolve()
        assert Path.home() / ".ccontact-sync" == DEFAULT_CONFIG_DIR

    def test_config_file_in_dir(self, tmp_path):
        assert resolve_config_file(tmp_path) == tmp_path.resolve() / "config.yaml"

    def test_explicit_config_file(self, tmp_path):
        path = tmp_path / "other.yaml"
        assert resolve_config_file(tmp_path / "ignored", path) == path


class TestConfigLoaderLoad:
    """Tests for loading configuration files."""

    @pytest.fixture
    def loader(self, tmp_path):
        """Create a ConfigLoader instance with temp config dir."""
        return ConfigLoader(config_dir=tmp_path)

    def test_load_nonexistent_file_returns_empty_dict(self, loader):
        assert loader.load() == {}

    def test_load_empty_file_returns_empty_dict(self, loader, tmp_path):
        (tmp_path / "config.yaml").write_text("", encoding="utf-8")
        assert loader.load() == {}

    def test_load_valid_file(self, loader, tmp_path):
        (tmp_path / "config.yaml").write_text(
            "registered_list_id: '111'\nrequest_timeout: 10\nverbose: true\n",
            encoding="utf-8",
        )

        config = loader.load()

        assert config == {
            "registered_list_id": "111",
            "request_timeout": 10,
            "verbose": True,
        }

    def test_load_invalid_yaml(self, loader, tmp_path):
        (tmp_path / "config.yaml").write_text("key: [unclosed", encoding="utf-8")

        with pytest.raises(ConfigError, match="Failed to parse YAML"):
            loader.load()

    def test_load_non_dict_yaml(self, loader, tmp_path):
        (tmp_path / "config.yaml").write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="YAML dictionary"):
            loader.load()

    def test_load_from_specific_file(self, loader, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("sheet_name: Entrants\n", encoding="utf-8")

        assert loader.load_from_file(path) == {"sheet_name": "Entrants"}


class TestConfigLoaderValidate:
    """Tests for configuration validation."""

    @pytest.fixture
    def loader(self, tmp_path):
        """Create a ConfigLoader instance with temp config dir."""
        return ConfigLoader(config_dir=tmp_path)

    def test_validate_empty_config(self, loader):
        loader.validate({})

    def test_unknown_keys_ignored(self, loader):
        loader.validate({"something_else": [1, 2]})

    def test_all_keys_known(self):
        assert set(VALID_KEYS) == {
            "base_url",
            "request_timeout",
            "registered_list_id",
            "unregistered_list_id",
            "cache_file",
            "downloads_dir",
            "sheet_name",
            "verbose",
            "log_dir",
            "log_retention_count",
        }

    @pytest.mark.parametrize(
        "config",
        [
            {"request_timeout": "30"},
            {"request_timeout": True},
            {"verbose": "yes"},
            {"log_retention_count": 2.5},
            {"cache_file": 5},
        ],
    )
    def test_invalid_types(self, loader, config):
        with pytest.raises(ConfigError, match="Invalid type"):
            loader.validate(config)

    def test_numeric_list_ids_allowed(self, loader):
        loader.validate({"registered_list_id": 1, "unregistered_list_id": 2})

    @pytest.mark.parametrize(
        "base_url",
        [
            "ftp://api.constantcontact.com/v2/",
            "api.constantcontact.com/v2/",
            "https://api.constantcontact.com/v2",
        ],
    )
    def test_invalid_base_url(self, loader, base_url):
        with pytest.raises(ConfigError, match="base_url"):
            loader.validate({"base_url": base_url})

    def test_non_positive_timeout(self, loader):
        with pytest.raises(ConfigError, match="request_timeout"):
            loader.validate({"request_timeout": 0})

    def test_negative_retention(self, loader):
        with pytest.raises(ConfigError, match="log_retention_count"):
            loader.validate({"log_retention_count": -1})

    def test_empty_list_id(self, loader):
        with pytest.raises(ConfigError, match="must not be empty"):
            loader.validate({"registered_list_id": "  "})

    def test_same_list_ids(self, loader):
        with pytest.raises(ConfigError, match="must be different"):
            loader.validate({"registered_list_id": "5", "unregistered_list_id": 5})

    def test_load_and_validate(self, loader, tmp_path):
        (tmp_path / "config.yaml").write_text("request_timeout: -1\n", encoding="utf-8")

        with pytest.raises(ConfigError):
            loader.load_and_validate()


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self):
        settings = Settings.from_config({})

        assert settings.base_url == DEFAULT_BASE_URL
        assert settings.registered_list_id == DEFAULT_REGISTERED_LIST_ID == "1756200534"
        assert settings.unregistered_list_id == DEFAULT_UNREGISTERED_LIST_ID
        assert settings.cache_file == Path("contacts.json")
        assert settings.downloads_dir == Path("downloads")
        assert settings.sheet_name == "Sheet1"

    def test_from_config(self, tmp_path):
        settings = Settings.from_config(
            {
                "request_timeout": 5,
                "registered_list_id": 111,
                "unregistered_list_id": "222",
                "cache_file": str(tmp_path / "cache.json"),
                "sheet_name": "Entrants",
            }
        )

        assert settings.request_timeout == 5.0
        assert settings.registered_list_id == "111"
        assert settings.reserved_list_ids == frozenset({"111", "222"})
        assert settings.cache_file == tmp_path / "cache.json"
        assert settings.sheet_name == "Entrants"

    def test_client_config_from_environment(self):
        settings = Settings(request_timeout=12.0)

        config = settings.client_config(
            {"CC_API_KEY": "key", "CC_ACCESS_TOKEN": "token"}
        )

        assert config.api_key == "key"
        assert config.access_token == "token"
        assert config.timeout == 12.0
        assert config.base_url == DEFAULT_BASE_URL

    def test_client_config_reads_os_environ(self):
        env = {"CC_API_KEY": "key", "CC_ACCESS_TOKEN": "token"}
        with patch.dict(os.environ, env):
            assert Settings().client_config().api_key == "key"

    def test_missing_credentials(self):
        with pytest.raises(ConfigError, match="CC_ACCESS_TOKEN"):
            Settings().client_config({"CC_API_KEY": "key"})

        with pytest.raises(ConfigError, match="CC_API_KEY and CC_ACCESS_TOKEN"):
            Settings().client_config({})
