"""
Tests for the CLI module.

Tests the command-line interface using Click's testing utilities. The API
client class is patched; the cache, spreadsheet and config files are real
files under tmp_path.
"""

import os
from datetime import datetime
from unittest.mock import MagicMock, patch

import openpyxl
import pytest
from click.testing import CliRunner

from ccontact_sync import __version__
from ccontact_sync.api.client import APIResponse
from ccontact_sync.api.errors import APIError, ServiceError
from ccontact_sync.cli import cli
from ccontact_sync.storage.cache import ContactCache
from ccontact_sync.sync.contact import (
    Contact,
    ContactList,
    EmailAddress,
    ImportResponse,
)

CREDENTIALS = {"CC_API_KEY": "key", "CC_ACCESS_TOKEN": "token"}


def make_contact(email, contact_id=None, **kwargs):
    return Contact(
        id=contact_id, email_addresses=[EmailAddress(email_address=email)], **kwargs
    )


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_dir(tmp_path):
    """Config directory whose config.yaml points all files into tmp_path."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "config.yaml").write_text(
        f"cache_file: {tmp_path / 'contacts.json'}\n"
        f"downloads_dir: {tmp_path / 'downloads'}\n"
        "registered_list_id: '100'\n"
        "unregistered_list_id: '200'\n",
        encoding="utf-8",
    )
    return config_dir


@pytest.fixture
def cache(tmp_path):
    return ContactCache(tmp_path / "contacts.json")


@pytest.fixture
def api():
    """Patch the client class used by the CLI; yields the client instance."""
    with patch("ccontact_sync.cli.main.ConstantContactClient") as client_class:
        yield client_class.return_value


def invoke(runner, config_dir, *args, env=None):
    return runner.invoke(
        cli,
        ["--config-dir", str(config_dir), *args],
        env={**CREDENTIALS, "CCONTACT_SYNC_LOG_FILE": "none", **(env or {})},
    )


class TestCliGroup:
    """Tests for the main CLI group."""

    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("lists", "contacts", "output", "load", "update", "fetch-export"):
            assert command in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_no_command_exits_nonzero(self, runner):
        """Test that running without a subcommand is an error."""
        result = runner.invoke(cli, [])

        assert result.exit_code == 1
        assert "no command given" in result.output

    def test_unknown_command(self, runner):
        result = runner.invoke(cli, ["frobnicate"])

        assert result.exit_code != 0

    def test_invalid_config_exits(self, runner, tmp_path):
        (tmp_path / "config.yaml").write_text("request_timeout: -5\n", encoding="utf-8")

        result = invoke(runner, tmp_path, "output")

        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_missing_credentials(self, runner, config_dir, api):
        result = runner.invoke(
            cli,
            ["--config-dir", str(config_dir), "contacts"],
            env={"CC_API_KEY": "", "CC_ACCESS_TOKEN": "", "CCONTACT_SYNC_LOG_FILE": "none"},
        )

        assert result.exit_code == 1
        assert "CC_API_KEY" in result.output


class TestListsCommand:
    """Tests for the lists command."""

    LISTS = [
        ContactList(id="100", name="Registered", status="ACTIVE"),
        ContactList(id="42", name="Old race", status="HIDDEN"),
        ContactList(id="200", name="Unregistered", status="ACTIVE"),
    ]

    def test_shows_only_unreserved(self, runner, config_dir, api):
        api.lists.get_all.return_value = (list(self.LISTS), APIResponse(200))

        result = invoke(runner, config_dir, "lists")

        assert result.exit_code == 0
        assert "Old race [42]: HIDDEN" in result.output
        assert "Registered [100]" not in result.output
        assert "Unregistered" not in result.output
        api.lists.delete.assert_not_called()

    def test_prune(self, runner, config_dir, api):
        api.lists.get_all.return_value = (list(self.LISTS), APIResponse(200))

        result = invoke(runner, config_dir, "lists", "--prune")

        assert result.exit_code == 0
        assert [c.args[0] for c in api.lists.delete.call_args_list] == ["42"]
        assert "Deleted 1 list(s)" in result.output

    def test_prune_dry_run(self, runner, config_dir, api):
        api.lists.get_all.return_value = (list(self.LISTS), APIResponse(200))

        result = invoke(runner, config_dir, "lists", "--prune", "--dry-run")

        assert result.exit_code == 0
        api.lists.delete.assert_not_called()
        assert "Would delete 1 list(s)" in result.output

    def test_api_failure(self, runner, config_dir, api):
        api.lists.get_all.side_effect = ServiceError("could not get lists", APIError(401))

        result = invoke(runner, config_dir, "lists")

        assert result.exit_code == 1
        assert "could not get lists" in result.output


class TestContactsCommand:
    """Tests for the contacts command."""

    def test_refreshes_cache(self, runner, config_dir, api, cache):
        api.contacts.get_all.return_value = (
            [make_contact("a@x.com", "1"), make_contact("b@y.com", "2")],
            APIResponse(200, next_link="/v2/contacts?next=p2"),
        )
        api.contacts.get_page.return_value = (
            [make_contact("c@z.com", "3")],
            APIResponse(200),
        )

        result = invoke(runner, config_dir, "contacts")

        assert result.exit_code == 0, result.output
        assert "Cached 3 contacts" in result.output
        assert set(cache.load()) == {"a@x.com", "b@y.com", "c@z.com"}

    def test_failure_keeps_old_cache(self, runner, config_dir, api, cache):
        cache.save({"old@x.com": make_contact("old@x.com", "9")})
        api.contacts.get_all.side_effect = ServiceError("could not get contacts")

        result = invoke(runner, config_dir, "contacts")

        assert result.exit_code == 1
        assert list(cache.load()) == ["old@x.com"]


class TestOutputCommand:
    """Tests for the output command."""

    def test_prints_tab_separated(self, runner, config_dir, cache):
        cache.save(
            {
                "a@x.com": make_contact("a@x.com", "1", first_name="Ann", last_name="Lee"),
                "b@y.com": make_contact("b@y.com", "2"),
            }
        )

        result = invoke(runner, config_dir, "output")

        assert result.exit_code == 0
        assert result.output.splitlines() == ["a@x.com\tAnn\tLee", "b@y.com\t\t"]

    def test_missing_cache(self, runner, config_dir):
        result = invoke(runner, config_dir, "output")

        assert result.exit_code == 1
        assert "not found" in result.output


class TestLoadCommand:
    """Tests for the load command."""

    def test_imports_into_unregistered_list(self, runner, config_dir, api, cache):
        cache.save({"a@x.com": make_contact("a@x.com", "1")})
        api.contacts.import_contacts.return_value = (
            ImportResponse(id="job-1"),
            APIResponse(201),
        )

        result = invoke(runner, config_dir, "load")

        assert result.exit_code == 0
        assert "Import job job-1 submitted" in result.output
        bulk_import = api.contacts.import_contacts.call_args.args[0]
        assert bulk_import.lists == ["200"]


class TestUpdateCommand:
    """Tests for the update command."""

    @staticmethod
    def write_export(path, rows):
        workbook = openpyxl.Workbook()
        sheet = workbook.active
        sheet.title = "Sheet1"
        sheet.append(["FirstName", "LastName", "Email"])
        for row in rows:
            sheet.append(row)
        path.parent.mkdir(parents=True, exist_ok=True)
        workbook.save(path)
        return path

    def test_reconciles_latest_export(self, runner, config_dir, api, cache, tmp_path):
        """Test that the newest export is reconciled against the cache."""
        cache.save({"a@x.com": make_contact("a@x.com", "1")})
        downloads = tmp_path / "downloads"
        self.write_export(downloads / "entrants-1.xlsx", [["Old", "Row", "old@x.com"]])
        self.write_export(
            downloads / "entrants-2.xlsx",
            [["Ann", "Lee", "a@x.com"], ["Bea", "Young", "b@y.com"]],
        )
        api.contacts.update.side_effect = lambda c, e=None: (c, APIResponse(200))
        api.contacts.create.side_effect = lambda c, e=None: (c, APIResponse(201))

        result = invoke(runner, config_dir, "update")

        assert result.exit_code == 0, result.output
        assert "entrants-2.xlsx" in result.output
        assert "Created: 1" in result.output
        assert "Updated: 1" in result.output
        created = api.contacts.create.call_args.args[0]
        assert created.primary_email == "b@y.com"
        assert created.in_list("100")

    def test_explicit_file(self, runner, config_dir, api, cache, tmp_path):
        cache.save({})
        path = self.write_export(tmp_path / "mine.xlsx", [["Bea", "Young", "b@y.com"]])
        api.contacts.create.side_effect = lambda c, e=None: (c, APIResponse(201))

        result = invoke(runner, config_dir, "update", "--file", str(path))

        assert result.exit_code == 0, result.output
        api.contacts.create.assert_called_once()

    def test_partial_failure_exits_1(self, runner, config_dir, api, cache, tmp_path):
        cache.save({"a@x.com": make_contact("a@x.com", "1")})
        path = self.write_export(
            tmp_path / "mine.xlsx",
            [["Ann", "Lee", "a@x.com"], ["Bea", "Young", "b@y.com"]],
        )
        api.contacts.update.side_effect = ServiceError(
            "could not update contact 1", APIError(500)
        )
        api.contacts.create.side_effect = lambda c, e=None: (c, APIResponse(201))

        result = invoke(runner, config_dir, "update", "--file", str(path))

        assert result.exit_code == 1
        api.contacts.create.assert_called_once()
        assert "Failed: 1" in result.output
        assert "could not update contact 1" in result.output

    def test_reports_cache_age(self, runner, config_dir, api, cache, tmp_path):
        cache.save({})
        stamp = datetime(2026, 3, 1, 9, 30, 0).timestamp()
        os.utime(cache.path, (stamp, stamp))
        path = self.write_export(tmp_path / "mine.xlsx", [["Bea", "Young", "b@y.com"]])
        api.contacts.create.side_effect = lambda c, e=None: (c, APIResponse(201))

        result = invoke(runner, config_dir, "update", "--file", str(path))

        assert result.exit_code == 0, result.output
        assert f"Using cache {cache.path} from 2026-03-01 09:30:00" in result.output
        api.contacts.get_all.assert_not_called()

    def test_refresh_drains_before_reconciling(
        self, runner, config_dir, api, cache, tmp_path
    ):
        """Test that --refresh rebuilds the cache so known emails are updated."""
        cache.save({})
        path = self.write_export(tmp_path / "mine.xlsx", [["Ann", "Lee", "a@x.com"]])
        api.contacts.get_all.return_value = (
            [make_contact("a@x.com", "1")],
            APIResponse(200),
        )
        api.contacts.update.side_effect = lambda c, e=None: (c, APIResponse(200))

        result = invoke(runner, config_dir, "update", "--refresh", "--file", str(path))

        assert result.exit_code == 0, result.output
        assert "Refreshing contact cache" in result.output
        api.contacts.create.assert_not_called()
        assert api.contacts.update.call_args.args[0].id == "1"
        assert list(cache.load()) == ["a@x.com"]

    def test_no_exports(self, runner, config_dir, api):
        result = invoke(runner, config_dir, "update")

        assert result.exit_code == 1
        assert "could not read downloads" in result.output


class TestFetchExportCommand:
    """Tests for the fetch-export command."""

    def test_downloads(self, runner, config_dir, tmp_path):
        target = tmp_path / "downloads" / "entrants.xlsx"
        with patch(
            "ccontact_sync.cli.main.download_export", return_value=target
        ) as download:
            result = invoke(
                runner, config_dir, "fetch-export", "https://example.com/entrants.xlsx"
            )

        assert result.exit_code == 0
        assert str(target) in result.output
        assert download.call_args.args == (
            "https://example.com/entrants.xlsx",
            tmp_path / "downloads",
        )

    def test_invalid_url(self, runner, config_dir):
        result = invoke(runner, config_dir, "fetch-export", "not-a-url")

        assert result.exit_code == 1
        assert "invalid export URL" in result.output


def test_client_built_from_settings(runner, config_dir):
    """Test that the client config carries credentials from the environment."""
    with patch("ccontact_sync.cli.main.ConstantContactClient") as client_class:
        client_class.return_value = MagicMock()
        client_class.return_value.lists.get_all.return_value = ([], APIResponse(200))
        invoke(runner, config_dir, "lists")

    config = client_class.call_args.args[0]
    assert config.api_key == "key"
    assert config.access_token == "token"
