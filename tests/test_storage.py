"""
Tests for the local contact cache.

Uses pytest's tmp_path fixture for cache files.
"""

import json
import logging
import os
from datetime import datetime

import pytest

from ccontact_sync.storage import CacheError, ContactCache
from ccontact_sync.sync.contact import Contact, EmailAddress, ListMembership


def make_contact(contact_id, email=None, **kwargs):
    emails = [EmailAddress(email_address=email)] if email else []
    return Contact(id=contact_id, email_addresses=emails, **kwargs)


class TestIndex:
    """Tests for ContactCache.index."""

    def test_keys_by_primary_email(self):
        contacts = [make_contact("1", "a@example.com"), make_contact("2", "b@example.com")]

        mapping = ContactCache.index(contacts)

        assert list(mapping) == ["a@example.com", "b@example.com"]
        assert mapping["b@example.com"].id == "2"

    def test_skips_contacts_without_email(self, caplog):
        """Test that contacts without email entries are logged and skipped."""
        contacts = [make_contact("1"), make_contact("2", "b@example.com")]

        with caplog.at_level(logging.WARNING, logger="ccontact_sync"):
            mapping = ContactCache.index(contacts)

        assert list(mapping) == ["b@example.com"]
        assert "no email address" in caplog.text

    def test_later_contact_wins(self):
        """Test that a repeated primary email keeps the last contact."""
        contacts = [make_contact("1", "a@example.com"), make_contact("2", "a@example.com")]

        mapping = ContactCache.index(contacts)

        assert len(mapping) == 1
        assert mapping["a@example.com"].id == "2"


class TestModifiedAt:
    """Tests for ContactCache.modified_at."""

    def test_missing_cache(self, tmp_path):
        assert ContactCache(tmp_path / "contacts.json").modified_at() is None

    def test_reports_last_write(self, tmp_path):
        cache = ContactCache(tmp_path / "contacts.json")
        cache.save({})
        stamp = datetime(2026, 3, 1, 9, 30).timestamp()
        os.utime(cache.path, (stamp, stamp))

        assert cache.modified_at() == datetime(2026, 3, 1, 9, 30)


class TestSaveAndLoad:
    """Tests for ContactCache.save and load."""

    def test_round_trip(self, tmp_path):
        """Test that a saved mapping loads back equal."""
        cache = ContactCache(tmp_path / "contacts.json")
        mapping = {
            "a@example.com": make_contact(
                "1",
                "a@example.com",
                first_name="Ann",
                lists=[ListMembership(id="100", status="ACTIVE")],
            ),
            "b@example.com": make_contact("2", "b@example.com", last_name="Bell"),
        }

        cache.save(mapping)

        assert cache.exists()
        assert cache.load() == mapping

    def test_file_is_one_json_object_keyed_by_email(self, tmp_path):
        path = tmp_path / "contacts.json"
        ContactCache(path).save({"a@example.com": make_contact("1", "a@example.com")})

        document = json.loads(path.read_text(encoding="utf-8"))

        assert list(document) == ["a@example.com"]
        assert document["a@example.com"]["id"] == "1"

    def test_save_replaces_previous_cache(self, tmp_path):
        cache = ContactCache(tmp_path / "contacts.json")
        cache.save({"a@example.com": make_contact("1", "a@example.com")})

        cache.save({"b@example.com": make_contact("2", "b@example.com")})

        assert list(cache.load()) == ["b@example.com"]

    def test_empty_mapping(self, tmp_path):
        cache = ContactCache(tmp_path / "contacts.json")
        cache.save({})
        assert cache.load() == {}

    def test_save_creates_parent_directory(self, tmp_path):
        cache = ContactCache(tmp_path / "nested" / "contacts.json")
        cache.save({})
        assert cache.exists()

    def test_save_failure(self, tmp_path):
        """Test that a write failure raises CacheError."""
        # A directory where the file should be
        path = tmp_path / "contacts.json"
        path.mkdir()

        with pytest.raises(CacheError, match="could not write"):
            ContactCache(path).save({})


class TestLoadErrors:
    """Tests for load failures."""

    def test_missing_file(self, tmp_path):
        cache = ContactCache(tmp_path / "missing.json")

        assert not cache.exists()
        with pytest.raises(CacheError, match="not found"):
            cache.load()

    def test_corrupt_json(self, tmp_path):
        path = tmp_path / "contacts.json"
        path.write_text('{"a@example.com": {"id": ', encoding="utf-8")

        with pytest.raises(CacheError, match="corrupt"):
            ContactCache(path).load()

    def test_wrong_top_level_type(self, tmp_path):
        path = tmp_path / "contacts.json"
        path.write_text("[]", encoding="utf-8")

        with pytest.raises(CacheError, match="expected an object"):
            ContactCache(path).load()

    def test_wrong_entry_shape(self, tmp_path):
        path = tmp_path / "contacts.json"
        path.write_text('{"a@example.com": "not a contact"}', encoding="utf-8")

        with pytest.raises(CacheError, match="corrupt"):
            ContactCache(path).load()


def test_repr(tmp_path):
    cache = ContactCache(tmp_path / "contacts.json")
    assert "contacts.json" in repr(cache)
