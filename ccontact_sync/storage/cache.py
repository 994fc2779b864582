"""
Local contact cache.

Persists the snapshot of remote contacts, keyed by primary email, as a single
JSON document. The cache mirrors remote state as of the last full sync and is
never patched incrementally; rebuild it with a full sync to see changes.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from datetime import datetime
from pathlib import Path
from typing import Optional

from ccontact_sync.sync.contact import Contact

# Default cache location, relative to the working directory
DEFAULT_CACHE_FILE = "contacts.json"

logger = logging.getLogger(__name__)


class CacheError(Exception):
    """Raised when the cache file cannot be written or read."""

    pass


class ContactCache:
    """
    File-backed snapshot of remote contacts.

    The whole mapping is written and read in one go. Writes are not atomic:
    a failed save may leave a truncated file, which load() then reports as
    corrupt; a full sync repairs it.

    Attributes:
        path: Location of the cache file

    Usage:
        cache = ContactCache(Path("contacts.json"))

        mapping = ContactCache.index(contacts)
        cache.save(mapping)

        mapping = cache.load()
    """

    def __init__(self, path: Path | str = DEFAULT_CACHE_FILE):
        self.path = Path(path)

    def exists(self) -> bool:
        """True if a cache file is present."""
        return self.path.is_file()

    def modified_at(self) -> Optional[datetime]:
        """When the cache was last written, or None if there is no cache file."""
        try:
            return datetime.fromtimestamp(self.path.stat().st_mtime)
        except FileNotFoundError:
            return None

    @staticmethod
    def index(contacts: Iterable[Contact]) -> dict[str, Contact]:
        """
        Key contacts by primary email.

        Contacts without email entries cannot be keyed and are skipped with a
        warning. If two contacts share a primary email, the later one wins.
        """
        mapping: dict[str, Contact] = {}
        for contact in contacts:
            if not contact.is_indexable():
                logger.warning(
                    f"Skipping contact {contact.id} with no email address"
                )
                continue
            email = contact.primary_email
            if email in mapping:
                logger.debug(
                    f"Contact {contact.id} replaces {mapping[email].id} for {email}"
                )
            mapping[email] = contact
        return mapping

    def save(self, mapping: Mapping[str, Contact]) -> None:
        """
        Write the mapping, replacing any previous cache file.

        Raises:
            CacheError: If the file cannot be written
        """
        document = {email: contact.to_dict() for email, contact in mapping.items()}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                f.write(json.dumps(document, indent=2, ensure_ascii=False))
        except OSError as e:
            raise CacheError(f"could not write cache {self.path}: {e}") from e

        logger.debug(f"Wrote {len(mapping)} contacts to {self.path}")

    def load(self) -> dict[str, Contact]:
        """
        Read the whole mapping back.

        Raises:
            CacheError: If the file is missing, unreadable or corrupt
        """
        try:
            with open(self.path, encoding="utf-8") as f:
                document = json.load(f)
        except FileNotFoundError as e:
            raise CacheError(
                f"cache {self.path} not found; run a full contact sync first"
            ) from e
        except OSError as e:
            raise CacheError(f"could not read cache {self.path}: {e}") from e
        except ValueError as e:
            raise CacheError(f"cache {self.path} is corrupt: {e}") from e

        if not isinstance(document, dict):
            raise CacheError(
                f"cache {self.path} is corrupt: expected an object, "
                f"got {type(document).__name__}"
            )

        try:
            mapping = {
                email: Contact.from_dict(data) for email, data in document.items()
            }
        except (KeyError, TypeError, ValueError) as e:
            raise CacheError(f"cache {self.path} is corrupt: {e}") from e

        logger.debug(f"Read {len(mapping)} contacts from {self.path}")
        return mapping

    def __repr__(self) -> str:
        """Return a readable string representation."""
        return f"ContactCache(path={str(self.path)!r})"
