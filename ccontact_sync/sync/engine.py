"""
Reconciliation engine for Constant Contact registration sync.

Refreshes the local contact cache from the remote collection and converges
remote contacts toward a target record set (newly registered participants)
with create-or-update decisions keyed by email.
"""

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Optional

from ccontact_sync.api.client import ConstantContactClient
from ccontact_sync.api.errors import ConstantContactError
from ccontact_sync.storage.cache import ContactCache
from ccontact_sync.sync.contact import (
    STATUS_ACTIVE,
    BulkImport,
    Contact,
    ImportResponse,
)

# Column name the bulk import API expects for email addresses
EMAIL_COLUMN = "Email Address"

logger = logging.getLogger(__name__)


@dataclass
class ReconcileStats:
    """
    Statistics from a reconciliation pass.

    Tracks counts of all operations attempted during the pass.
    """

    targets: int = 0
    cached: int = 0
    created: int = 0
    updated: int = 0
    failed: int = 0
    not_attempted: int = 0

    @property
    def attempted(self) -> int:
        """Records for which a remote call was made."""
        return self.created + self.updated + self.failed


@dataclass
class ReconcileResult:
    """
    Outcome of a reconciliation pass.

    Attributes:
        created: Contacts returned by the server for each create
        updated: Contacts returned by the server for each update
        failures: (email, error) for every record whose remote call failed,
            in processing order
        cancelled: True if the pass stopped early on the cancel event
        stats: Counts of the above
    """

    created: list[Contact] = field(default_factory=list)
    updated: list[Contact] = field(default_factory=list)
    failures: list[tuple[str, Exception]] = field(default_factory=list)
    cancelled: bool = False
    stats: ReconcileStats = field(default_factory=ReconcileStats)

    @property
    def last_error(self) -> Optional[Exception]:
        """The last failure encountered, or None."""
        if not self.failures:
            return None
        return self.failures[-1][1]

    def has_errors(self) -> bool:
        return bool(self.failures) or self.cancelled

    def summary(self) -> str:
        """
        Generate a human-readable summary of the pass.

        Returns:
            Formatted string summary of reconciliation operations
        """
        lines = [
            "Reconciliation Summary:",
            f"  Registrations: {self.stats.targets}",
            f"  Cached contacts: {self.stats.cached}",
            f"  Created: {self.stats.created}",
            f"  Updated: {self.stats.updated}",
        ]
        if self.stats.failed:
            lines.append(f"  Failed: {self.stats.failed}")
        if self.cancelled:
            lines.append(f"  Not attempted (cancelled): {self.stats.not_attempted}")
        return "\n".join(lines)


class ReconciliationError(Exception):
    """
    Raised after a reconciliation pass in which records failed.

    Every record was still attempted unless the pass was cancelled.

    Attributes:
        result: The full ReconcileResult
        failures: (email, error) pairs
        last_error: The last failure encountered
    """

    def __init__(self, result: ReconcileResult):
        self.result = result
        self.failures = list(result.failures)
        self.last_error = result.last_error

        if self.failures:
            email, error = self.failures[-1]
            message = (
                f"{len(self.failures)} of {result.stats.targets} registrations "
                f"failed; last error ({email}): {error}"
            )
        else:
            message = "reconciliation cancelled"
        if result.cancelled and self.failures:
            message = f"{message} (cancelled)"
        super().__init__(message)


class ReconciliationEngine:
    """
    Converges remote contacts toward a set of registrations.

    The cache is the oracle for what already exists remotely. It is only
    rebuilt by refresh_cache(); reconcile() never re-fetches and works from
    whatever the cache holds, while sync() drains first. Contacts created by
    a pass are only visible after the next refresh.

    Usage:
        engine = ReconciliationEngine(
            client=ConstantContactClient(config),
            cache=ContactCache("contacts.json"),
            registered_list_id="1756200534",
            unregistered_list_id="1268645980",
        )

        # Drain every page of remote contacts into the cache
        engine.refresh_cache()

        # Create or update each registration
        result = engine.reconcile(load_registrations("export.xlsx"))

        # Or both in one go
        result = engine.sync(load_registrations("export.xlsx"))
        print(result.summary())
    """

    def __init__(
        self,
        client: ConstantContactClient,
        cache: ContactCache,
        registered_list_id: str,
        unregistered_list_id: str,
    ):
        """
        Initialize the engine.

        Args:
            client: API client used for every remote call
            cache: Local cache store
            registered_list_id: List every reconciled contact is added to
            unregistered_list_id: List bulk-loaded contacts are added to
        """
        self.client = client
        self.cache = cache
        self.registered_list_id = registered_list_id
        self.unregistered_list_id = unregistered_list_id

    def fetch_all_contacts(
        self, cancel_event: Optional[threading.Event] = None
    ) -> list[Contact]:
        """
        Drain every page of remote contacts.

        Pages are fetched one after another, each from the previous page's
        cursor, until a page comes back without one.

        Raises:
            ServiceError: If any page cannot be fetched
        """
        contacts, response = self.client.contacts.get_all(cancel_event)
        everything = list(contacts)
        pages = 1
        logger.debug(f"Page {pages}: {len(contacts)} contacts")

        while response.next_link:
            contacts, response = self.client.contacts.get_page(
                response.next_link, cancel_event
            )
            pages += 1
            everything.extend(contacts)
            logger.debug(f"Page {pages}: {len(contacts)} contacts")

        logger.info(f"Fetched {len(everything)} contacts in {pages} pages")
        return everything

    def refresh_cache(
        self, cancel_event: Optional[threading.Event] = None
    ) -> dict[str, Contact]:
        """
        Rebuild the cache from a full drain of remote contacts.

        The cache file is only written once every page has been fetched.

        Returns:
            The new mapping of email to Contact

        Raises:
            ServiceError: If a page cannot be fetched
            CacheError: If the cache cannot be written
        """
        contacts = self.fetch_all_contacts(cancel_event)
        mapping = ContactCache.index(contacts)
        self.cache.save(mapping)
        logger.info(f"Cached {len(mapping)} contacts in {self.cache.path}")
        return mapping

    def reconcile(
        self,
        targets: Mapping[str, Contact],
        cached: Optional[Mapping[str, Contact]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ReconcileResult:
        """
        Create or update a remote contact for every registration.

        For an email already in the cache, the cached contact is updated so
        that it is ACTIVE on the registered list and REMOVED from the
        unregistered list; the registration row only supplies the match key.
        For a new email, a contact built from the registration row with the
        same memberships is created. Neither input is modified.

        A failure does not stop the pass. Records are processed in the
        mapping's iteration order.

        Args:
            targets: Registrations keyed by email
            cached: Known remote contacts; loaded from the cache if None
            cancel_event: Stops the pass before the next record when set

        Returns:
            ReconcileResult when every record succeeded

        Raises:
            CacheError: If cached is None and the cache cannot be loaded
            ReconciliationError: If any record failed or the pass was
                cancelled; carries the ReconcileResult
        """
        if cached is None:
            cached = self.cache.load()

        result = ReconcileResult()
        result.stats.targets = len(targets)
        result.stats.cached = len(cached)

        for position, (email, record) in enumerate(targets.items()):
            if cancel_event is not None and cancel_event.is_set():
                result.cancelled = True
                result.stats.not_attempted = len(targets) - position
                logger.warning(
                    f"Reconciliation cancelled with "
                    f"{result.stats.not_attempted} registrations left"
                )
                break

            existing = cached.get(email)
            try:
                if existing is not None:
                    self._update_existing(email, existing, result, cancel_event)
                else:
                    self._create_new(email, record, result, cancel_event)
            except (ConstantContactError, ValueError) as e:
                logger.error(f"Failed to reconcile {email}: {e}")
                result.failures.append((email, e))
                result.stats.failed += 1

        logger.info(
            f"Reconciled {result.stats.attempted} registrations: "
            f"{result.stats.created} created, {result.stats.updated} updated, "
            f"{result.stats.failed} failed"
        )

        if result.has_errors():
            raise ReconciliationError(result)
        return result

    def sync(
        self,
        targets: Mapping[str, Contact],
        cancel_event: Optional[threading.Event] = None,
    ) -> ReconcileResult:
        """
        Refresh the cache from every remote page, then reconcile against it.

        Nothing is created or updated unless the drain completed; a failed
        drain leaves the previous cache in place.

        Raises:
            ServiceError: If a page cannot be fetched
            CacheError: If the cache cannot be written
            ReconciliationError: As for reconcile()
        """
        fresh = self.refresh_cache(cancel_event)
        return self.reconcile(targets, cached=fresh, cancel_event=cancel_event)

    def _update_existing(
        self,
        email: str,
        existing: Contact,
        result: ReconcileResult,
        cancel_event: Optional[threading.Event],
    ) -> None:
        logger.info(f"Updating contact: {email}")
        patched = existing.with_list_membership(
            self.registered_list_id,
            STATUS_ACTIVE,
            removed_from=[self.unregistered_list_id],
        )
        updated, _ = self.client.contacts.update(patched, cancel_event)
        result.updated.append(updated)
        result.stats.updated += 1

    def _create_new(
        self,
        email: str,
        record: Contact,
        result: ReconcileResult,
        cancel_event: Optional[threading.Event],
    ) -> None:
        logger.info(f"Adding new contact: {email}")
        new_contact = record.with_list_membership(
            self.registered_list_id,
            STATUS_ACTIVE,
            removed_from=[self.unregistered_list_id],
        )
        created, _ = self.client.contacts.create(new_contact, cancel_event)
        result.created.append(created)
        result.stats.created += 1

    def import_unregistered(
        self,
        cached: Optional[Mapping[str, Contact]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ImportResponse:
        """
        Bulk import every cached email into the unregistered list.

        The import runs asynchronously on the server and the cache is left
        as is.

        Raises:
            CacheError: If cached is None and the cache cannot be loaded
            ServiceError: If the import request fails
        """
        if cached is None:
            cached = self.cache.load()

        bulk_import = BulkImport(
            import_data=[{"email_addresses": [email]} for email in cached],
            column_names=[EMAIL_COLUMN],
            lists=[self.unregistered_list_id],
        )
        logger.info(
            f"Importing {len(bulk_import.import_data)} contacts into list "
            f"{self.unregistered_list_id}"
        )
        ack, _ = self.client.contacts.import_contacts(bulk_import, cancel_event)
        return ack

    def __repr__(self) -> str:
        """Return a readable string representation."""
        return (
            f"ReconciliationEngine(cache={self.cache!r}, "
            f"registered_list_id={self.registered_list_id!r})"
        )
