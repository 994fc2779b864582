"""
Contact operations of the Constant Contact v2 API.

API docs: http://developer.constantcontact.com/docs/contacts-api/contacts-collection.html
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Optional

from ccontact_sync.api.client import APIResponse
from ccontact_sync.api.errors import ConstantContactError, ServiceError
from ccontact_sync.sync.contact import BulkImport, Contact, ImportResponse

if TYPE_CHECKING:
    from ccontact_sync.api.client import ConstantContactClient

CONTACTS_PATH = "contacts"
BULK_IMPORT_PATH = "activities/addcontacts"

logger = logging.getLogger(__name__)


def decode_contact(payload: Any) -> Contact:
    """Decode a single contact object."""
    return Contact.from_dict(payload)


def decode_contact_page(payload: Any) -> list[Contact]:
    """Decode a contact listing, which wraps its array under "results"."""
    if not isinstance(payload, dict):
        raise TypeError(
            f"contact listing must be a JSON object, got {type(payload).__name__}"
        )
    results = payload.get("results") or []
    if not isinstance(results, list):
        raise TypeError("contact listing 'results' must be an array")
    return [Contact.from_dict(item) for item in results]


def decode_import_response(payload: Any) -> ImportResponse:
    """Decode the acknowledgment of a bulk import."""
    return ImportResponse.from_dict(payload)


class ContactService:
    """
    Contact related methods of the API.

    Every failure is raised as a ServiceError naming the operation, with the
    client error as its cause.
    """

    def __init__(self, client: ConstantContactClient):
        self.client = client

    def create(
        self, contact: Contact, cancel_event: Optional[threading.Event] = None
    ) -> tuple[Contact, APIResponse]:
        """
        Create a contact.

        Returns:
            Tuple of (created Contact with its server-assigned id, APIResponse)

        Raises:
            ServiceError: If the request fails or the server rejects it
        """
        try:
            request = self.client.build_request(
                "POST", CONTACTS_PATH, contact.to_dict()
            )
            created, response = self.client.execute(
                request, decode_contact, cancel_event
            )
        except ConstantContactError as e:
            raise ServiceError(
                f"could not create contact {contact.primary_email}", e
            ) from e

        if created is None:
            created = Contact()
        logger.debug(f"Created contact {created.id} ({contact.primary_email})")
        return created, response

    def get_all(
        self, cancel_event: Optional[threading.Event] = None
    ) -> tuple[list[Contact], APIResponse]:
        """
        Fetch the first page of contacts.

        Follow ``response.next_link`` with get_page() for the rest.
        """
        return self._get(CONTACTS_PATH, "could not get contacts", cancel_event)

    def get_page(
        self, next_link: str, cancel_event: Optional[threading.Event] = None
    ) -> tuple[list[Contact], APIResponse]:
        """
        Fetch the page a previous response pointed to.

        Args:
            next_link: Cursor from a previous APIResponse, used verbatim as
                the request path
        """
        return self._get(
            next_link, "could not get next page of contacts", cancel_event
        )

    def _get(
        self,
        path: str,
        operation: str,
        cancel_event: Optional[threading.Event],
    ) -> tuple[list[Contact], APIResponse]:
        try:
            request = self.client.build_request("GET", path)
            contacts, response = self.client.execute(
                request, decode_contact_page, cancel_event
            )
        except ConstantContactError as e:
            raise ServiceError(operation, e) from e
        return contacts or [], response

    def update(
        self, contact: Contact, cancel_event: Optional[threading.Event] = None
    ) -> tuple[Contact, APIResponse]:
        """
        Replace the remote contact addressed by ``contact.id``.

        Raises:
            ValueError: If the contact has no id (nothing is sent)
            ServiceError: If the request fails or the server rejects it
        """
        if not contact.id:
            raise ValueError(
                f"contact {contact.primary_email} has no id and cannot be updated"
            )

        try:
            request = self.client.build_request(
                "PUT", f"{CONTACTS_PATH}/{contact.id}", contact.to_dict()
            )
            updated, response = self.client.execute(
                request, decode_contact, cancel_event
            )
        except ConstantContactError as e:
            raise ServiceError(f"could not update contact {contact.id}", e) from e

        if updated is None:
            updated = contact
        logger.debug(f"Updated contact {contact.id} ({contact.primary_email})")
        return updated, response

    def import_contacts(
        self, bulk_import: BulkImport, cancel_event: Optional[threading.Event] = None
    ) -> tuple[ImportResponse, APIResponse]:
        """
        Start a bulk import of contacts.

        The job runs asynchronously on the server; the acknowledgment carries
        its id and counts but not per-contact results.

        http://developer.constantcontact.com/docs/bulk_activities_api/bulk-activities-import-contacts.html
        """
        try:
            request = self.client.build_request(
                "POST", BULK_IMPORT_PATH, bulk_import.to_dict()
            )
            ack, response = self.client.execute(
                request, decode_import_response, cancel_event
            )
        except ConstantContactError as e:
            raise ServiceError("bulk import failed", e) from e

        if ack is None:
            ack = ImportResponse()
        logger.info(
            f"Bulk import {ack.id} accepted ({ack.contact_count} contacts, "
            f"{ack.error_count} errors)"
        )
        return ack, response
