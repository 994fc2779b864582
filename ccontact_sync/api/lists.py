"""
List operations of the Constant Contact v2 API.

API docs: http://developer.constantcontact.com/docs/contact-list-api/contactlist-collection.html
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Optional

from ccontact_sync.api.client import APIResponse
from ccontact_sync.api.errors import ConstantContactError, ServiceError
from ccontact_sync.sync.contact import ContactList

if TYPE_CHECKING:
    from ccontact_sync.api.client import ConstantContactClient

LISTS_PATH = "lists"

logger = logging.getLogger(__name__)


def decode_list(payload: Any) -> ContactList:
    return ContactList.from_dict(payload)


def decode_lists(payload: Any) -> list[ContactList]:
    """Decode a list listing, which is a bare JSON array."""
    if not isinstance(payload, list):
        raise TypeError(f"list listing must be an array, got {type(payload).__name__}")
    return [ContactList.from_dict(item) for item in payload]


class ListService:
    """List related methods of the API."""

    def __init__(self, client: ConstantContactClient):
        self.client = client

    def get_all(
        self, cancel_event: Optional[threading.Event] = None
    ) -> tuple[list[ContactList], APIResponse]:
        """Fetch every contact list."""
        try:
            request = self.client.build_request("GET", LISTS_PATH)
            lists, response = self.client.execute(request, decode_lists, cancel_event)
        except ConstantContactError as e:
            raise ServiceError("could not get lists", e) from e
        return lists or [], response

    def create(
        self, contact_list: ContactList, cancel_event: Optional[threading.Event] = None
    ) -> tuple[ContactList, APIResponse]:
        """Create a contact list."""
        try:
            request = self.client.build_request(
                "POST", LISTS_PATH, contact_list.to_dict()
            )
            created, response = self.client.execute(
                request, decode_list, cancel_event
            )
        except ConstantContactError as e:
            raise ServiceError(f"could not create list {contact_list.name!r}", e) from e

        if created is None:
            created = ContactList()
        logger.debug(f"Created list {created.id} ({contact_list.name})")
        return created, response

    def delete(
        self, list_id: str, cancel_event: Optional[threading.Event] = None
    ) -> APIResponse:
        """
        Delete a contact list.

        The API answers with an empty body; any non-error status is success.
        """
        try:
            request = self.client.build_request("DELETE", f"{LISTS_PATH}/{list_id}")
            _, response = self.client.execute(request, None, cancel_event)
        except ConstantContactError as e:
            raise ServiceError(f"could not delete list {list_id}", e) from e

        logger.info(f"Deleted list {list_id}")
        return response
