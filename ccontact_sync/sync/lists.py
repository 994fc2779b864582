"""
List maintenance that respects the reserved lists.

The registered and unregistered lists are used by every sync and are never
removed by bulk cleanup.
"""

import logging
import threading
from collections.abc import Collection, Iterable
from typing import Optional

from ccontact_sync.api.client import ConstantContactClient
from ccontact_sync.sync.contact import ContactList

logger = logging.getLogger(__name__)


def removable_lists(
    lists: Iterable[ContactList], reserved: Collection[str]
) -> list[ContactList]:
    """Return the lists with an id that is not reserved, in their original order."""
    return [lst for lst in lists if lst.id and lst.id not in reserved]


def prune_lists(
    client: ConstantContactClient,
    reserved: Collection[str],
    dry_run: bool = True,
    cancel_event: Optional[threading.Event] = None,
) -> list[ContactList]:
    """
    Delete every list that is not reserved.

    Args:
        client: API client
        reserved: List IDs that must be kept
        dry_run: If True, only report what would be deleted
        cancel_event: Aborts the current call when set

    Returns:
        The lists that were (or, in a dry run, would be) deleted

    Raises:
        ServiceError: If fetching or deleting a list fails; lists deleted
            before the failure stay deleted
    """
    lists, _ = client.lists.get_all(cancel_event)
    targets = removable_lists(lists, reserved)

    for lst in targets:
        if dry_run:
            logger.info(f"Would delete list {lst.name} [{lst.id}]")
            continue
        client.lists.delete(str(lst.id), cancel_event)

    return targets
