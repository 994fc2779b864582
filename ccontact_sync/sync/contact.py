"""
Contact data model for Constant Contact synchronization.

Provides Contact and its nested value types with methods for:
- Converting to/from the Constant Contact v2 wire format
- Identifying a contact by its primary email address
- Deriving a copy moved onto a list
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Optional

# Constant Contact allows at most 15 custom fields per contact
MAX_CUSTOM_FIELDS = 15

# Membership status values used by the API
STATUS_ACTIVE = "ACTIVE"
STATUS_REMOVED = "REMOVED"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an API timestamp such as "2013-08-21T19:39:42.000Z".

    Returns None for missing values.

    Raises:
        ValueError: If the value is present but not a valid timestamp
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValueError(f"invalid timestamp: {value!r}")
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Format a timestamp for the API, or None if unset."""
    if value is None:
        return None
    return value.isoformat()


def _compact(data: dict[str, Any]) -> dict[str, Any]:
    """Drop unset values (None and empty lists) from a wire dictionary."""
    return {k: v for k, v in data.items() if v is not None and v != []}


def _require_mapping(data: Any, kind: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise TypeError(f"{kind} must be a JSON object, got {type(data).__name__}")
    return data


@dataclass
class EmailAddress:
    """An email address entry of a contact."""

    email_address: str
    id: Optional[str] = None
    confirm_status: Optional[str] = None
    status: Optional[str] = None
    opt_in_date: Optional[datetime] = None
    opt_in_source: Optional[str] = None
    opt_out_date: Optional[datetime] = None
    opt_out_source: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EmailAddress:
        data = _require_mapping(data, "email address")
        return cls(
            email_address=data.get("email_address", ""),
            id=data.get("id"),
            confirm_status=data.get("confirm_status"),
            status=data.get("status"),
            opt_in_date=parse_timestamp(data.get("opt_in_date")),
            opt_in_source=data.get("opt_in_source"),
            opt_out_date=parse_timestamp(data.get("opt_out_date")),
            opt_out_source=data.get("opt_out_source"),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "id": self.id,
                "email_address": self.email_address,
                "confirm_status": self.confirm_status,
                "status": self.status,
                "opt_in_date": format_timestamp(self.opt_in_date),
                "opt_in_source": self.opt_in_source,
                "opt_out_date": format_timestamp(self.opt_out_date),
                "opt_out_source": self.opt_out_source,
            }
        )


@dataclass
class Address:
    """A postal address of a contact."""

    id: Optional[str] = None
    address_type: Optional[str] = None
    line1: Optional[str] = None
    line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    state_code: Optional[str] = None
    postal_code: Optional[str] = None
    sub_postal_code: Optional[str] = None
    country_code: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Address:
        data = _require_mapping(data, "address")
        return cls(
            id=data.get("id"),
            address_type=data.get("address_type"),
            line1=data.get("line1"),
            line2=data.get("line2"),
            city=data.get("city"),
            state=data.get("state"),
            state_code=data.get("state_code"),
            postal_code=data.get("postal_code"),
            sub_postal_code=data.get("sub_postal_code"),
            country_code=data.get("country_code"),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "id": self.id,
                "address_type": self.address_type,
                "line1": self.line1,
                "line2": self.line2,
                "city": self.city,
                "state": self.state,
                "state_code": self.state_code,
                "postal_code": self.postal_code,
                "sub_postal_code": self.sub_postal_code,
                "country_code": self.country_code,
            }
        )


@dataclass
class CustomField:
    """A custom field (``CustomField1`` .. ``CustomField15``) of a contact."""

    name: Optional[str] = None
    label: Optional[str] = None
    value: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CustomField:
        data = _require_mapping(data, "custom field")
        return cls(
            name=data.get("name"), label=data.get("label"), value=data.get("value")
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact({"name": self.name, "label": self.label, "value": self.value})


@dataclass
class ListMembership:
    """Membership of a contact in a list."""

    id: str
    status: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ListMembership:
        data = _require_mapping(data, "list membership")
        return cls(id=str(data["id"]), status=data.get("status"))

    def to_dict(self) -> dict[str, Any]:
        return _compact({"id": self.id, "status": self.status})


@dataclass
class Contact:
    """
    A Constant Contact contact.

    The remote ``id`` is assigned by the server on create. For
    reconciliation a contact is identified by its primary email, the
    address of its first email entry, not by ``id``.

    Usage:
        # Decode from an API response
        contact = Contact.from_dict(api_response)

        # Identity used as the cache key
        key = contact.primary_email

        # Derived copy with a list membership, original unchanged
        registered = contact.with_list_membership("1756200534")

        # Encode for create/update
        payload = contact.to_dict()
    """

    id: Optional[str] = None
    email_addresses: list[EmailAddress] = field(default_factory=list)

    prefix_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    job_title: Optional[str] = None
    company_name: Optional[str] = None

    home_phone: Optional[str] = None
    work_phone: Optional[str] = None
    cell_phone: Optional[str] = None
    fax: Optional[str] = None

    addresses: list[Address] = field(default_factory=list)
    custom_fields: list[CustomField] = field(default_factory=list)
    lists: list[ListMembership] = field(default_factory=list)

    created_date: Optional[datetime] = None
    modified_date: Optional[datetime] = None
    confirmed: Optional[bool] = None
    status: Optional[str] = None
    source: Optional[str] = None
    source_details: Optional[str] = None

    def __post_init__(self) -> None:
        if len(self.custom_fields) > MAX_CUSTOM_FIELDS:
            raise ValueError(
                f"a contact may have at most {MAX_CUSTOM_FIELDS} custom fields, "
                f"got {len(self.custom_fields)}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Contact:
        """
        Create a Contact from an API response or a cache entry.

        Example API response structure::

            {
                'id': '1',
                'status': 'ACTIVE',
                'first_name': 'Jane',
                'email_addresses': [{'email_address': 'jane@example.com'}],
                'lists': [{'id': '1756200534', 'status': 'ACTIVE'}],
                'created_date': '2013-08-21T19:39:42.000Z'
            }

        Raises:
            TypeError, KeyError, ValueError: If data does not have the shape
                of a contact
        """
        data = _require_mapping(data, "contact")
        contact_id = data.get("id")
        return cls(
            id=str(contact_id) if contact_id is not None else None,
            email_addresses=[
                EmailAddress.from_dict(e) for e in data.get("email_addresses") or []
            ],
            prefix_name=data.get("prefix_name"),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            job_title=data.get("job_title"),
            company_name=data.get("company_name"),
            home_phone=data.get("home_phone"),
            work_phone=data.get("work_phone"),
            cell_phone=data.get("cell_phone"),
            fax=data.get("fax"),
            addresses=[Address.from_dict(a) for a in data.get("addresses") or []],
            custom_fields=[
                CustomField.from_dict(c) for c in data.get("custom_fields") or []
            ],
            lists=[ListMembership.from_dict(m) for m in data.get("lists") or []],
            created_date=parse_timestamp(data.get("created_date")),
            modified_date=parse_timestamp(data.get("modified_date")),
            confirmed=data.get("confirmed"),
            status=data.get("status"),
            source=data.get("source"),
            source_details=data.get("source_details"),
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the Contact to the API wire format.

        Unset fields are left out, so a value that was absent when decoded
        is still absent after a round trip.
        """
        return _compact(
            {
                "id": self.id,
                "status": self.status,
                "email_addresses": [e.to_dict() for e in self.email_addresses],
                "prefix_name": self.prefix_name,
                "first_name": self.first_name,
                "last_name": self.last_name,
                "job_title": self.job_title,
                "company_name": self.company_name,
                "home_phone": self.home_phone,
                "work_phone": self.work_phone,
                "cell_phone": self.cell_phone,
                "fax": self.fax,
                "addresses": [a.to_dict() for a in self.addresses],
                "custom_fields": [c.to_dict() for c in self.custom_fields],
                "lists": [m.to_dict() for m in self.lists],
                "created_date": format_timestamp(self.created_date),
                "modified_date": format_timestamp(self.modified_date),
                "confirmed": self.confirmed,
                "source": self.source,
                "source_details": self.source_details,
            }
        )

    @property
    def primary_email(self) -> Optional[str]:
        """Address of the first email entry, or None if there is none."""
        if not self.email_addresses:
            return None
        return self.email_addresses[0].email_address or None

    def is_indexable(self) -> bool:
        """True if the contact can be keyed in the local cache."""
        return self.primary_email is not None

    def in_list(self, list_id: str) -> bool:
        """True if the contact has a membership for list_id."""
        return any(m.id == list_id for m in self.lists)

    def with_list_membership(
        self,
        list_id: str,
        status: str = STATUS_ACTIVE,
        removed_from: Iterable[str] = (),
    ) -> Contact:
        """
        Return a copy of this contact that is a member of list_id.

        An existing membership for the list gets the new status, otherwise one
        is appended. Memberships of the lists in removed_from are marked
        REMOVED; other memberships are kept. This contact is not modified.
        """
        removed = set(removed_from) - {list_id}
        memberships = []
        for m in self.lists:
            if m.id == list_id:
                memberships.append(ListMembership(id=m.id, status=status))
            elif m.id in removed:
                memberships.append(ListMembership(id=m.id, status=STATUS_REMOVED))
            else:
                memberships.append(ListMembership(id=m.id, status=m.status))
        if not self.in_list(list_id):
            memberships.append(ListMembership(id=list_id, status=status))
        return replace(self, lists=memberships)

    @property
    def display_name(self) -> str:
        """First and last name joined, or the primary email."""
        parts = [p for p in (self.first_name, self.last_name) if p]
        if parts:
            return " ".join(parts)
        return self.primary_email or ""

    def __repr__(self) -> str:
        """Return a readable string representation."""
        return (
            f"Contact(id={self.id!r}, "
            f"primary_email={self.primary_email!r}, "
            f"name={self.display_name!r})"
        )


@dataclass
class ContactList:
    """
    A Constant Contact mailing list.

    Attributes:
        id: Remote list ID
        name: List name
        status: ACTIVE, HIDDEN, ...
        contact_count: Number of contacts in the list
    """

    id: Optional[str] = None
    name: Optional[str] = None
    status: Optional[str] = None
    contact_count: Optional[int] = None
    created_date: Optional[datetime] = None
    modified_date: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContactList:
        data = _require_mapping(data, "list")
        list_id = data.get("id")
        return cls(
            id=str(list_id) if list_id is not None else None,
            name=data.get("name"),
            status=data.get("status"),
            contact_count=data.get("contact_count"),
            created_date=parse_timestamp(data.get("created_date")),
            modified_date=parse_timestamp(data.get("modified_date")),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "id": self.id,
                "name": self.name,
                "status": self.status,
                "contact_count": self.contact_count,
                "created_date": format_timestamp(self.created_date),
                "modified_date": format_timestamp(self.modified_date),
            }
        )


@dataclass
class BulkImport:
    """
    Request body for the bulk "add contacts" activity.

    Attributes:
        import_data: One dictionary per contact, e.g.
            ``{"email_addresses": ["jane@example.com"]}``
        column_names: Columns present in import_data, e.g. ``["Email Address"]``
        lists: IDs of the lists the contacts are added to
    """

    import_data: list[dict[str, Any]] = field(default_factory=list)
    column_names: list[str] = field(default_factory=list)
    lists: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "import_data": list(self.import_data),
                "column_names": list(self.column_names),
                "lists": list(self.lists),
            }
        )


@dataclass
class ImportResponse:
    """Acknowledgment of a bulk import job; the job runs asynchronously."""

    id: Optional[str] = None
    type: Optional[str] = None
    error_count: int = 0
    contact_count: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ImportResponse:
        data = _require_mapping(data, "import response")
        return cls(
            id=data.get("id"),
            type=data.get("type"),
            error_count=int(data.get("error_count") or 0),
            contact_count=int(data.get("contact_count") or 0),
        )
