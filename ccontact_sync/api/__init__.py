"""
ccontact_sync.api - Constant Contact v2 API client

Transport client, resource services and the error hierarchy they raise.
"""

from ccontact_sync.api.client import (
    DEFAULT_BASE_URL,
    USER_AGENT,
    APIResponse,
    ClientConfig,
    ConstantContactClient,
)
from ccontact_sync.api.contacts import ContactService
from ccontact_sync.api.errors import (
    APIError,
    ConfigurationError,
    ConstantContactError,
    DecodeError,
    EncodingError,
    RequestCancelled,
    ServiceError,
    TransportError,
    URLError,
)
from ccontact_sync.api.lists import ListService

__all__ = [
    "DEFAULT_BASE_URL",
    "USER_AGENT",
    "APIError",
    "APIResponse",
    "ClientConfig",
    "ConfigurationError",
    "ConstantContactClient",
    "ConstantContactError",
    "ContactService",
    "DecodeError",
    "EncodingError",
    "ListService",
    "RequestCancelled",
    "ServiceError",
    "TransportError",
    "URLError",
]
