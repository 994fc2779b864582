"""
Transport client for the Constant Contact v2 API.

Provides:
- Authenticated request building against a versioned base URL
- Request execution with caller-supplied cancellation
- Pagination cursor extraction from the response envelope
- Call-site specific payload decoding
"""

import json
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Optional, TypeVar
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

import requests
from requests.structures import CaseInsensitiveDict

from ccontact_sync.api.errors import (
    APIError,
    ConfigurationError,
    DecodeError,
    EncodingError,
    RequestCancelled,
    TransportError,
    URLError,
)
from ccontact_sync.utils.logging import redact_secrets

API_VERSION = "v2"
DEFAULT_BASE_URL = f"https://api.constantcontact.com/{API_VERSION}/"
USER_AGENT = f"ccontact-sync/{API_VERSION}"

# Seconds to wait for the server before giving up on a call
DEFAULT_TIMEOUT = 30.0

API_KEY_PARAM = "api_key"

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass
class ClientConfig:
    """
    Explicit configuration for ConstantContactClient.

    Attributes:
        api_key: Application key sent as a query parameter on every request
        access_token: Bearer token for the Authorization header
        base_url: Versioned API root; must end with "/"
        user_agent: User-Agent header value
        timeout: Per-request timeout in seconds
    """

    api_key: str
    access_token: str
    base_url: str = DEFAULT_BASE_URL
    user_agent: str = USER_AGENT
    timeout: float = DEFAULT_TIMEOUT

    def __repr__(self) -> str:
        """Return a representation that does not leak credentials."""
        return (
            f"ClientConfig(base_url={self.base_url!r}, "
            f"user_agent={self.user_agent!r}, timeout={self.timeout!r})"
        )


@dataclass
class APIResponse:
    """
    An HTTP response with the pagination cursor extracted.

    Attributes:
        status_code: HTTP status code
        next_link: Cursor for the next page, "" on the last page
        headers: Response headers (case-insensitive)
        raw: The underlying requests.Response
    """

    status_code: int
    next_link: str = ""
    headers: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)
    raw: Optional[requests.Response] = field(default=None, repr=False)

    @property
    def has_next(self) -> bool:
        """True if another page follows this one."""
        return bool(self.next_link)


def extract_next_link(body: bytes) -> str:
    """
    Read ``meta.pagination.next_link`` from a response body.

    Any problem (not JSON, not an object, missing keys, wrong types) means
    there is no next page; it never raises.
    """
    try:
        envelope = json.loads(body)
        next_link = envelope["meta"]["pagination"]["next_link"]
    except (ValueError, KeyError, TypeError, IndexError):
        return ""
    if not isinstance(next_link, str):
        return ""
    return next_link


class ConstantContactClient:
    """
    Manages communication with the Constant Contact API.

    Holds one requests.Session, which is the connection pool shared by every
    call made through this client and its services.

    Attributes:
        config: ClientConfig with credentials and base URL
        session: requests.Session used to send requests
        contacts: ContactService bound to this client
        lists: ListService bound to this client

    Usage:
        client = ConstantContactClient(ClientConfig(api_key, access_token))

        contacts, response = client.contacts.get_all()
        while response.next_link:
            page, response = client.contacts.get_page(response.next_link)
    """

    def __init__(
        self, config: ClientConfig, session: Optional[requests.Session] = None
    ):
        # Imported here to avoid a circular import with the service modules
        from ccontact_sync.api.contacts import ContactService
        from ccontact_sync.api.lists import ListService

        self.config = config
        self.session = session if session is not None else requests.Session()
        self.contacts = ContactService(self)
        self.lists = ListService(self)

    def build_request(
        self, method: str, path: str, body: Any = None
    ) -> requests.PreparedRequest:
        """
        Create an authenticated API request.

        Args:
            method: HTTP method
            path: Path relative to the base URL (no leading slash), or a
                cursor returned by a previous response
            body: JSON-serializable payload, or None for no body

        Returns:
            A prepared request ready for execute()

        Raises:
            ConfigurationError: If the base URL does not end with "/"
            URLError: If path cannot be resolved against the base URL
            EncodingError: If body cannot be serialized
        """
        base_url = self.config.base_url
        if not urlsplit(base_url).path.endswith("/"):
            raise ConfigurationError(
                f"base URL must have a trailing slash, but {base_url!r} does not"
            )

        try:
            url = urljoin(base_url, path)
            parts = urlsplit(url)
        except ValueError as e:
            raise URLError(f"could not resolve {path!r} against {base_url}") from e

        query = [
            (k, v)
            for k, v in parse_qsl(parts.query, keep_blank_values=True)
            if k != API_KEY_PARAM
        ]
        query.append((API_KEY_PARAM, self.config.api_key))
        url = urlunsplit(parts._replace(query=urlencode(query)))

        headers = {
            "Authorization": f"Bearer {self.config.access_token}",
            "User-Agent": self.config.user_agent,
        }

        data = None
        if body is not None:
            try:
                data = json.dumps(body, ensure_ascii=False).encode("utf-8")
            except (TypeError, ValueError) as e:
                raise EncodingError(f"could not encode request body: {e}") from e
            headers["Content-Type"] = "application/json"

        request = requests.Request(method, url, headers=headers, data=data)
        return self.session.prepare_request(request)

    def execute(
        self,
        request: requests.PreparedRequest,
        decode: Optional[Callable[[Any], T]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> tuple[Optional[T], APIResponse]:
        """
        Send a request and decode its payload.

        Args:
            request: Request from build_request()
            decode: Converts the parsed JSON payload into the call site's
                type. If None, the payload is not decoded.
            cancel_event: Aborts the call when set; checked before sending and
                again once the send finishes or fails

        Returns:
            Tuple of (decoded value or None for an empty body, APIResponse)

        Raises:
            RequestCancelled: If cancel_event was set
            APIError: If the server answered with status >= 400
            TransportError: If the request could not be completed
            DecodeError: If the payload does not match the expected shape
        """
        if cancel_event is not None and cancel_event.is_set():
            raise RequestCancelled(f"{request.method} {_redact(request.url)} cancelled")

        logger.debug(f"{request.method} {_redact(request.url)}")

        try:
            raw = self.session.send(request, timeout=self.config.timeout)
            # Buffer the whole body so it can be read for the envelope and
            # for the payload
            body = raw.content
        except requests.RequestException as e:
            if cancel_event is not None and cancel_event.is_set():
                raise RequestCancelled(
                    f"{request.method} {_redact(request.url)} cancelled"
                ) from e
            raise TransportError(
                f"{request.method} {_redact(request.url)} failed: "
                f"{redact_secrets(str(e))}"
            ) from e

        if cancel_event is not None and cancel_event.is_set():
            raise RequestCancelled(f"{request.method} {_redact(request.url)} cancelled")

        response = APIResponse(
            status_code=raw.status_code,
            next_link=extract_next_link(body),
            headers=raw.headers,
            raw=raw,
        )

        if raw.status_code >= 400:
            text = body.decode("utf-8", errors="replace")
            logger.debug(f"HTTP {raw.status_code} from {_redact(request.url)}: {text}")
            raise APIError(raw.status_code, text)

        # Some endpoints answer success with an empty body
        if not body.strip():
            return None, response

        try:
            payload = json.loads(body)
        except ValueError as e:
            raise DecodeError(f"response is not valid JSON: {e}") from e

        if decode is None:
            return None, response

        try:
            value = decode(payload)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise DecodeError(f"unexpected response shape: {e}") from e

        return value, response

    def __repr__(self) -> str:
        """Return a readable string representation."""
        return f"ConstantContactClient(base_url={self.config.base_url!r})"


def _redact(url: Optional[str]) -> str:
    """Strip the query string (which carries the API key) for logging."""
    if not url:
        return ""
    return urlunsplit(urlsplit(url)._replace(query=""))
