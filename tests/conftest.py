"""Shared fixtures for the ccontact_sync tests."""

import json
import logging
from typing import Any, Optional
from unittest.mock import MagicMock

import pytest
import requests

from ccontact_sync.api.client import ClientConfig, ConstantContactClient


def make_response(
    status_code: int = 200,
    payload: Any = None,
    body: Optional[bytes] = None,
    headers: Optional[dict[str, str]] = None,
) -> requests.Response:
    """Build a requests.Response with a JSON payload or a raw body."""
    response = requests.Response()
    response.status_code = status_code
    if body is None:
        body = b"" if payload is None else json.dumps(payload).encode("utf-8")
    response._content = body
    response.headers.update(headers or {"Content-Type": "application/json"})
    return response


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo setup_logging() so caplog sees package records in every test."""
    yield
    logger = logging.getLogger("ccontact_sync")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def config():
    """Client configuration with test credentials."""
    return ClientConfig(api_key="test-key", access_token="test-token")


@pytest.fixture
def session():
    """A real session whose send() is mocked."""
    session = requests.Session()
    session.send = MagicMock(return_value=make_response(payload={}))
    return session


@pytest.fixture
def client(config, session):
    """Client that sends through the mocked session."""
    return ConstantContactClient(config, session=session)
