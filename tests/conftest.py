"""Pytest configuration and fixtures for locator and pipeline tests"""

import sys
import threading
from pathlib import Path
from typing import Any, Optional

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from unittest.mock import Mock

from src.locator.types import FetchContext, RawLocation
from src.persistence import AuditStore, Database, LocationStore
from src.shared.concurrency import GateRegistry


@pytest.fixture
def mock_response_factory():
    """Factory for creating mock HTTP responses with various scenarios.

    Usage:
        response = mock_response_factory(status_code=200, json_data={"key": "value"})
        response = mock_response_factory(status_code=404, text="Not Found")
        response = mock_response_factory(status_code=429, headers={"Retry-After": "3"})
    """
    def _create_response(
        status_code: int = 200,
        text: str = "",
        json_data: Optional[Any] = None,
        headers: Optional[dict] = None,
    ):
        response = Mock()
        response.status_code = status_code
        response.text = text
        response.headers = headers or {}
        response.content = text.encode('utf-8') if text else b''

        if json_data is not None:
            response.json.return_value = json_data
        else:
            response.json.side_effect = ValueError("No JSON data")
        return response

    return _create_response


@pytest.fixture
def mock_session(mock_response_factory):
    """A requests.Session stand-in whose request() returns queued responses.

    Usage:
        mock_session.queue(mock_response_factory(json_data={...}))
    """
    session = Mock()
    session.headers = {}
    responses = []

    def _request(method, url, **kwargs):
        if not responses:
            raise AssertionError(f"Unexpected {method} {url}")
        response = responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    session.request.side_effect = _request
    session.queue = lambda *items: responses.extend(items)
    return session


@pytest.fixture
def zero_gates():
    """Gate registry whose provider gates never wait."""
    gates = GateRegistry(default_gap=0.0)
    for name in ('vtinfo', 'askhoodie', 'destini'):
        gates.get(name, min_gap=0.0)
    return gates


@pytest.fixture
def fetch_ctx(mock_session, zero_gates):
    """FetchContext over the mock session, with no retries and zero-gap gates."""
    return FetchContext(
        session=mock_session,
        timeout=5,
        locator_url="https://brand.example.com/pages/store-locator",
        gates=zero_gates,
        cancel_event=threading.Event(),
        label="[test-brand]",
        max_attempts=1,
    )


@pytest.fixture
def make_location():
    """Factory for RawLocation records with sensible defaults."""
    def _make(name="Test Store", source="locally", **fields):
        return RawLocation(name=name, locator_source=source, **fields)
    return _make


@pytest.fixture
def database():
    db = Database(":memory:")
    yield db
    db.close()


@pytest.fixture
def location_store(database):
    return LocationStore(database)


@pytest.fixture
def audit_store(database):
    return AuditStore(database)
