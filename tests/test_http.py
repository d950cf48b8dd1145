"""
Tests for the timeout-bounded fetch and session factory.
"""
from unittest.mock import MagicMock

import pytest
import requests

from predictos_sdk.gateway.exceptions import GatewayTimeoutError
from predictos_sdk.gateway.http import create_session, fetch_with_timeout
from predictos_sdk.version import __version__

URL = "https://api.example.com/v1/responses"


def test_returns_response_for_any_status(requests_mock):
    requests_mock.post(URL, status_code=500, text="upstream down")
    session = create_session()

    response = fetch_with_timeout(session, "POST", URL, timeout_ms=5000, json={"a": 1})

    assert response.status_code == 500
    assert response.text == "upstream down"
    assert requests_mock.last_request.json() == {"a": 1}


def test_timeout_becomes_gateway_timeout(requests_mock):
    requests_mock.post(URL, exc=requests.exceptions.ReadTimeout("read timed out"))

    with pytest.raises(GatewayTimeoutError) as exc_info:
        fetch_with_timeout(create_session(), "POST", URL, timeout_ms=2500)

    assert exc_info.value.timeout_ms == 2500
    assert str(exc_info.value) == "Request timeout after 2500ms"


def test_connect_timeout_is_a_timeout(requests_mock):
    requests_mock.get(URL, exc=requests.exceptions.ConnectTimeout("connect timed out"))

    with pytest.raises(GatewayTimeoutError):
        fetch_with_timeout(create_session(), "GET", URL)


def test_connection_errors_propagate_unchanged(requests_mock):
    requests_mock.post(URL, exc=requests.exceptions.ConnectionError("refused"))

    with pytest.raises(requests.exceptions.ConnectionError):
        fetch_with_timeout(create_session(), "POST", URL)


def test_timeout_passed_in_seconds():
    session = MagicMock()

    fetch_with_timeout(session, "POST", URL, timeout_ms=1500, json={})

    session.request.assert_called_once_with("POST", URL, timeout=1.5, json={})


class TestCreateSession:

    def test_user_agent(self):
        session = create_session()
        assert session.headers["User-Agent"] == f"predictos-sdk/{__version__}"

    def test_provider_session_never_retries(self):
        adapter = create_session().get_adapter("https://blockrun.ai")
        assert adapter.max_retries.total == 0

    def test_market_data_session_retries_gets(self):
        adapter = create_session(retries=2).get_adapter("https://gamma-api.polymarket.com")
        retry = adapter.max_retries
        assert retry.total == 2
        assert 503 in retry.status_forcelist
        assert "GET" in retry.allowed_methods
        assert "POST" not in retry.allowed_methods
