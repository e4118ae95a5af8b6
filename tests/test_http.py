"""Tests for the HTTP helpers in src.shared.http."""

import logging
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import pytest
import requests

from src.shared.http import (
    FetchCancelled,
    FetchError,
    fetch_html,
    fetch_json,
    get_headers,
    head_ok,
    parse_retry_after,
    post_form,
    post_json,
    sanitize_url,
)
from src.shared.retry import is_retriable


class TestSanitizeUrl:
    """Query strings carry provider tokens and must never reach the logs."""

    def test_query_is_redacted(self):
        url = "https://api.example.com/v1/stores?key=secret&nonce=abc"
        assert sanitize_url(url) == "https://api.example.com/v1/stores?[REDACTED]"

    def test_url_without_query_is_unchanged(self):
        assert sanitize_url("https://example.com/pages/store-locator") == \
            "https://example.com/pages/store-locator"


class TestGetHeaders:

    def test_default_user_agent(self):
        headers = get_headers()
        assert "StoreLocatorCollector" in headers["User-Agent"]
        assert "Referer" not in headers

    def test_custom_user_agent_and_referer(self):
        headers = get_headers("TestAgent/2.0", referer="https://brand.example.com/")
        assert headers["User-Agent"] == "TestAgent/2.0"
        assert headers["Referer"] == "https://brand.example.com/"


class TestParseRetryAfter:

    def test_seconds(self):
        assert parse_retry_after("3") == 3.0

    def test_negative_is_clamped(self):
        assert parse_retry_after("-5") == 0.0

    def test_missing_or_garbage(self):
        assert parse_retry_after(None) is None
        assert parse_retry_after("") is None
        assert parse_retry_after("soon") is None

    def test_http_date(self):
        when = datetime.now(timezone.utc) + timedelta(seconds=30)
        seconds = parse_retry_after(format_datetime(when, usegmt=True))
        assert 20 <= seconds <= 31


class TestFetchHelpers:
    """Status and transport failures are all reported as FetchError."""

    def test_fetch_html_returns_body(self, mock_session, mock_response_factory):
        mock_session.queue(mock_response_factory(text="<html>ok</html>"))
        assert fetch_html(mock_session, "https://example.com/") == "<html>ok</html>"

        method, url = mock_session.request.call_args[0]
        kwargs = mock_session.request.call_args[1]
        assert method == "GET"
        assert url == "https://example.com/"
        assert kwargs["timeout"] == 30

    def test_fetch_html_non_2xx(self, mock_session, mock_response_factory):
        mock_session.queue(mock_response_factory(status_code=404, text="Not Found"))
        with pytest.raises(FetchError) as exc_info:
            fetch_html(mock_session, "https://example.com/missing", timeout=5)
        assert exc_info.value.status == 404
        assert exc_info.value.kind == 'http'
        assert "Not Found" in str(exc_info.value)

    def test_429_carries_retry_after(self, mock_session, mock_response_factory):
        mock_session.queue(mock_response_factory(status_code=429, headers={"Retry-After": "7"}))
        with pytest.raises(FetchError) as exc_info:
            fetch_json(mock_session, "https://api.example.com/stores")
        assert exc_info.value.status == 429
        assert exc_info.value.retry_after == 7.0

    def test_timeout_kind(self, mock_session):
        mock_session.queue(requests.exceptions.Timeout("read timed out"))
        with pytest.raises(FetchError) as exc_info:
            fetch_html(mock_session, "https://example.com/")
        assert exc_info.value.kind == 'timeout'
        assert exc_info.value.status is None

    def test_connection_kind(self, mock_session):
        mock_session.queue(requests.exceptions.ConnectionError("refused"))
        with pytest.raises(FetchError) as exc_info:
            fetch_html(mock_session, "https://example.com/")
        assert exc_info.value.kind == 'connection'

    def test_broken_stream_is_connection_kind(self, mock_session):
        mock_session.queue(requests.exceptions.ChunkedEncodingError("connection broken"))
        with pytest.raises(FetchError) as exc_info:
            fetch_html(mock_session, "https://example.com/")
        assert exc_info.value.kind == 'connection'

    @pytest.mark.parametrize("error", [
        requests.exceptions.InvalidURL("bad host"),
        requests.exceptions.MissingSchema("no scheme"),
        requests.exceptions.InvalidSchema("ftp"),
        requests.exceptions.TooManyRedirects("loop"),
    ])
    def test_hopeless_requests_are_request_kind(self, mock_session, error):
        mock_session.queue(error)
        with pytest.raises(FetchError) as exc_info:
            fetch_html(mock_session, "https://example.com/")
        assert exc_info.value.kind == 'request'
        assert not is_retriable(exc_info.value)

    def test_error_message_does_not_leak_query(self, mock_session, mock_response_factory):
        mock_session.queue(mock_response_factory(status_code=500))
        with pytest.raises(FetchError) as exc_info:
            fetch_json(mock_session, "https://api.example.com/stores?token=hunter2")
        assert "hunter2" not in str(exc_info.value)

    def test_malformed_json_is_decode_error(self, mock_session, mock_response_factory):
        mock_session.queue(mock_response_factory(text="<html>oops</html>"))
        with pytest.raises(FetchError) as exc_info:
            fetch_json(mock_session, "https://api.example.com/stores")
        assert exc_info.value.kind == 'decode'

    def test_post_json_sends_encoded_body(self, mock_session, mock_response_factory):
        mock_session.queue(mock_response_factory(json_data={"ok": True}))
        result = post_json(mock_session, "https://api.example.com/search", {"lat": 1.5})

        assert result == {"ok": True}
        kwargs = mock_session.request.call_args[1]
        assert kwargs["data"] == '{"lat": 1.5}'
        assert kwargs["headers"]["Content-Type"] == "application/json"

    def test_post_form_returns_text(self, mock_session, mock_response_factory):
        mock_session.queue(mock_response_factory(text="<div>results</div>"))
        body = post_form(mock_session, "https://example.com/search", {"zip": "28202"})
        assert body == "<div>results</div>"
        assert mock_session.request.call_args[0][0] == "POST"
        assert mock_session.request.call_args[1]["data"] == {"zip": "28202"}


class TestHeadOk:

    def test_2xx_is_true(self, mock_session, mock_response_factory):
        mock_session.queue(mock_response_factory(status_code=200))
        assert head_ok(mock_session, "https://example.com/stores") is True
        assert mock_session.request.call_args[1]["allow_redirects"] is True

    def test_failure_is_false_and_logged(self, mock_session, mock_response_factory, caplog):
        mock_session.queue(mock_response_factory(status_code=404))
        with caplog.at_level(logging.DEBUG):
            assert head_ok(mock_session, "https://example.com/stores") is False
        assert any("HEAD" in record.message for record in caplog.records)


def test_fetch_cancelled_is_a_fetch_error():
    error = FetchCancelled()
    assert isinstance(error, FetchError)
    assert error.kind == 'cancelled'
