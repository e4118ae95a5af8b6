"""HTTP utility functions for locator pages and provider APIs.

This module is the single place where requests are issued. Every helper is
timeout-bound, sends the configured user agent, treats any non-2xx status
as a FetchError and has no retry logic of its own (see src.shared.retry).
"""

import json
import logging
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Optional, Union
from urllib.parse import urlparse

import requests

from src.shared.constants import HTTP

__all__ = [
    'FetchCancelled',
    'FetchError',
    'create_session',
    'fetch_html',
    'fetch_json',
    'get_headers',
    'head_ok',
    'log_safe',
    'parse_retry_after',
    'post_form',
    'post_json',
    'sanitize_url',
]


class FetchError(Exception):
    """A network or HTTP failure while fetching a URL.

    Attributes:
        url: Requested URL (log it through sanitize_url)
        status: HTTP status code, None for network-level failures
        retry_after: Seconds requested by a Retry-After header, if any
        kind: One of 'timeout', 'connection', 'request', 'http', 'decode',
            'cancelled'
    """

    def __init__(
        self,
        url: str,
        message: str,
        status: Optional[int] = None,
        retry_after: Optional[float] = None,
        kind: str = 'http',
    ):
        super().__init__(message)
        self.url = url
        self.status = status
        self.retry_after = retry_after
        self.kind = kind


class FetchCancelled(FetchError):
    """Raised when a cancellation token fires before or during a fetch."""

    def __init__(self, url: str = '', message: str = 'fetch cancelled'):
        super().__init__(url, message, kind='cancelled')


def sanitize_url(url: str) -> str:
    """Redact query parameters from URL for safe logging.

    Provider tokens, nonces and CSRF values travel in query strings, so the
    sanitized URL keeps scheme, host and path only.

    Args:
        url: URL to sanitize

    Returns:
        Sanitized URL with query parameters redacted
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return "[INVALID_URL]"
    safe_url = f"{parsed.scheme}://{parsed.netloc}{parsed.path}"
    if parsed.query:
        safe_url += "?[REDACTED]"
    return safe_url


def log_safe(message: str, *args, level: int = logging.INFO, **kwargs) -> None:
    """Log a message that has been pre-sanitized for sensitive data.

    Args:
        message: Pre-sanitized log message
        *args: Additional arguments for logging
        level: Logging level (default: INFO)
        **kwargs: Additional keyword arguments for logging
    """
    safe_message = str(message)
    logging.log(level, safe_message, *args, **kwargs)


def get_headers(
    user_agent: Optional[str] = None,
    accept: str = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    referer: Optional[str] = None,
) -> Dict[str, str]:
    """Build request headers.

    Args:
        user_agent: User agent string (HTTP.USER_AGENT if not provided)
        accept: Accept header value
        referer: Optional Referer header

    Returns:
        Dictionary of HTTP headers
    """
    headers = {
        "User-Agent": user_agent or HTTP.USER_AGENT,
        "Accept": accept,
        "Accept-Language": "en-US,en;q=0.5",
    }
    if referer:
        headers["Referer"] = referer
    return headers


def create_session() -> requests.Session:
    """Create a session for one brand's collection.

    requests.Session is not thread-safe, so each brand worker gets its own.
    """
    session = requests.Session()
    session.headers.update({"Connection": "keep-alive"})
    return session


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a Retry-After header given as seconds or an HTTP date.

    Returns:
        Seconds to wait (never negative), or None when absent/unparseable
    """
    if not value:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


def _request(
    session: requests.Session,
    method: str,
    url: str,
    timeout: Optional[float],
    headers: Dict[str, str],
    **kwargs,
) -> requests.Response:
    """Issue one request and raise FetchError for anything but a 2xx."""
    timeout = timeout if timeout is not None else HTTP.TIMEOUT
    safe_url = sanitize_url(url)
    try:
        response = session.request(method, url, headers=headers, timeout=timeout, **kwargs)
    except requests.exceptions.Timeout as e:
        raise FetchError(url, f"timeout fetching {safe_url}: {e}", kind='timeout') from e
    except (requests.exceptions.ConnectionError, requests.exceptions.ChunkedEncodingError) as e:
        raise FetchError(url, f"connection error fetching {safe_url}: {e}", kind='connection') from e
    except requests.exceptions.RequestException as e:
        # Bad URLs, schemes and redirect loops fail the same way every time
        raise FetchError(url, f"request failed for {safe_url}: {e}", kind='request') from e

    if not 200 <= response.status_code < 300:
        retry_after = None
        if response.status_code == 429:
            retry_after = parse_retry_after(response.headers.get("Retry-After"))
        body = (response.text or "")[:HTTP.MAX_ERROR_BODY].strip()
        raise FetchError(
            url,
            f"HTTP {response.status_code} from {safe_url}" + (f": {body}" if body else ""),
            status=response.status_code,
            retry_after=retry_after,
        )

    log_safe(f"Fetched {safe_url} ({response.status_code})", level=logging.DEBUG)
    return response


def _decode_json(url: str, response: requests.Response) -> Any:
    try:
        return response.json()
    except (ValueError, json.JSONDecodeError) as e:
        raise FetchError(url, f"malformed JSON from {sanitize_url(url)}: {e}", kind='decode') from e


def fetch_html(
    session: requests.Session,
    url: str,
    timeout: Optional[float] = None,
    user_agent: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
) -> str:
    """GET a page and return its body text."""
    request_headers = get_headers(user_agent)
    request_headers.update(headers or {})
    return _request(session, "GET", url, timeout, request_headers).text


def fetch_json(
    session: requests.Session,
    url: str,
    timeout: Optional[float] = None,
    user_agent: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
) -> Any:
    """GET a JSON endpoint and return the decoded value.

    Raises:
        FetchError: kind='decode' when the body is not valid JSON
    """
    request_headers = get_headers(user_agent, accept="application/json, text/plain, */*")
    request_headers.update(headers or {})
    response = _request(session, "GET", url, timeout, request_headers, params=params)
    return _decode_json(url, response)


def post_json(
    session: requests.Session,
    url: str,
    payload: Any,
    timeout: Optional[float] = None,
    user_agent: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
) -> Any:
    """POST a JSON body and return the decoded JSON response."""
    request_headers = get_headers(user_agent, accept="application/json, text/plain, */*")
    request_headers["Content-Type"] = "application/json"
    request_headers.update(headers or {})
    response = _request(session, "POST", url, timeout, request_headers, data=json.dumps(payload))
    return _decode_json(url, response)


def post_form(
    session: requests.Session,
    url: str,
    data: Union[Dict[str, str], list],
    timeout: Optional[float] = None,
    user_agent: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
) -> str:
    """POST form fields and return the body text.

    ``data`` may be a list of (key, value) pairs when a key repeats.
    """
    request_headers = get_headers(user_agent, accept="text/html, application/json, */*")
    request_headers.update(headers or {})
    return _request(session, "POST", url, timeout, request_headers, data=data).text


def head_ok(
    session: requests.Session,
    url: str,
    timeout: Optional[float] = None,
    user_agent: Optional[str] = None,
) -> bool:
    """Return True when a HEAD request (redirects followed) answers 2xx."""
    try:
        _request(session, "HEAD", url, timeout, get_headers(user_agent), allow_redirects=True)
    except FetchError as e:
        log_safe(f"HEAD {sanitize_url(url)} failed: {e}", level=logging.DEBUG)
        return False
    return True
