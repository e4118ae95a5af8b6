"""Provider-neutral location record and the per-brand fetch context."""

import json
import threading
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Union

import requests

from src.shared import http
from src.shared.concurrency import GateRegistry, RequestGate
from src.shared.constants import HTTP, RETRY
from src.shared.http import FetchCancelled
from src.shared.retry import sleep_or_cancel, with_retry

__all__ = [
    'FetchContext',
    'RawLocation',
]


@dataclass
class RawLocation:
    """One store as reported by a locator provider.

    ``name`` is never empty: adapters drop records without one while
    mapping. ``raw_payload`` keeps the provider object as received.
    """
    name: str
    locator_source: str
    external_id: Optional[str] = None
    address_line1: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    phone: Optional[str] = None
    raw_payload: Any = field(default=None, repr=False, compare=False)

    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_dict(self) -> dict:
        """Convert to dictionary for logging and export"""
        result = asdict(self)
        result.pop('raw_payload', None)
        return result

    def raw_payload_json(self) -> Optional[str]:
        """Serialize the provider payload for storage, or None if absent."""
        if self.raw_payload is None:
            return None
        return json.dumps(self.raw_payload, default=str, sort_keys=True)


class FetchContext:
    """Everything an adapter needs to talk to the network for one brand.

    Carries the session, timeout, user agent, the locator URL being
    processed, the run's gate registry and a cancellation token. All
    helpers retry transient failures and raise FetchCancelled once the
    token is set.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = HTTP.TIMEOUT,
        user_agent: str = HTTP.USER_AGENT,
        locator_url: str = "",
        gates: Optional[GateRegistry] = None,
        cancel_event: Optional[threading.Event] = None,
        label: str = "",
        max_attempts: int = RETRY.MAX_ATTEMPTS,
    ) -> None:
        self.session = session if session is not None else http.create_session()
        self.timeout = timeout
        self.user_agent = user_agent
        self.locator_url = locator_url
        self.gates = gates if gates is not None else GateRegistry()
        self.cancel_event = cancel_event if cancel_event is not None else threading.Event()
        self.label = label
        self.max_attempts = max_attempts

    def gate(self, name: str, min_gap: Optional[float] = None) -> RequestGate:
        """Shared gate for one external API."""
        return self.gates.get(name, min_gap)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def check_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise FetchCancelled(self.locator_url)

    def sleep(self, seconds: float) -> None:
        """Sleep that wakes up (and raises FetchCancelled) on cancellation."""
        if seconds > 0:
            sleep_or_cancel(seconds, self.cancel_event)

    def _retry(self, op, max_attempts: Optional[int] = None, gate: Optional[RequestGate] = None, **kwargs):
        """Run ``op`` under retry; with a gate, every attempt waits on it."""
        def gated():
            gate.wait(self.cancel_event)
            return op()

        return with_retry(
            gated if gate is not None else op,
            max_attempts=max_attempts if max_attempts is not None else self.max_attempts,
            cancel_event=self.cancel_event,
            label=self.label,
            **kwargs,
        )

    def get_text(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        user_agent: Optional[str] = None,
        max_attempts: Optional[int] = None,
    ) -> str:
        return self._retry(
            lambda: http.fetch_html(
                self.session, url, self.timeout, user_agent or self.user_agent, headers
            ),
            max_attempts=max_attempts,
        )

    def get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        max_attempts: Optional[int] = None,
        gate: Optional[RequestGate] = None,
    ) -> Any:
        return self._retry(
            lambda: http.fetch_json(
                self.session, url, self.timeout, self.user_agent, headers, params
            ),
            max_attempts=max_attempts,
            gate=gate,
        )

    def post_json(
        self,
        url: str,
        payload: Any,
        headers: Optional[Dict[str, str]] = None,
        max_attempts: Optional[int] = None,
        gate: Optional[RequestGate] = None,
    ) -> Any:
        return self._retry(
            lambda: http.post_json(
                self.session, url, payload, self.timeout, self.user_agent, headers
            ),
            max_attempts=max_attempts,
            gate=gate,
        )

    def post_form(
        self,
        url: str,
        data: Union[Dict[str, str], List[tuple]],
        headers: Optional[Dict[str, str]] = None,
        max_attempts: Optional[int] = None,
        **retry_kwargs,
    ) -> str:
        return self._retry(
            lambda: http.post_form(
                self.session, url, data, self.timeout, self.user_agent, headers
            ),
            max_attempts=max_attempts,
            **retry_kwargs,
        )
