"""Request pacing shared by concurrently running brands.

Brands are collected in parallel, but several of them may embed the same
third-party locator. A RequestGate enforces a minimum gap between any two
requests that go through it, whichever brand thread issues them. Gates are
plain values: the runner builds one GateRegistry per run and hands it to
the adapters, so nothing here is a module-level singleton.

Usage:
    from src.shared.concurrency import GateRegistry

    gates = GateRegistry()
    gate = gates.get('vtinfo', min_gap=0.9)
    gate.wait()
    response = session.get(url)
"""

import logging
import threading
import time
from typing import Callable, Dict, Optional

from src.shared.constants import GATE
from src.shared.http import FetchCancelled


__all__ = [
    'GateRegistry',
    'RequestGate',
]


class RequestGate:
    """Mutex-protected minimum gap between requests.

    ``wait()`` reserves the next free slot under the lock and then sleeps
    outside it, so callers are released one gap apart in arrival order.

    Example:
        gate = RequestGate(min_gap=0.9)
        for point in points:
            gate.wait()
            query(point)
    """

    def __init__(
        self,
        min_gap: float = GATE.MIN_GAP,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.min_gap = max(0.0, min_gap)
        self.name = name
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._next_slot: Optional[float] = None

    def reserve(self) -> float:
        """Claim the next slot and return how long the caller must wait."""
        with self._lock:
            now = self._clock()
            slot = now if self._next_slot is None else max(now, self._next_slot)
            self._next_slot = slot + self.min_gap
            return slot - now

    def wait(self, cancel_event: Optional[threading.Event] = None) -> float:
        """Block until this caller may send its request.

        Args:
            cancel_event: Optional token; FetchCancelled is raised if it fires

        Returns:
            Seconds actually waited
        """
        delay = self.reserve()
        if delay > 0:
            logging.debug(f"[RequestGate:{self.name}] waiting {delay:.3f}s")
            if cancel_event is not None:
                if cancel_event.wait(delay):
                    raise FetchCancelled()
            else:
                self._sleep(delay)
        elif cancel_event is not None and cancel_event.is_set():
            raise FetchCancelled()
        return delay


class GateRegistry:
    """One RequestGate per external API, created on first use."""

    def __init__(self, default_gap: float = GATE.MIN_GAP) -> None:
        self.default_gap = default_gap
        self._gates: Dict[str, RequestGate] = {}
        self._lock = threading.Lock()

    def get(self, name: str, min_gap: Optional[float] = None) -> RequestGate:
        """Return the gate for ``name``, creating it with ``min_gap`` if needed.

        The gap of an existing gate is never changed by later calls.
        """
        with self._lock:
            gate = self._gates.get(name)
            if gate is None:
                gap = min_gap if min_gap is not None else self.default_gap
                gate = RequestGate(min_gap=gap, name=name)
                self._gates[name] = gate
                logging.debug(f"[RequestGate:{name}] created with min_gap={gap:.3f}s")
            return gate

    def names(self):
        with self._lock:
            return sorted(self._gates)
