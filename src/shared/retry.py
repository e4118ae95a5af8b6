"""Retry with exponential backoff for transient fetch failures.

Timeouts, connection errors, 5xx and 429 responses are retried; everything
else (other 4xx, malformed bodies, validation problems, cancellation)
short-circuits. When attempts run out the last error is raised unchanged,
and callers treat that as a failure of the current brand or grid point.
"""

import logging
import random
import threading
import time
from typing import Callable, Optional, TypeVar

from src.shared.constants import RETRY
from src.shared.http import FetchCancelled, FetchError, log_safe, sanitize_url

__all__ = [
    'compute_backoff',
    'is_retriable',
    'sleep_or_cancel',
    'with_retry',
]

T = TypeVar('T')


def is_retriable(error: BaseException) -> bool:
    """Return True if the error is worth another attempt."""
    if not isinstance(error, FetchError) or isinstance(error, FetchCancelled):
        return False
    if error.kind in ('timeout', 'connection'):
        return True
    if error.kind == 'http' and error.status is not None:
        return error.status == 429 or error.status >= 500
    return False


def compute_backoff(
    attempt: int,
    base_delay: float,
    max_delay: float,
    jitter: float = RETRY.JITTER,
    retry_after: Optional[float] = None,
) -> float:
    """Delay before the next attempt.

    ``min(max_delay, base_delay * 2 ** (attempt - 1))`` with +/- ``jitter``
    applied, floored at ``retry_after`` when the server sent one.

    Args:
        attempt: Number of the attempt that just failed (1-based)
        base_delay: Delay after the first failure
        max_delay: Cap for the exponential part
        jitter: Relative jitter (0.25 means +/- 25%)
        retry_after: Server-requested wait in seconds (429 responses)
    """
    delay = min(max_delay, base_delay * (2 ** max(0, attempt - 1)))
    if jitter:
        delay *= random.uniform(1.0 - jitter, 1.0 + jitter)
    if retry_after is not None:
        delay = max(delay, retry_after)
    return max(0.0, delay)


def sleep_or_cancel(delay: float, cancel_event: Optional[threading.Event] = None) -> None:
    """Sleep for ``delay`` seconds, waking early with FetchCancelled on cancel."""
    if cancel_event is None:
        time.sleep(delay)
        return
    if cancel_event.wait(delay):
        raise FetchCancelled()


def with_retry(
    op: Callable[[], T],
    max_attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
    max_delay: Optional[float] = None,
    cancel_event: Optional[threading.Event] = None,
    retriable: Callable[[BaseException], bool] = is_retriable,
    max_retry_after: Optional[float] = None,
    label: str = "",
) -> T:
    """Run ``op`` until it succeeds, a non-retriable error occurs, or attempts run out.

    Args:
        op: Zero-argument callable performing one attempt
        max_attempts: Total attempts (RETRY.MAX_ATTEMPTS if None)
        base_delay: Backoff base in seconds (RETRY.BASE_DELAY if None)
        max_delay: Backoff cap in seconds (RETRY.MAX_DELAY if None)
        cancel_event: Cancellation token checked before each attempt and while sleeping
        retriable: Classifier deciding whether an error is retried
        max_retry_after: Largest Retry-After honoured (RETRY.MAX_RETRY_AFTER if None)
        label: Prefix for log messages, usually ``[brand]``

    Returns:
        The value returned by the first successful attempt

    Raises:
        FetchCancelled: If the token is set
        Exception: The last error raised by ``op``
    """
    max_attempts = max(1, max_attempts if max_attempts is not None else RETRY.MAX_ATTEMPTS)
    base_delay = base_delay if base_delay is not None else RETRY.BASE_DELAY
    max_delay = max_delay if max_delay is not None else RETRY.MAX_DELAY
    max_retry_after = max_retry_after if max_retry_after is not None else RETRY.MAX_RETRY_AFTER
    prefix = f"{label} " if label else ""

    for attempt in range(1, max_attempts + 1):
        if cancel_event is not None and cancel_event.is_set():
            raise FetchCancelled()
        try:
            return op()
        except Exception as e:  # pylint: disable=broad-except
            if attempt >= max_attempts or not retriable(e):
                raise
            retry_after = None
            if isinstance(e, FetchError) and e.status == 429 and e.retry_after is not None:
                retry_after = min(e.retry_after, max_retry_after)
            delay = compute_backoff(attempt, base_delay, max_delay, retry_after=retry_after)
            where = sanitize_url(e.url) if isinstance(e, FetchError) else type(e).__name__
            log_safe(
                f"{prefix}Transient failure for {where}: {e}. "
                f"Retrying in {delay:.2f}s (attempt {attempt}/{max_attempts})",
                level=logging.WARNING,
            )
            sleep_or_cancel(delay, cancel_event)

    raise AssertionError("unreachable")  # pragma: no cover
