"""Delay utilities for pacing provider requests.

Grid adapters sleep a small random amount between queries, and some
providers additionally get a stable per-brand pacing offset so brands that
share one API do not fire in lockstep.
"""

import logging
import random
import threading
from typing import Optional

from src.shared.constants import GATE
from src.shared.retry import sleep_or_cancel

__all__ = [
    'FNV_OFFSET_BASIS',
    'FNV_PRIME',
    'fnv1a_64',
    'random_delay',
    'stable_pacing_ms',
]


FNV_OFFSET_BASIS = 14695981039346656037
FNV_PRIME = 1099511628211
_MASK_64 = (1 << 64) - 1


def random_delay(
    min_sec: Optional[float] = None,
    max_sec: Optional[float] = None,
    cancel_event: Optional[threading.Event] = None,
) -> float:
    """Add randomized delay between requests.

    Args:
        min_sec: Minimum delay in seconds (uses default if None)
        max_sec: Maximum delay in seconds (uses default if None)
        cancel_event: Optional token that interrupts the sleep

    Returns:
        Seconds slept
    """
    min_sec = min_sec if min_sec is not None else GATE.INTER_REQUEST_MIN
    max_sec = max_sec if max_sec is not None else GATE.INTER_REQUEST_MAX
    delay = random.uniform(min_sec, max_sec)
    if delay > 0:
        sleep_or_cancel(delay, cancel_event)
    logging.debug(f"Delayed {delay:.2f} seconds")
    return delay


def fnv1a_64(text: str) -> int:
    """64-bit FNV-1a hash of the UTF-8 bytes of ``text``."""
    value = FNV_OFFSET_BASIS
    for byte in text.encode("utf-8"):
        value ^= byte
        value = (value * FNV_PRIME) & _MASK_64
    return value


def stable_pacing_ms(key: str, index: int, base_ms: int, spread_ms: int) -> int:
    """Deterministic per-request pacing in milliseconds.

    Returns ``base_ms + (fnv1a_64(key) XOR index * FNV_PRIME) % spread_ms``,
    so the same brand and request index always wait the same amount.

    Examples:
        >>> stable_pacing_ms("abc", 0, 350, 400) == stable_pacing_ms("abc", 0, 350, 400)
        True
    """
    if spread_ms <= 0:
        return base_ms
    mixed = (fnv1a_64(key) ^ ((index * FNV_PRIME) & _MASK_64)) & _MASK_64
    return base_ms + mixed % spread_ms
