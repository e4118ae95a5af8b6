"""Shared adapter contract and payload helpers.

Each provider adapter detects its own widget in a locator page and knows
its own fetch protocol. Detection never looks at another adapter's
markers; the orchestrator only sees ``detect`` and ``fetch``.

Provider payloads are loosely shaped JSON, so mapping goes field by field
through the helpers below rather than through one rigid schema.
"""

import json
import math
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Pattern

from src.locator.types import FetchContext, RawLocation

__all__ = [
    'LocatorAdapter',
    'compile_all',
    'extract_balanced',
    'first_group',
    'first_text',
    'float_value',
    'id_value',
    'load_json',
    'text_value',
]


class LocatorAdapter(ABC):
    """One locator platform: fingerprint a page, then fetch its stores.

    Subclasses set ``name`` to the locator source they stamp on records.
    """

    name: str = ""

    @abstractmethod
    def detect(self, html: str) -> Optional[Any]:
        """Return the provider config found in the page, or None."""

    @abstractmethod
    def fetch(self, ctx: FetchContext, config: Any) -> List[RawLocation]:
        """Fetch and map the provider's stores.

        Raises:
            FetchError: When the provider cannot be reached
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


def text_value(value: Any) -> Optional[str]:
    """Trimmed non-empty string, or None. Numbers are rendered as text."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def first_text(obj: Dict[str, Any], *keys: str) -> Optional[str]:
    """First non-empty text among ``keys`` of a payload object."""
    for key in keys:
        value = text_value(obj.get(key))
        if value is not None:
            return value
    return None


def float_value(obj: Dict[str, Any], *keys: str) -> Optional[float]:
    """First finite number among ``keys``; numeric strings are accepted."""
    for key in keys:
        value = obj.get(key)
        if value is None or isinstance(value, bool):
            continue
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
        try:
            number = float(value)
        except (TypeError, ValueError):
            continue
        if math.isfinite(number):
            return number
    return None


def id_value(obj: Dict[str, Any], *keys: str) -> Optional[str]:
    """Provider record id; ids may be strings or integers."""
    for key in keys:
        value = obj.get(key)
        if isinstance(value, bool) or value is None:
            continue
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        text = text_value(value)
        if text is not None:
            return text
    return None


def first_group(patterns: Iterable[Pattern], text: str) -> Optional[str]:
    """Group 1 of the first pattern that matches."""
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


def load_json(text: str) -> Any:
    """json.loads returning None for malformed input."""
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return None


_CLOSERS = {'[': ']', '{': '}'}


def extract_balanced(text: str, start: int = 0) -> Optional[str]:
    """Balanced JSON array or object beginning at ``text[start]``.

    String literals are skipped, so brackets inside values do not count.
    Only the bracket type that opened the value can close it at depth
    zero; ``"[42}"`` yields None.
    """
    if start >= len(text) or text[start] not in _CLOSERS:
        return None
    closer = _CLOSERS[text[start]]
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == '\\':
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char in '[{':
            depth += 1
        elif char in ']}':
            depth -= 1
            if depth == 0:
                return text[start:index + 1] if char == closer else None
            if depth < 0:
                return None
    return None


def compile_all(*patterns: str, flags: int = 0) -> List[Pattern]:
    return [re.compile(pattern, flags) for pattern in patterns]
