"""Stable, brand-scoped identity for stored locations.

Provider record ids change between pulls, so a location is identified by
what it is: the brand plus its normalized name, city, state and, when it
has one, street address.
"""

import hashlib
from typing import Optional, Union

from src.locator.types import RawLocation

__all__ = [
    'location_key',
    'normalize_key_part',
]


def normalize_key_part(value: Optional[str]) -> str:
    """Lower-case, trim and collapse internal whitespace."""
    if not value:
        return ""
    return " ".join(value.split()).lower()


def location_key(brand_id: Union[int, str], location: RawLocation) -> str:
    """SHA-256 hex digest over the normalized identity fields.

    Fields are joined with NUL so "ab" + "c" never collides with "a" + "bc".

    Examples:
        Case and surrounding whitespace in name, city or state do not
        change the key; the same store under two brands gets two keys.
    """
    parts = [
        normalize_key_part(str(brand_id)),
        normalize_key_part(location.name),
        normalize_key_part(location.city),
        normalize_key_part(location.state),
    ]
    address = normalize_key_part(location.address_line1)
    if address:
        parts.append(address)
    return hashlib.sha256("\x00".join(parts).encode("utf-8")).hexdigest()
