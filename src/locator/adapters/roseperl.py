"""Roseperl where-to-buy locator.

The page links a per-brand script on the Roseperl CDN; that script assigns
the whole store list to ``SCASLWtb``.
"""

import json
import re
from typing import Any, List, Optional

from config import roseperl_config
from src.locator.adapters.base import (
    LocatorAdapter,
    extract_balanced,
    first_text,
    float_value,
    id_value,
)
from src.locator.types import FetchContext, RawLocation
from src.shared.http import FetchError

__all__ = [
    'RoseperlAdapter',
    'extract_assignment_payload',
    'extract_wtb_url',
    'parse_stores',
]

_WTB_URL = re.compile(roseperl_config.WTB_URL_PATTERN)


def extract_wtb_url(html: str) -> Optional[str]:
    match = _WTB_URL.search(html.replace("\\/", "/"))
    if not match:
        return None
    return match.group(0).rstrip("\\").rstrip('"').rstrip("'")


def extract_assignment_payload(js: str, variable: str) -> Optional[str]:
    """Object literal assigned to ``variable=`` in a script, brackets balanced."""
    needle = f"{variable}="
    start = js.find(needle)
    if start < 0:
        return None
    brace = js.find("{", start + len(needle))
    if brace < 0:
        return None
    return extract_balanced(js, brace)


def parse_stores(payload: Any) -> List[RawLocation]:
    stores = payload.get("locations") if isinstance(payload, dict) else None
    if not isinstance(stores, list):
        return []

    locations = []
    for store in stores:
        if not isinstance(store, dict):
            continue
        name = first_text(store, "title", "name")
        if not name:
            continue
        locations.append(RawLocation(
            name=name,
            locator_source=RoseperlAdapter.name,
            external_id=id_value(store, "id"),
            address_line1=first_text(store, "address"),
            city=first_text(store, "city"),
            state=first_text(store, "state"),
            zip=first_text(store, "zipcode", "zip"),
            country=first_text(store, "country"),
            latitude=float_value(store, "latitude", "lat"),
            longitude=float_value(store, "longitude", "lng"),
            phone=first_text(store, "phone"),
            raw_payload=store,
        ))
    return locations


class RoseperlAdapter(LocatorAdapter):
    name = "roseperl"

    def detect(self, html: str) -> Optional[str]:
        return extract_wtb_url(html)

    def fetch(self, ctx: FetchContext, config: str) -> List[RawLocation]:
        body = ctx.get_text(config)
        payload = extract_assignment_payload(body, roseperl_config.PAYLOAD_VARIABLE)
        if payload is None:
            return []
        try:
            data = json.loads(payload)
        except ValueError as e:
            raise FetchError(config, f"malformed roseperl payload: {e}", kind='decode') from e
        return parse_stores(data)
