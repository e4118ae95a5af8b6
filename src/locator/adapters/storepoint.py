"""Storepoint widget.

Storepoint stores a single free-form address per location, so city, state
and ZIP are recovered from its tail ("1324 5th Street, Jellico TN 37762, USA").
"""

import re
from typing import Any, List, NamedTuple, Optional

from config import storepoint_config
from src.locator.adapters.base import (
    LocatorAdapter,
    compile_all,
    first_group,
    first_text,
    float_value,
    id_value,
)
from src.locator.types import FetchContext, RawLocation

__all__ = [
    'AddressTail',
    'StorepointAdapter',
    'extract_widget_id',
    'parse_address_tail',
    'parse_stores',
]

_PATTERNS = compile_all(
    r"StorepointWidget\(\s*['\"]([A-Za-z0-9]+)['\"]",
    r"StorepointWidget\((?:\\[nrt]|\\u[0-9a-fA-F]{4}|\s)*['\"]([A-Za-z0-9]+)['\"]",
    r"api\.storepoint\.co/v2/([A-Za-z0-9]+)/locations",
    r"widget\.storepoint\.co/([A-Za-z0-9]+)",
)

_ZIP = re.compile(r"^[0-9-]*[0-9][0-9-]*$")
_STATE = re.compile(r"^[A-Za-z]{2}$")


class AddressTail(NamedTuple):
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None


def extract_widget_id(html: str) -> Optional[str]:
    if "storepoint" not in html.lower():
        return None
    return first_group(_PATTERNS, html)


def _city_state_zip(segment: str) -> Optional[AddressTail]:
    tokens = segment.split()
    if len(tokens) < 3:
        return None
    zip_code, state = tokens[-1], tokens[-2]
    if not _ZIP.match(zip_code) or not _STATE.match(state):
        return None
    return AddressTail(city=" ".join(tokens[:-2]) or None, state=state, zip=zip_code)


def parse_address_tail(address: str, has_country: bool = False) -> AddressTail:
    """Split "street, City ST ZIP, Country" into its parts.

    Without an explicit country field the last comma part is taken as the
    country and the one before it as "City ST ZIP". With one, the last part
    is tried first and the country is left for the caller.
    """
    parts = [part.strip() for part in address.split(",") if part.strip()]
    if not parts:
        return AddressTail()

    if has_country:
        parsed = _city_state_zip(parts[-1])
        if parsed is None and len(parts) >= 2:
            parsed = _city_state_zip(parts[-2])
        return parsed or AddressTail()

    country = parts[-1]
    parsed = _city_state_zip(parts[-2]) if len(parts) >= 2 else None
    if parsed is None:
        return AddressTail(country=country)
    return parsed._replace(country=country)


def parse_stores(payload: Any) -> List[RawLocation]:
    results = payload.get("results") if isinstance(payload, dict) else None
    stores = results.get("locations") if isinstance(results, dict) else None
    if not isinstance(stores, list):
        return []

    locations = []
    for store in stores:
        if not isinstance(store, dict):
            continue
        name = first_text(store, "name")
        if not name:
            continue
        address = first_text(store, "streetaddress", "address")
        country = first_text(store, "country")
        tail = parse_address_tail(address, has_country=bool(country)) if address else AddressTail()
        locations.append(RawLocation(
            name=name,
            locator_source=StorepointAdapter.name,
            external_id=id_value(store, "id"),
            address_line1=address,
            city=tail.city,
            state=tail.state,
            zip=tail.zip,
            country=country or tail.country,
            latitude=float_value(store, "loc_lat"),
            longitude=float_value(store, "loc_long"),
            phone=first_text(store, "phone"),
            raw_payload=store,
        ))
    return locations


class StorepointAdapter(LocatorAdapter):
    name = "storepoint"

    def detect(self, html: str) -> Optional[str]:
        return extract_widget_id(html)

    def fetch(self, ctx: FetchContext, config: str) -> List[RawLocation]:
        url = storepoint_config.API_URL_TEMPLATE.format(widget_id=config)
        return parse_stores(ctx.get_json(url))
