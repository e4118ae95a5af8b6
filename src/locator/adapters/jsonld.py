"""schema.org JSON-LD store records.

Not a locator platform: any site may mark up its stores as LocalBusiness
and friends. Everything is in the page already, so fetch makes no network
call. Results from here are low confidence and must clear the trust
threshold on their own.
"""

import logging
from typing import Any, Iterable, List, Optional

from bs4 import BeautifulSoup

from src.locator.adapters.base import (
    LocatorAdapter,
    first_text,
    float_value,
    load_json,
)
from src.locator.types import FetchContext, RawLocation

__all__ = [
    'STORE_TYPES',
    'JsonLdAdapter',
    'extract_locations',
    'is_store_type',
]

STORE_TYPES = frozenset(
    t.lower() for t in (
        "LocalBusiness",
        "Store",
        "FoodEstablishment",
        "GroceryStore",
        "ConvenienceStore",
        "DrinkingEstablishment",
        "BarOrPub",
        "Brewery",
    )
)


def is_store_type(type_node: Any) -> bool:
    """True if ``@type`` (a string or a list of strings) names a store type."""
    if isinstance(type_node, str):
        return type_node.lower() in STORE_TYPES
    if isinstance(type_node, list):
        return any(isinstance(t, str) and t.lower() in STORE_TYPES for t in type_node)
    return False


def _candidates(value: Any) -> Iterable[Any]:
    items = value if isinstance(value, list) else [value]
    expanded = list(items)
    for item in items:
        if isinstance(item, dict) and isinstance(item.get("@graph"), list):
            expanded.extend(item["@graph"])
    return expanded


def _to_location(item: Any) -> Optional[RawLocation]:
    if not isinstance(item, dict) or not is_store_type(item.get("@type")):
        return None
    name = first_text(item, "name")
    if not name:
        return None
    address = item.get("address") if isinstance(item.get("address"), dict) else {}
    geo = item.get("geo") if isinstance(item.get("geo"), dict) else {}
    return RawLocation(
        name=name,
        locator_source=JsonLdAdapter.name,
        address_line1=first_text(address, "streetAddress"),
        city=first_text(address, "addressLocality"),
        state=first_text(address, "addressRegion"),
        zip=first_text(address, "postalCode"),
        country=first_text(address, "addressCountry"),
        latitude=float_value(geo, "latitude"),
        longitude=float_value(geo, "longitude"),
        phone=first_text(item, "telephone"),
        raw_payload=item,
    )


def extract_locations(html: str) -> List[RawLocation]:
    soup = BeautifulSoup(html, "html.parser")
    locations = []
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        data = load_json(script.string or script.get_text())
        if data is None:
            logging.debug("Skipping malformed JSON-LD block")
            continue
        for item in _candidates(data):
            location = _to_location(item)
            if location is not None:
                locations.append(location)
    return locations


class JsonLdAdapter(LocatorAdapter):
    name = "jsonld"

    def detect(self, html: str) -> Optional[List[RawLocation]]:
        if "application/ld+json" not in html:
            return None
        return extract_locations(html) or None

    def fetch(self, ctx: FetchContext, config: List[RawLocation]) -> List[RawLocation]:
        return list(config)
