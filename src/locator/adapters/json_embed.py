"""Store arrays embedded in inline scripts.

Last resort for hand-rolled locators that inline their data as a JS
array literal. A loose pattern finds the start of an array of store-like
objects; the array is then cut out bracket by bracket and parsed as JSON.
"""

import re
from typing import Any, List, Optional

from bs4 import BeautifulSoup

from src.locator.adapters.base import (
    LocatorAdapter,
    extract_balanced,
    first_text,
    float_value,
    id_value,
    load_json,
)
from src.locator.types import FetchContext, RawLocation

__all__ = [
    'JsonEmbedAdapter',
    'extract_locations',
    'map_object',
]

_CANDIDATE = re.compile(
    r'(?is)\[\s*\{[^}]*"(?:name|store_name|Name)"[^}]*"(?:city|lat|address|latitude)"[^}]*\}'
)


def map_object(obj: Any) -> Optional[RawLocation]:
    if not isinstance(obj, dict):
        return None
    name = first_text(obj, "name", "store_name", "Name")
    if not name:
        return None
    location = RawLocation(
        name=name,
        locator_source=JsonEmbedAdapter.name,
        external_id=id_value(obj, "id"),
        address_line1=first_text(obj, "address", "address1", "street"),
        city=first_text(obj, "city", "City"),
        state=first_text(obj, "state", "State", "province"),
        zip=first_text(obj, "zip", "postal_code", "postcode"),
        country=first_text(obj, "country", "Country"),
        latitude=float_value(obj, "lat", "latitude", "Lat"),
        longitude=float_value(obj, "lng", "longitude", "Lng", "lon"),
        phone=first_text(obj, "phone", "Phone"),
        raw_payload=obj,
    )
    # A bare name is not a store (menus, product lists and the like)
    if location.city is None and location.latitude is None and location.address_line1 is None:
        return None
    return location


def extract_locations(html: str) -> List[RawLocation]:
    """Locations from the first embedded array that maps to any stores."""
    soup = BeautifulSoup(html, "html.parser")
    for script in soup.find_all("script"):
        content = script.string or script.get_text()
        if not content:
            continue
        for match in _CANDIDATE.finditer(content):
            array = load_json(extract_balanced(content, match.start()))
            if not isinstance(array, list):
                continue
            locations = [loc for loc in (map_object(obj) for obj in array) if loc is not None]
            if locations:
                return locations
    return []


class JsonEmbedAdapter(LocatorAdapter):
    name = "json_embed"

    def detect(self, html: str) -> Optional[List[RawLocation]]:
        if "<script" not in html.lower():
            return None
        return extract_locations(html) or None

    def fetch(self, ctx: FetchContext, config: List[RawLocation]) -> List[RawLocation]:
        return list(config)
