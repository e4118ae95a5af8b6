"""BeverageFinder embed.

The map config names the brand's default ZIP; a radius search around it
returns an HTML fragment whose ``data-locations`` attribute holds the
stores as entity-encoded JSON.
"""

import html as html_lib
import logging
import re
from typing import Any, List, Optional

from config import beveragefinder_config
from src.locator.adapters.base import (
    LocatorAdapter,
    first_text,
    float_value,
    id_value,
    load_json,
)
from src.locator.types import FetchContext, RawLocation

__all__ = [
    'BeverageFinderAdapter',
    'extract_data_locations',
    'extract_key',
    'extract_search_html',
    'parse_stores',
]

_EMBED_KEY = re.compile(r"beveragefinder\.net/users/embed\.js[^>]*data-key\s*=\s*[\"']([^\"']+)[\"']")
_IFRAME_KEY = re.compile(r"beveragefinder-map\.php\?[^\"'\s>]*key=([^&\"'\s>]+)")
_DATA_LOCATIONS = re.compile(r"data-locations='([^']*)'")


def extract_key(html: str) -> Optional[str]:
    if "beveragefinder" not in html:
        return None
    match = _EMBED_KEY.search(html)
    if match:
        return match.group(1)
    match = _IFRAME_KEY.search(html.replace("&amp;", "&"))
    return match.group(1) if match else None


def extract_search_html(payload: str) -> Optional[str]:
    """HTML of a search response: JSON ``{"html": ...}`` or the raw body."""
    trimmed = payload.strip()
    if not trimmed:
        return None
    data = load_json(trimmed)
    if isinstance(data, dict) and isinstance(data.get("html"), str):
        return data["html"]
    if "data-locations=" in trimmed:
        return trimmed
    return None


def extract_data_locations(fragment: str) -> Optional[str]:
    match = _DATA_LOCATIONS.search(fragment)
    if not match:
        return None
    return html_lib.unescape(match.group(1))


def parse_stores(stores: Any) -> List[RawLocation]:
    if not isinstance(stores, list):
        return []
    locations = []
    for store in stores:
        if not isinstance(store, dict):
            continue
        name = first_text(store, "name", "store")
        if not name:
            continue
        locations.append(RawLocation(
            name=name,
            locator_source=BeverageFinderAdapter.name,
            external_id=id_value(store, "id"),
            address_line1=first_text(store, "address", "address1"),
            city=first_text(store, "city"),
            state=first_text(store, "state"),
            zip=first_text(store, "zip", "postal"),
            country=first_text(store, "country"),
            latitude=float_value(store, "lat", "latitude"),
            longitude=float_value(store, "lng", "longitude"),
            phone=first_text(store, "phone"),
            raw_payload=store,
        ))
    return locations


class BeverageFinderAdapter(LocatorAdapter):
    name = "beveragefinder"

    def detect(self, html: str) -> Optional[str]:
        return extract_key(html)

    def fetch(self, ctx: FetchContext, config: str) -> List[RawLocation]:
        map_body = ctx.get_text(
            f"{beveragefinder_config.MAP_URL}?key={config}&embed=1"
        )
        map_config = load_json(map_body)
        if map_config is None:
            logging.debug(f"{ctx.label} beveragefinder map config was not JSON")
        default_zip = None
        if isinstance(map_config, dict):
            default_zip = first_text(map_config, "defaultZip")

        payload = ctx.post_form(
            beveragefinder_config.SEARCH_URL,
            {
                "zip": default_zip or beveragefinder_config.DEFAULT_ZIP,
                "miles": beveragefinder_config.SEARCH_MILES,
                "brand": "",
                "key": config,
            },
        )
        fragment = extract_search_html(payload)
        if not fragment or not fragment.strip():
            logging.debug(f"{ctx.label} beveragefinder search returned no html")
            return []
        encoded = extract_data_locations(fragment)
        if encoded is None:
            logging.debug(f"{ctx.label} beveragefinder html has no data-locations")
            return []
        return parse_stores(load_json(encoded))
