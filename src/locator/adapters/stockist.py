"""Stockist widget.

Two requests: the JSONP widget config names the map center and search
radius, then a single radius search around that center lists the stores.
"""

import json
from typing import Any, Dict, List, Optional

from config import stockist_config
from src.locator.adapters.base import (
    LocatorAdapter,
    compile_all,
    first_group,
    first_text,
    float_value,
    id_value,
)
from src.locator.types import FetchContext, RawLocation
from src.shared.http import FetchError

__all__ = [
    'StockistAdapter',
    'extract_widget_tag',
    'parse_jsonp',
    'parse_stores',
    'search_params',
]

_PATTERNS = compile_all(
    r"data-stockist-widget-tag\s*=\s*[\"']([^\"']+)[\"']",
    r"stockist\.co/api/v1/([A-Za-z0-9_-]+)/",
    r"_stockistConfigCallback_([A-Za-z0-9_-]+)",
)


def extract_widget_tag(html: str) -> Optional[str]:
    if "stockist" not in html:
        return None
    return first_group(_PATTERNS, html)


def parse_jsonp(body: str) -> Any:
    """JSON between the first "(" and the last ")"; None when there is none.

    Raises:
        ValueError: If the wrapped payload is not valid JSON
    """
    open_index = body.find("(")
    close_index = body.rfind(")")
    if open_index < 0 or close_index <= open_index:
        return None
    return json.loads(body[open_index + 1:close_index].strip())


def search_params(widget_config: Any) -> Dict[str, Any]:
    """Search query derived from the widget config, with US-wide defaults."""
    widget_config = widget_config if isinstance(widget_config, dict) else {}
    latitude = float_value(widget_config, "latitude")
    longitude = float_value(widget_config, "longitude")
    distance = None
    for key in ("max_distance", "distance"):
        value = widget_config.get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            distance = value
            break
    return {
        "latitude": latitude if latitude is not None else stockist_config.DEFAULT_LATITUDE,
        "longitude": longitude if longitude is not None else stockist_config.DEFAULT_LONGITUDE,
        "distance": distance if distance is not None else stockist_config.DEFAULT_DISTANCE,
        "units": "mi",
        "page": 1,
        "per_page": stockist_config.PER_PAGE,
    }


def parse_stores(payload: Any) -> List[RawLocation]:
    stores = payload.get("locations") if isinstance(payload, dict) else None
    if not isinstance(stores, list):
        return []

    locations = []
    for store in stores:
        if not isinstance(store, dict):
            continue
        name = first_text(store, "name")
        if not name:
            continue
        locations.append(RawLocation(
            name=name,
            locator_source=StockistAdapter.name,
            external_id=id_value(store, "id"),
            address_line1=first_text(store, "address_line_1", "full_address"),
            city=first_text(store, "city"),
            state=first_text(store, "state"),
            zip=first_text(store, "postal_code", "zip"),
            country=first_text(store, "country"),
            latitude=float_value(store, "latitude", "lat"),
            longitude=float_value(store, "longitude", "lng"),
            phone=first_text(store, "phone"),
            raw_payload=store,
        ))
    return locations


class StockistAdapter(LocatorAdapter):
    name = "stockist"

    def detect(self, html: str) -> Optional[str]:
        return extract_widget_tag(html)

    def fetch(self, ctx: FetchContext, config: str) -> List[RawLocation]:
        widget_url = stockist_config.WIDGET_URL_TEMPLATE.format(tag=config)
        body = ctx.get_text(widget_url)
        try:
            widget_config = parse_jsonp(body)
        except ValueError as e:
            raise FetchError(widget_url, f"malformed stockist widget config: {e}", kind='decode') from e

        search_url = stockist_config.SEARCH_URL_TEMPLATE.format(tag=config)
        payload = ctx.get_json(search_url, params=search_params(widget_config))
        return parse_stores(payload)
