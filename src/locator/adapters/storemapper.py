"""Storemapper widget, keyed by an account token."""

from typing import Any, List, Optional

from config import storemapper_config
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
    'StoremapperAdapter',
    'extract_token',
    'parse_stores',
]

_PATTERNS = compile_all(
    r"storemapper\.co/api/stores\?token=([^\"'&\s]+)",
    r"data-storemapper-token\s*=\s*[\"']([^\"']+)[\"']",
    r"token[\"'\s:=]+([A-Za-z0-9_-]{8,})",
)


def extract_token(html: str) -> Optional[str]:
    if "storemapper" not in html:
        return None
    return first_group(_PATTERNS, html)


def parse_stores(payload: Any) -> List[RawLocation]:
    stores = payload.get("stores") if isinstance(payload, dict) else None
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
            locator_source=StoremapperAdapter.name,
            external_id=id_value(store, "id"),
            address_line1=first_text(store, "address"),
            city=first_text(store, "city"),
            state=first_text(store, "state"),
            zip=first_text(store, "zip", "postal_code"),
            country=first_text(store, "country"),
            latitude=float_value(store, "latitude", "lat"),
            longitude=float_value(store, "longitude", "lng"),
            phone=first_text(store, "phone"),
            raw_payload=store,
        ))
    return locations


class StoremapperAdapter(LocatorAdapter):
    name = "storemapper"

    def detect(self, html: str) -> Optional[str]:
        return extract_token(html)

    def fetch(self, ctx: FetchContext, config: str) -> List[RawLocation]:
        payload = ctx.get_json(storemapper_config.API_URL, params={"token": config})
        return parse_stores(payload)
