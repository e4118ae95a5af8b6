"""Locally.com store locator widget.

The widget is keyed by a numeric company id that appears in the API URL or
in the ``locallyWidgetCompanyId`` variable. One request returns every store.
"""

from typing import Any, List, Optional

from config import locally_config
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
    'LocallyAdapter',
    'extract_company_id',
    'parse_stores',
]

_PATTERNS = compile_all(
    r"locally\.com/stores/json\?[^\"']*company_id=(\d+)",
    r"locallyWidgetCompanyId\s*[=:]\s*(\d+)",
    r"company_id\s*[=:]\s*(\d+)",
)


def extract_company_id(html: str) -> Optional[str]:
    if "locally.com" not in html and "locallyWidgetCompanyId" not in html:
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
            locator_source=LocallyAdapter.name,
            external_id=id_value(store, "id"),
            address_line1=first_text(store, "address"),
            city=first_text(store, "city"),
            state=first_text(store, "state"),
            zip=first_text(store, "zip"),
            country=first_text(store, "country"),
            latitude=float_value(store, "lat", "latitude"),
            longitude=float_value(store, "lng", "longitude"),
            phone=first_text(store, "phone"),
            raw_payload=store,
        ))
    return locations


class LocallyAdapter(LocatorAdapter):
    name = "locally"

    def detect(self, html: str) -> Optional[str]:
        return extract_company_id(html)

    def fetch(self, ctx: FetchContext, config: str) -> List[RawLocation]:
        payload = ctx.get_json(
            locally_config.API_URL,
            params={"company_id": config, "take": locally_config.TAKE},
        )
        return parse_stores(payload)
