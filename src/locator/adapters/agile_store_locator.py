"""Agile Store Locator (WordPress plugin).

The plugin prints two JS objects into the page: ``ASL_REMOTE`` with the
admin-ajax URL and nonce, and ``asl_configuration`` with the listing
options. Both are replayed against ``admin-ajax.php?action=asl_load_stores``.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from config import agile_store_locator_config
from src.locator.adapters.base import (
    LocatorAdapter,
    first_text,
    float_value,
    id_value,
    load_json,
    text_value,
)
from src.locator.types import FetchContext, RawLocation
from src.shared.http import FetchCancelled, FetchError

__all__ = [
    'AgileStoreLocatorAdapter',
    'AgileStoreLocatorConfig',
    'extract_config',
    'extract_json_var',
    'parse_stores',
]


@dataclass(frozen=True)
class AgileStoreLocatorConfig:
    ajax_url: str
    nonce: str
    lang: str = agile_store_locator_config.DEFAULT_LANG
    load_all: str = agile_store_locator_config.DEFAULT_LOAD_ALL
    layout: str = agile_store_locator_config.DEFAULT_LAYOUT
    stores: Optional[str] = None

    def query_params(self) -> Dict[str, str]:
        params = {
            "action": agile_store_locator_config.ACTION,
            "nonce": self.nonce,
            "asl_lang": self.lang,
            "load_all": self.load_all,
            "layout": self.layout,
        }
        if self.stores and self.stores.strip():
            params["stores"] = self.stores
        return params


def extract_json_var(html: str, variable: str) -> Optional[Dict[str, Any]]:
    """Object literal assigned with ``var <variable> = {...};``."""
    match = re.search(rf"(?s)var\s+{re.escape(variable)}\s*=\s*(\{{.*?\}});", html)
    if not match:
        return None
    data = load_json(match.group(1))
    return data if isinstance(data, dict) else None


def _option(options: Dict[str, Any], key: str, default: str) -> str:
    value = options.get(key)
    if isinstance(value, bool):
        return "1" if value else "0"
    return text_value(value) or default


def extract_config(html: str) -> Optional[AgileStoreLocatorConfig]:
    if "agile-store-locator" not in html and "asl_load_stores" not in html:
        return None
    remote = extract_json_var(html, "ASL_REMOTE")
    options = extract_json_var(html, "asl_configuration")
    if remote is None or options is None:
        return None

    ajax_url = first_text(remote, "ajax_url")
    nonce = first_text(remote, "nonce")
    if not ajax_url or not nonce:
        return None

    return AgileStoreLocatorConfig(
        ajax_url=ajax_url,
        nonce=nonce,
        lang=_option(options, "lang", agile_store_locator_config.DEFAULT_LANG),
        load_all=_option(options, "load_all", agile_store_locator_config.DEFAULT_LOAD_ALL),
        layout=_option(options, "layout", agile_store_locator_config.DEFAULT_LAYOUT),
        stores=first_text(options, "stores"),
    )


def parse_stores(payload: Any) -> List[RawLocation]:
    if isinstance(payload, dict):
        payload = payload.get("stores")
    if not isinstance(payload, list):
        return []

    locations = []
    for store in payload:
        if not isinstance(store, dict):
            continue
        name = first_text(store, "title", "name")
        if not name:
            continue
        locations.append(RawLocation(
            name=name,
            locator_source=AgileStoreLocatorAdapter.name,
            external_id=id_value(store, "id"),
            address_line1=first_text(store, "street", "address"),
            city=first_text(store, "city"),
            state=first_text(store, "state"),
            zip=first_text(store, "postal_code", "zip"),
            country=first_text(store, "country"),
            latitude=float_value(store, "lat"),
            longitude=float_value(store, "lng"),
            phone=first_text(store, "phone"),
            raw_payload=store,
        ))
    return locations


class AgileStoreLocatorAdapter(LocatorAdapter):
    name = "agile_store_locator"

    def detect(self, html: str) -> Optional[AgileStoreLocatorConfig]:
        return extract_config(html)

    def fetch(self, ctx: FetchContext, config: AgileStoreLocatorConfig) -> List[RawLocation]:
        last_error: Optional[FetchError] = None
        for attempt, delay in enumerate(agile_store_locator_config.ATTEMPT_DELAYS, 1):
            ctx.sleep(delay)
            try:
                payload = ctx.get_json(config.ajax_url, params=config.query_params(), max_attempts=1)
            except FetchCancelled:
                raise
            except FetchError as e:
                last_error = e
                logging.debug(f"{ctx.label} agile store locator attempt {attempt} failed: {e}")
                continue
            return parse_stores(payload)

        if last_error is not None:
            raise last_error
        return []
