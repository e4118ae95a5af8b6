"""StoreRocket widget.

The account id usually sits in the page's widget init call. Some sites
load the widget from their own bundle, so a few linked scripts that look
locator-related are fetched and searched as well.
"""

import logging
import re
from typing import Any, List, Optional

from config import storerocket_config
from src.locator.adapters.base import (
    LocatorAdapter,
    compile_all,
    first_text,
    float_value,
    id_value,
)
from src.locator.types import FetchContext, RawLocation
from src.shared.http import FetchCancelled, FetchError, sanitize_url

__all__ = [
    'StoreRocketAdapter',
    'StoreRocketConfig',
    'candidate_script_urls',
    'extract_account',
    'parse_stores',
]

_PATTERNS = compile_all(
    r"account\s*:\s*[\"']([A-Za-z0-9_-]{4,64})[\"']",
    r"data-storerocket-account\s*=\s*[\"']([A-Za-z0-9_-]{4,64})[\"']",
    r"storerocket(?:\.io|\.test)/api/user/([A-Za-z0-9_-]{4,64})",
)
_SCRIPT_URL = re.compile(r"https?://[^\s\"'<>]+\.js(?:\?[^\s\"'<>]*)?")


class StoreRocketConfig:
    """Either a known account or the scripts to probe for one."""

    def __init__(self, account: Optional[str] = None, script_urls: Optional[List[str]] = None):
        self.account = account
        self.script_urls = script_urls or []

    def __repr__(self) -> str:
        return f"StoreRocketConfig(account={self.account!r}, scripts={len(self.script_urls)})"


def extract_account(text: str) -> Optional[str]:
    if "storerocket" not in text.lower():
        return None
    for pattern in _PATTERNS:
        match = pattern.search(text)
        if match and match.group(1).strip():
            return match.group(1).strip()
    return None


def candidate_script_urls(html: str) -> List[str]:
    """Absolute script URLs mentioning the locator, sorted and de-duplicated."""
    urls = {
        url for url in _SCRIPT_URL.findall(html)
        if any(hint in url.lower() for hint in storerocket_config.SCRIPT_HINTS)
    }
    return sorted(urls)[:storerocket_config.MAX_SCRIPT_PROBES]


def parse_stores(payload: Any) -> List[RawLocation]:
    stores = None
    if isinstance(payload, dict):
        results = payload.get("results")
        if isinstance(results, dict) and isinstance(results.get("locations"), list):
            stores = results["locations"]
        elif isinstance(payload.get("locations"), list):
            stores = payload["locations"]
    if not stores:
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
            locator_source=StoreRocketAdapter.name,
            external_id=id_value(store, "obf_id", "id"),
            address_line1=first_text(store, "address", "display_address"),
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


class StoreRocketAdapter(LocatorAdapter):
    name = "storerocket"

    def detect(self, html: str) -> Optional[StoreRocketConfig]:
        account = extract_account(html)
        if account:
            return StoreRocketConfig(account=account)
        if "storerocket" not in html.lower():
            return None
        scripts = candidate_script_urls(html)
        return StoreRocketConfig(script_urls=scripts) if scripts else None

    def _probe_scripts(self, ctx: FetchContext, config: StoreRocketConfig) -> Optional[str]:
        for url in config.script_urls:
            try:
                body = ctx.get_text(url, max_attempts=1)
            except FetchCancelled:
                raise
            except FetchError as e:
                logging.debug(f"{ctx.label} storerocket script probe {sanitize_url(url)} failed: {e}")
                continue
            account = extract_account(body)
            if account:
                return account
        return None

    def fetch(self, ctx: FetchContext, config: StoreRocketConfig) -> List[RawLocation]:
        account = config.account or self._probe_scripts(ctx, config)
        if not account:
            return []
        url = storerocket_config.API_URL_TEMPLATE.format(account=account)
        return parse_stores(ctx.get_json(url))
