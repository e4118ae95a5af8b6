"""Destini (lets.shop) locator.

The widget names an alpha code and locator id, which locate a bootstrap
JSON on lets.shop. That JSON points at the Knox API: the product ids come
from ``productCategories`` and stores from a ``knox`` radius search, so
the stores are swept over the strategic US points through a gate shared
by every brand on Destini.

Nuxt builds often keep the widget attributes in a bundled script instead
of the page, so linked scripts are probed when the page has none.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urljoin

from config import destini_config
from src.locator.adapters.base import (
    LocatorAdapter,
    first_text,
    float_value,
    id_value,
)
from src.locator.grid import STRATEGIC_US_POINTS, GeoGridSearch, GridPoint
from src.locator.types import FetchContext, RawLocation
from src.shared.http import FetchCancelled, FetchError, sanitize_url

__all__ = [
    'DestiniAdapter',
    'DestiniConfig',
    'DestiniSettings',
    'build_knox_payload',
    'extract_config',
    'parse_knox_locations',
    'parse_product_ids',
    'script_probe_urls',
    'script_sources',
]

_ALPHA_CODE = re.compile(r"alpha-code\s*=\s*[\"']([A-Za-z0-9_-]{1,64})[\"']")
_LOCATOR_ID = re.compile(r"locator-id\s*=\s*[\"']([A-Za-z0-9_-]{1,64})[\"']")
_CLIENT_ID = re.compile(r"client-id\s*=\s*[\"']([A-Za-z0-9_-]{1,128})[\"']")
_BOOTSTRAP_PATH = re.compile(
    r"lets\.shop/locators/([A-Za-z0-9_-]{1,64})/([A-Za-z0-9_-]{1,64})/([A-Za-z0-9_-]{1,64})\.json"
)
_SCRIPT_SRC = re.compile(r"<script[^>]+src\s*=\s*[\"']([^\"']+\.js[^\"']*)[\"'][^>]*>")
_LINK_HREF = re.compile(r"<link[^>]+href\s*=\s*[\"']([^\"']+\.js[^\"']*)[\"'][^>]*>")


@dataclass(frozen=True)
class DestiniConfig:
    """Locator ids, or the scripts to probe for them when the page has none."""
    alpha_code: Optional[str] = None
    locator_id: Optional[str] = None
    client_id: Optional[str] = None
    script_sources: Tuple[str, ...] = field(default=())

    @property
    def resolved(self) -> bool:
        return bool(self.alpha_code and self.locator_id)


@dataclass(frozen=True)
class DestiniSettings:
    """Knox search parameters read from the bootstrap JSON."""
    client_id: str
    knox_url: str
    radius: int = destini_config.DEFAULT_RADIUS
    max_stores: int = destini_config.DEFAULT_MAX_STORES
    text_style: str = destini_config.DEFAULT_TEXT_STYLE

    def endpoint(self, path: str) -> str:
        return self.knox_url.rstrip('/') + '/' + path


def _has_marker(text: str) -> bool:
    return "destini-locator" in text or "lets.shop" in text


def extract_config(text: str) -> Optional[DestiniConfig]:
    """Widget ids from attributes, falling back to the bootstrap JSON URL."""
    if not _has_marker(text):
        return None
    alpha = _ALPHA_CODE.search(text)
    locator = _LOCATOR_ID.search(text)
    alpha_code = alpha.group(1) if alpha else None
    locator_id = locator.group(1) if locator else None

    if not alpha_code or not locator_id:
        match = _BOOTSTRAP_PATH.search(text)
        # The bootstrap file is named after its own directory
        if match and match.group(2) == match.group(3):
            alpha_code = alpha_code or match.group(1)
            locator_id = locator_id or match.group(2)

    if not alpha_code or not locator_id:
        return None
    client = _CLIENT_ID.search(text)
    return DestiniConfig(
        alpha_code=alpha_code,
        locator_id=locator_id,
        client_id=client.group(1) if client else None,
    )


def script_sources(html: str) -> List[str]:
    """Raw ``src``/``href`` values of linked scripts, script tags first."""
    sources = []
    for pattern in (_SCRIPT_SRC, _LINK_HREF):
        sources.extend(source.strip() for source in pattern.findall(html))
    return sources


def script_probe_urls(sources: List[str], locator_url: str) -> List[str]:
    """Locator-looking script URLs in page order, resolved and de-duplicated."""
    urls: List[str] = []
    for source in sources:
        if source.startswith(("http://", "https://")):
            url = source
        elif locator_url:
            url = urljoin(locator_url, source)
        else:
            continue
        lowered = url.lower()
        if any(hint in lowered for hint in destini_config.SCRIPT_HINTS) and url not in urls:
            urls.append(url)
    return urls


def parse_settings(bootstrap: Any, client_id: Optional[str]) -> Optional[DestiniSettings]:
    context = bootstrap.get("context") if isinstance(bootstrap, dict) else None
    context = context if isinstance(context, dict) else {}
    client_id = client_id or id_value(context, "clientId")
    if not client_id:
        return None
    settings = context.get("settings") if isinstance(context.get("settings"), dict) else {}

    def positive_int(key: str, default: int) -> int:
        value = settings.get(key)
        if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
            return value
        return default

    return DestiniSettings(
        client_id=client_id,
        knox_url=first_text(context, "knoxUrl") or destini_config.DEFAULT_KNOX_URL,
        radius=positive_int("radius", destini_config.DEFAULT_RADIUS),
        max_stores=positive_int("maxStores", destini_config.DEFAULT_MAX_STORES),
        text_style=first_text(settings, "textStyleBm") or destini_config.DEFAULT_TEXT_STYLE,
    )


def _list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def parse_product_ids(response: Any) -> List[str]:
    """Sorted unique product ids from the category tree."""
    ids = set()
    categories = response.get("categories") if isinstance(response, dict) else None
    for category in _list(categories):
        if not isinstance(category, dict):
            continue
        for sub_category in _list(category.get("subCategories")):
            if not isinstance(sub_category, dict):
                continue
            for product in _list(sub_category.get("products")):
                if isinstance(product, dict):
                    product_id = id_value(product, "pID", "productId")
                    if product_id:
                        ids.add(product_id)
    return sorted(ids)


def build_knox_payload(settings: DestiniSettings, products: List[str], point: GridPoint) -> Dict[str, Any]:
    return {
        "params": {
            "distance": settings.radius,
            "products": products,
            "latitude": point.lat,
            "longitude": point.lng,
            "client": settings.client_id,
            "maxStores": settings.max_stores,
            "textStyleBm": settings.text_style,
        }
    }


def parse_knox_locations(response: Any) -> List[RawLocation]:
    stores = response.get("data") if isinstance(response, dict) else None
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
            locator_source=DestiniAdapter.name,
            external_id=id_value(store, "id"),
            address_line1=first_text(store, "address"),
            city=first_text(store, "city"),
            state=first_text(store, "state"),
            zip=first_text(store, "postalCode", "zip"),
            country=first_text(store, "country"),
            latitude=float_value(store, "latitude"),
            longitude=float_value(store, "longitude"),
            phone=first_text(store, "phone"),
            raw_payload=store,
        ))
    return locations


class DestiniAdapter(LocatorAdapter):
    name = "destini"

    def __init__(self, points: Optional[List[GridPoint]] = None) -> None:
        self.points = points if points is not None else STRATEGIC_US_POINTS

    def detect(self, html: str) -> Optional[DestiniConfig]:
        config = extract_config(html)
        if config is not None:
            return config
        if not _has_marker(html):
            return None
        sources = script_sources(html)
        return DestiniConfig(script_sources=tuple(sources)) if sources else None

    def _probe_scripts(self, ctx: FetchContext, config: DestiniConfig) -> Optional[DestiniConfig]:
        urls = script_probe_urls(list(config.script_sources), ctx.locator_url)
        for url in urls[:destini_config.MAX_SCRIPT_PROBES]:
            try:
                body = ctx.get_text(url, max_attempts=1)
            except FetchCancelled:
                raise
            except FetchError as e:
                logging.debug(f"{ctx.label} destini script probe {sanitize_url(url)} failed: {e}")
                continue
            found = extract_config(body)
            if found is not None:
                return found
        return None

    def fetch(self, ctx: FetchContext, config: DestiniConfig) -> List[RawLocation]:
        if not config.resolved:
            config = self._probe_scripts(ctx, config)
            if config is None:
                logging.info(f"{ctx.label} destini marker found but no locator ids in page or scripts")
                return []

        bootstrap_url = destini_config.BOOTSTRAP_URL_TEMPLATE.format(
            alpha=config.alpha_code, locator=config.locator_id
        )
        settings = parse_settings(ctx.get_json(bootstrap_url), config.client_id)
        if settings is None:
            logging.info(f"{ctx.label} destini bootstrap has no client id")
            return []

        gate = ctx.gate(self.name, destini_config.MIN_REQUEST_GAP)
        categories = ctx.post_json(
            settings.endpoint("productCategories"),
            {"params": {
                "categoryIds": "",
                "subCategoryIds": "",
                "clientId": settings.client_id,
                "level": destini_config.CATEGORY_LEVEL,
            }},
            gate=gate,
        )
        products = parse_product_ids(categories)
        if not products:
            logging.info(f"{ctx.label} destini client {settings.client_id} lists no products")
            return []

        search = GeoGridSearch(
            ctx,
            None,  # every Knox attempt takes the Destini gate
            lambda point, index: parse_knox_locations(ctx.post_json(
                settings.endpoint("knox"), build_knox_payload(settings, products, point), gate=gate
            )),
            source=self.name,
            per_query_max=settings.max_stores,
        )
        return search.run(self.points).locations
