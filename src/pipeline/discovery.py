"""Locator URL resolution: configured URL first, then probing common paths."""

import logging
from typing import Optional, Tuple

import requests

from src.pipeline.brands import Brand
from src.shared.constants import DISCOVERY, HTTP
from src.shared.http import head_ok

__all__ = [
    'LOCATOR_PATHS',
    'SOURCE_CONFIGURED',
    'SOURCE_DISCOVERED',
    'candidate_urls',
    'discover_locator_url',
    'resolve_locator_url',
]

SOURCE_CONFIGURED = 'configured'
SOURCE_DISCOVERED = 'discovered'

# Probed in order; Shopify page paths first since most brands run on it
LOCATOR_PATHS = (
    "/pages/where-to-buy",
    "/pages/store-locator",
    "/pages/storelocator",
    "/pages/find-us",
    "/pages/locations",
    "/pages/retailers",
    "/pages/find",
    "/pages/beverage-finder",
    "/locator",
    "/storelocator",
    "/find-products",
    "/find",
    "/beverage-finder",
    "/stores",
)


def candidate_urls(domain: str):
    host = domain.strip().rstrip('/')
    for prefix in ('https://', 'http://'):
        if host.startswith(prefix):
            host = host[len(prefix):]
    return [f"https://{host}{path}" for path in LOCATOR_PATHS]


def discover_locator_url(
    domain: str,
    session: requests.Session,
    user_agent: str = HTTP.USER_AGENT,
    timeout: float = DISCOVERY.PROBE_TIMEOUT,
) -> Optional[str]:
    """First candidate path on ``domain`` that answers a HEAD with 2xx."""
    for url in candidate_urls(domain):
        if head_ok(session, url, timeout=timeout, user_agent=user_agent):
            return url
    return None


def resolve_locator_url(
    brand: Brand,
    session: requests.Session,
    user_agent: str = HTTP.USER_AGENT,
) -> Optional[Tuple[str, str]]:
    """Locator URL for a brand and how it was found.

    Returns:
        ``(url, source)`` with source ``configured`` or ``discovered``,
        or None when there is nothing to scrape
    """
    if brand.store_locator_url:
        return brand.store_locator_url, SOURCE_CONFIGURED
    if not brand.domain:
        return None
    url = discover_locator_url(brand.domain, session, user_agent)
    if url:
        logging.info(f"[{brand.slug}] discovered locator page {url}")
        return url, SOURCE_DISCOVERED
    return None
