"""AskHoodie where-to-buy embed.

AskHoodie fronts an Algolia-style product index. Stores come back as
product hits around a center point, paged, so each search center is paged
until the index says there is nothing more and hits are merged by the
dispensary id.
"""

import re
from typing import Any, Dict, List, Optional, Tuple

from config import askhoodie_config
from src.locator.adapters.base import LocatorAdapter, first_text, float_value
from src.locator.grid import GeoGridSearch, GridPoint
from src.locator.types import FetchContext, RawLocation

__all__ = [
    'AskHoodieAdapter',
    'build_search_payload',
    'dedupe_by_external_id',
    'extract_embed_id',
    'extract_hits',
    'next_page_state',
    'parse_hit',
]

_EMBED_ID = re.compile(r"hoodieEmbedWtbV2\(\s*\"([0-9a-fA-F-]{36})\"")


def extract_embed_id(html: str) -> Optional[str]:
    if "askhoodie" not in html:
        return None
    match = _EMBED_ID.search(html)
    return match.group(1) if match else None


def build_search_payload(embed_id: str, lat: float, lng: float, page: int) -> Dict[str, Any]:
    return {
        "embedToken": f"{embed_id}__dummy",
        "method": "search",
        "args": [[{
            "indexName": askhoodie_config.INDEX_NAME,
            "query": "",
            "params": {
                "aroundLatLng": f"{lat},{lng}",
                "aroundRadius": askhoodie_config.AROUND_RADIUS_METERS,
                "hitsPerPage": askhoodie_config.HITS_PER_PAGE,
                "page": page,
                "attributesToRetrieve": list(askhoodie_config.ATTRIBUTES),
            },
        }]],
    }


def _first_result(response: Any) -> Dict[str, Any]:
    if isinstance(response, dict):
        results = response.get("results")
        if isinstance(results, list) and results and isinstance(results[0], dict):
            return results[0]
        return response
    return {}


def extract_hits(response: Any) -> Optional[List[Any]]:
    """Hits of the first result set, or top-level hits; None if neither exists."""
    first = _first_result(response)
    hits = first.get("hits")
    if isinstance(hits, list):
        return hits
    if isinstance(response, dict) and isinstance(response.get("hits"), list):
        return response["hits"]
    return None


def next_page_state(response: Any) -> Tuple[int, bool]:
    first = _first_result(response)
    page = first.get("page") if isinstance(first.get("page"), int) else 0
    nb_pages = first.get("nbPages") if isinstance(first.get("nbPages"), int) else 0
    next_page = page + 1
    has_next = nb_pages > 0 and next_page < nb_pages and next_page <= askhoodie_config.MAX_PAGES
    return next_page, has_next


def parse_hit(hit: Any) -> Optional[RawLocation]:
    if not isinstance(hit, dict):
        return None
    external_id = first_text(hit, "MASTER_D_ID", "DISPENSARY_ID", "objectID")
    name = first_text(hit, "MASTER_D_NAME", "DISPENSARY_NAME")
    if not external_id or not name:
        return None
    geoloc = hit.get("_geoloc") if isinstance(hit.get("_geoloc"), dict) else {}
    return RawLocation(
        name=name,
        locator_source=AskHoodieAdapter.name,
        external_id=external_id,
        address_line1=first_text(hit, "MASTER_D_ADDRESS", "FULL_ADDRESS", "address"),
        city=first_text(hit, "MASTER_D_CITY", "D_CITY", "city"),
        state=first_text(hit, "MASTER_D_STATE", "D_STATE", "state"),
        zip=first_text(hit, "MASTER_D_ZIP", "D_ZIP", "zip"),
        country=first_text(hit, "MASTER_D_COUNTRY", "D_COUNTRY", "country"),
        latitude=float_value(geoloc, "lat"),
        longitude=float_value(geoloc, "lng"),
        phone=first_text(hit, "MASTER_D_PHONE", "PHONE", "phone"),
        raw_payload=hit,
    )


def dedupe_by_external_id(locations: List[RawLocation]) -> List[RawLocation]:
    seen = set()
    unique = []
    for location in locations:
        if location.external_id in seen:
            continue
        seen.add(location.external_id)
        unique.append(location)
    return unique


class AskHoodieAdapter(LocatorAdapter):
    name = "askhoodie"

    def __init__(self, centers: Optional[List[Tuple[float, float]]] = None) -> None:
        centers = centers if centers is not None else askhoodie_config.CENTERS
        self.points = [GridPoint(lat, lng) for lat, lng in centers]

    def detect(self, html: str) -> Optional[str]:
        return extract_embed_id(html)

    def _search_center(self, ctx: FetchContext, embed_id: str, point: GridPoint) -> List[RawLocation]:
        gate = ctx.gate(self.name, askhoodie_config.MIN_REQUEST_GAP)
        found: List[RawLocation] = []
        page = 0
        empty_pages = 0
        while True:
            response = ctx.post_json(
                askhoodie_config.SEARCH_URL,
                build_search_payload(embed_id, point.lat, point.lng, page),
                gate=gate,
            )
            hits = extract_hits(response)
            if hits is None:
                return found
            if not hits:
                empty_pages += 1
                page += 1
                if empty_pages >= askhoodie_config.MAX_EMPTY_PAGES or page >= askhoodie_config.EMPTY_PAGE_STOP_AT:
                    return found
                continue

            empty_pages = 0
            for hit in hits:
                location = parse_hit(hit)
                if location is not None:
                    found.append(location)

            page, has_next = next_page_state(response)
            if not has_next:
                return found

    def fetch(self, ctx: FetchContext, config: str) -> List[RawLocation]:
        search = GeoGridSearch(
            ctx,
            None,  # every page request takes the AskHoodie gate
            lambda point, index: self._search_center(ctx, config, point),
            source=self.name,
            dedupe=dedupe_by_external_id,
        )
        return search.run(self.points).locations
