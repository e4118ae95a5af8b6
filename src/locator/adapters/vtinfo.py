"""VTInfo finder iframe (beverage distributor locators).

The locator page embeds ``finder.vtinfo.com/finder/web/v2/iframe?custID=..``.
The iframe page carries the hidden form fields and CSRF token needed to
replay its search form, and the search answers one ZIP/coordinate at a
time with an HTML fragment of ``article.finder_location`` cards. The
sweep runs over the strategic US points through the shared VTInfo gate,
with per-brand pacing, and stops once enough unique stores are found.
"""

import html as html_lib
import logging
import re
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import parse_qsl

from bs4 import BeautifulSoup

from config import vtinfo_config
from src.locator.adapters.base import LocatorAdapter, text_value
from src.locator.grid import STRATEGIC_US_POINTS, GeoGridSearch, GridPoint
from src.locator.types import FetchContext, RawLocation
from src.shared import http
from src.shared.constants import HTTP
from src.shared.delays import stable_pacing_ms
from src.shared.http import FetchError
from src.shared.retry import is_retriable, with_retry

__all__ = [
    'VtinfoAdapter',
    'VtinfoEmbed',
    'VtinfoSession',
    'build_search_form',
    'dedupe_vtinfo',
    'extract_embed',
    'is_rate_limited_body',
    'pacing_seconds',
    'parse_iframe',
    'parse_search_results',
]

_IFRAME_QUERY = re.compile(r"finder\.vtinfo\.com/finder/web/v2/iframe\?([^\"'\s>]+)")


@dataclass(frozen=True)
class VtinfoEmbed:
    cust_id: str
    uuid: Optional[str] = None


@dataclass(frozen=True)
class VtinfoSession:
    """Search form parameters read from the iframe page."""
    pagesize: str
    implementation_id: str
    uuid: str
    csrf_token: str
    on_prem: str
    off_prem: str


def extract_embed(html: str) -> Optional[VtinfoEmbed]:
    if "finder.vtinfo.com" not in html:
        return None
    normalized = (
        html.replace("&amp;", "&")
        .replace("\\\\/", "/")
        .replace("\\/", "/")
        .replace("\n", "")
    )
    match = _IFRAME_QUERY.search(normalized)
    if not match:
        return None
    cust_id = uuid = None
    for key, value in parse_qsl(match.group(1), keep_blank_values=True):
        if key == "custID" and value:
            cust_id = value
        elif key == "UUID" and value:
            uuid = value
    if not cust_id:
        return None
    return VtinfoEmbed(cust_id=cust_id, uuid=uuid)


def iframe_url(embed: VtinfoEmbed) -> str:
    url = f"{vtinfo_config.IFRAME_URL}?custID={embed.cust_id}"
    if embed.uuid:
        url += f"&UUID={embed.uuid}"
    return url


def _js_string(html: str, variable: str) -> Optional[str]:
    match = re.search(rf"{re.escape(variable)}\s*=\s*\"([^\"]*)\"", html)
    if not match:
        return None
    return html_lib.unescape(match.group(1).replace("\\/", "/")).strip()


def _hidden_input(soup: BeautifulSoup, name: str) -> Optional[str]:
    field = soup.find("input", attrs={"name": name})
    if field is None or field.get("value") is None:
        return None
    return field.get("value").strip()


def parse_iframe(page: str, embed: VtinfoEmbed) -> VtinfoSession:
    soup = BeautifulSoup(page, "html.parser")
    return VtinfoSession(
        pagesize=_hidden_input(soup, "pagesize") or vtinfo_config.DEFAULT_PAGESIZE,
        implementation_id=_hidden_input(soup, "implementationID") or "",
        uuid=_hidden_input(soup, "UUID") or embed.uuid or "",
        csrf_token=_js_string(page, "CSRFToken") or "",
        on_prem=_js_string(page, "onPremDescription") or vtinfo_config.DEFAULT_ON_PREM,
        off_prem=_js_string(page, "offPremDescription") or vtinfo_config.DEFAULT_OFF_PREM,
    )


def build_search_form(cust_id: str, session: VtinfoSession, point: GridPoint) -> List[tuple]:
    """Form fields in the order the iframe posts them; ``storeType`` repeats."""
    zip_code = point.zip or ""
    form = [
        ("custID", cust_id),
        ("pagesize", session.pagesize),
        ("implementationID", session.implementation_id),
        ("action", "results"),
        ("d", zip_code),
        ("z", zip_code),
        ("m", vtinfo_config.SEARCH_RADIUS_MILES),
        ("lat", str(point.lat)),
        ("long", str(point.lng)),
        ("themeVersion", vtinfo_config.THEME_VERSION),
        ("onPremDescription", session.on_prem),
        ("offPremDescription", session.off_prem),
        ("CSRFToken", session.csrf_token),
        ("storeType", "on"),
        ("storeType", "off"),
    ]
    if session.uuid:
        form.append(("UUID", session.uuid))
    # Some deployments reject searches without these
    form.append(("minResults", ""))
    form.append(("minSold", ""))
    return form


def _coordinate(value: Optional[str]) -> Optional[float]:
    try:
        return float(value) if value not in (None, "") else None
    except ValueError:
        return None


def parse_search_results(page: str) -> List[RawLocation]:
    soup = BeautifulSoup(page, "html.parser")
    locations = []
    for article in soup.find_all("article", class_="finder_location"):
        heading = article.find("h2", class_="finder_dba_text")
        name = text_value(heading.get_text(" ", strip=True)) if heading else None
        if not name:
            continue

        address = None
        address_link = article.find("a", class_="finder_address")
        if address_link is not None:
            street = address_link.find("span")
            if street is not None and not street.get("class"):
                address = text_value(street.get_text(" ", strip=True))

        city = article.find("span", class_="finder_address_city")
        state = article.find("span", class_="finder_address_state")
        phone = None
        tel = article.find("a", href=re.compile(r"^tel:"))
        if tel is not None:
            phone_span = tel.find("span")
            phone = text_value((phone_span or tel).get_text(" ", strip=True))

        locations.append(RawLocation(
            name=name,
            locator_source=VtinfoAdapter.name,
            address_line1=address,
            city=text_value(city.get_text(strip=True)) if city else None,
            state=text_value(state.get_text(strip=True)) if state else None,
            country="US",
            latitude=_coordinate(article.get("data-latitude")),
            longitude=_coordinate(article.get("data-longitude")),
            phone=phone,
            raw_payload={"html": str(article)},
        ))
    return locations


def dedupe_vtinfo(locations: List[RawLocation]) -> List[RawLocation]:
    """Keep the first card per (name, address, city, state), case-insensitive."""
    seen = set()
    unique = []
    for location in locations:
        key = tuple(
            (value or "").lower()
            for value in (location.name, location.address_line1, location.city, location.state)
        )
        if key in seen:
            continue
        seen.add(key)
        unique.append(location)
    return unique


def is_rate_limited_body(body: str) -> bool:
    lowered = body.lower()
    return any(marker in lowered for marker in vtinfo_config.RATE_LIMIT_MARKERS)


def pacing_seconds(cust_id: str, index: int) -> float:
    return stable_pacing_ms(
        cust_id, index, vtinfo_config.PACING_BASE_MS, vtinfo_config.PACING_SPREAD_MS
    ) / 1000.0


def _retriable(error: BaseException) -> bool:
    if isinstance(error, FetchError) and error.kind == 'empty':
        return True
    return is_retriable(error)


class VtinfoAdapter(LocatorAdapter):
    name = "vtinfo"

    def __init__(self, points: Optional[List[GridPoint]] = None) -> None:
        self.points = points if points is not None else STRATEGIC_US_POINTS

    def detect(self, html: str) -> Optional[VtinfoEmbed]:
        return extract_embed(html)

    def _user_agents(self, ctx: FetchContext) -> List[str]:
        if ctx.user_agent == HTTP.BROWSER_USER_AGENT:
            return [HTTP.BROWSER_USER_AGENT]
        return [ctx.user_agent, HTTP.BROWSER_USER_AGENT]

    def _request(self, ctx: FetchContext, send) -> str:
        """One gated request per user agent, retried with VTInfo backoff.

        ``send(user_agent)`` performs the request. Rate-limit pages served
        with a 200 status are turned into 429 errors.
        """
        gate = ctx.gate(self.name, vtinfo_config.MIN_REQUEST_GAP)

        def attempt() -> str:
            last_error: Optional[FetchError] = None
            for user_agent in self._user_agents(ctx):
                gate.wait(ctx.cancel_event)
                try:
                    body = send(user_agent)
                except FetchError as e:
                    # The browser user agent gets its turn even after a 403
                    last_error = e
                    continue
                if is_rate_limited_body(body):
                    last_error = FetchError(vtinfo_config.SEARCH_URL, "vtinfo rate limit page", status=429)
                elif not body.strip():
                    last_error = FetchError(vtinfo_config.SEARCH_URL, "empty vtinfo response", kind='empty')
                else:
                    return body
            raise last_error

        return with_retry(
            attempt,
            max_attempts=vtinfo_config.MAX_ATTEMPTS,
            base_delay=vtinfo_config.BACKOFF_BASE,
            max_delay=vtinfo_config.BACKOFF_MAX,
            max_retry_after=vtinfo_config.MAX_RETRY_AFTER,
            cancel_event=ctx.cancel_event,
            retriable=_retriable,
            label=ctx.label,
        )

    def fetch(self, ctx: FetchContext, config: VtinfoEmbed) -> List[RawLocation]:
        url = iframe_url(config)
        page = self._request(
            ctx,
            lambda ua: http.fetch_html(
                ctx.session, url, ctx.timeout, ua, headers=vtinfo_config.get_headers(ctx.locator_url or url)
            ),
        )
        session = parse_iframe(page, config)
        logging.debug(
            f"{ctx.label} vtinfo iframe parsed (pagesize={session.pagesize}, "
            f"implementation={session.implementation_id or '-'})"
        )

        def query(point: GridPoint, index: int) -> List[RawLocation]:
            form = build_search_form(config.cust_id, session, point)
            body = self._request(
                ctx,
                lambda ua: http.post_form(
                    ctx.session, vtinfo_config.SEARCH_URL, form, ctx.timeout, ua,
                    headers=vtinfo_config.get_headers(url),
                ),
            )
            if "Invalid token" in body:
                logging.debug(f"{ctx.label} vtinfo rejected the CSRF token for {point.zip}")
            return parse_search_results(body)

        try:
            per_query_max = int(session.pagesize)
        except ValueError:
            per_query_max = None

        search = GeoGridSearch(
            ctx,
            None,  # gated per request inside _request
            query,
            source=self.name,
            per_query_max=per_query_max,
            pacing=lambda index: pacing_seconds(config.cust_id, index),
            stop_after=vtinfo_config.MAX_LOCATIONS,
            dedupe=dedupe_vtinfo,
        )
        return search.run(self.points).locations

