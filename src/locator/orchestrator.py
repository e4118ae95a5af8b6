"""Strategy chain: fetch a brand's locator page once, then try adapters.

Adapters are tried in registry order. The first one that detects its
widget and returns records wins; nothing after it is fetched. An adapter
that detects its widget but fails, on the network or on a payload it
does not expect, is logged and skipped so a generic scanner may still
rescue the brand. A page that fetches but matches nothing yields an
empty result, not an error.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from src.locator.adapters import LocatorAdapter, default_adapters
from src.locator.types import FetchContext, RawLocation
from src.shared.constants import HTTP
from src.shared.http import FetchCancelled, FetchError, sanitize_url

__all__ = [
    'StrategyResult',
    'fetch_locator_page',
    'fetch_store_locations',
    'run_strategies',
]

# Statuses that bot-averse sites answer to a non-browser user agent
_BROWSER_RETRY_STATUSES = frozenset({401, 403, 406})


@dataclass
class StrategyResult:
    """What the strategy chain produced for one page.

    Attributes:
        locations: Records from the winning adapter (empty if none matched)
        source: Name of the winning adapter, or None
        note: Non-fatal detail for the audit record, e.g. a fallback
        failed_sources: Adapters that detected their widget but failed
    """
    locations: List[RawLocation] = field(default_factory=list)
    source: Optional[str] = None
    note: Optional[str] = None
    failed_sources: List[str] = field(default_factory=list)


def fetch_locator_page(ctx: FetchContext) -> str:
    """GET the locator page, retrying once as a browser if refused.

    Raises:
        FetchError: The page could not be fetched (fatal for the brand)
    """
    try:
        return ctx.get_text(ctx.locator_url)
    except FetchCancelled:
        raise
    except FetchError as e:
        if e.status not in _BROWSER_RETRY_STATUSES or ctx.user_agent == HTTP.BROWSER_USER_AGENT:
            raise
        logging.info(
            f"{ctx.label} locator page returned {e.status}; retrying with a browser user agent"
        )
        return ctx.get_text(ctx.locator_url, user_agent=HTTP.BROWSER_USER_AGENT)


def run_strategies(
    html: str,
    ctx: FetchContext,
    adapters: Optional[Sequence[LocatorAdapter]] = None,
) -> StrategyResult:
    """Try each adapter against ``html`` and return the first non-empty result."""
    adapters = default_adapters() if adapters is None else adapters
    result = StrategyResult()

    for adapter in adapters:
        ctx.check_cancelled()
        config = adapter.detect(html)
        if config is None:
            continue

        logging.debug(f"{ctx.label} detected {adapter.name} locator")
        try:
            locations = adapter.fetch(ctx, config)
        except FetchCancelled:
            raise
        except FetchError as e:
            logging.warning(f"{ctx.label} {adapter.name} fetch failed: {e}")
            result.failed_sources.append(adapter.name)
            continue
        except Exception:  # pylint: disable=broad-except
            # Payload shapes the mapping did not expect; a later adapter may still match
            logging.exception(f"{ctx.label} {adapter.name} failed on an unexpected payload")
            result.failed_sources.append(adapter.name)
            continue

        if not locations:
            logging.debug(f"{ctx.label} {adapter.name} detected but returned no locations")
            continue

        result.locations = locations
        result.source = adapter.name
        if result.failed_sources:
            result.note = f"fallback succeeded after {', '.join(result.failed_sources)} failed"
        logging.info(f"{ctx.label} {adapter.name} returned {len(locations)} locations")
        return result

    logging.warning(f"{ctx.label} no parseable locator found at {sanitize_url(ctx.locator_url)}")
    return result


def fetch_store_locations(
    locator_url: str,
    timeout: float = HTTP.TIMEOUT,
    user_agent: str = HTTP.USER_AGENT,
    ctx: Optional[FetchContext] = None,
    adapters: Optional[Sequence[LocatorAdapter]] = None,
) -> StrategyResult:
    """Fetch ``locator_url`` once and run the strategy chain over it.

    Args:
        locator_url: Brand's store locator page
        timeout: Per-request timeout in seconds
        user_agent: User agent for the page and provider requests
        ctx: Existing fetch context (shared gates, cancellation); built
            from the other arguments when omitted
        adapters: Adapter chain override, defaults to the registry

    Returns:
        StrategyResult, with empty ``locations`` when nothing matched

    Raises:
        FetchError: If the locator page itself cannot be fetched
    """
    if ctx is None:
        ctx = FetchContext(timeout=timeout, user_agent=user_agent, locator_url=locator_url)
    elif not ctx.locator_url:
        ctx.locator_url = locator_url

    html = fetch_locator_page(ctx)
    return run_strategies(html, ctx, adapters)
