"""Location collection run: every brand through fetch, trust gate and reconciliation.

Brands are processed by a bounded thread pool. A brand's failure is
recorded in the audit trail and never stops the others; the run itself is
marked failed only when every brand failed.
"""

import concurrent.futures
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

import requests

from src.locator.adapters import LocatorAdapter
from src.locator.orchestrator import fetch_store_locations
from src.locator.trust import evaluate_trust
from src.locator.types import FetchContext
from src.persistence.audit_store import BRAND_FAILED, BRAND_SUCCEEDED, AuditStore
from src.persistence.database import PersistenceError
from src.persistence.location_store import LocationInput, LocationStore
from src.pipeline.brands import Brand, Settings
from src.pipeline.discovery import resolve_locator_url
from src.shared import sentry_integration
from src.shared.concurrency import GateRegistry
from src.shared.constants import WORKERS
from src.shared.http import FetchCancelled, FetchError, create_session, sanitize_url

__all__ = [
    'BrandOutcome',
    'RunSummary',
    'collect_brand_locations',
    'run_collect_locations',
]

RUN_TYPE = 'locations'


@dataclass
class BrandOutcome:
    """Result of collecting one brand, rendered as its CLI line."""
    brand: Brand
    succeeded: bool
    records: int = 0
    active_count: int = 0
    new_count: int = 0
    lost_count: int = 0
    source: Optional[str] = None
    note: Optional[str] = None
    error: Optional[str] = None

    def summary_line(self) -> str:
        if not self.succeeded:
            return f"✗ {self.brand.slug}  {self.error}"
        return (
            f"✓ {self.brand.slug}  {self.active_count} active "
            f"(+{self.new_count} new, {self.lost_count} lost)  [{self.source}]"
        )


@dataclass
class RunSummary:
    run_id: Optional[int]
    outcomes: List[BrandOutcome] = field(default_factory=list)
    total_active: int = 0
    new_this_run: int = 0

    @property
    def failed(self) -> bool:
        return bool(self.outcomes) and not any(o.succeeded for o in self.outcomes)


def _join_notes(*notes: Optional[str]) -> Optional[str]:
    present = [note for note in notes if note]
    return "; ".join(present) if present else None


def collect_brand_locations(
    brand: Brand,
    settings: Settings,
    location_store: LocationStore,
    gates: Optional[GateRegistry] = None,
    cancel_event: Optional[threading.Event] = None,
    session: Optional[requests.Session] = None,
    adapters: Optional[Sequence[LocatorAdapter]] = None,
) -> BrandOutcome:
    """Resolve, scrape, gate and reconcile one brand.

    Never raises for expected failures; they come back as a failed outcome.
    """
    label = f"[{brand.slug}]"
    session = session if session is not None else create_session()
    sentry_integration.set_brand_context(brand.slug)

    resolved = resolve_locator_url(brand, session, settings.user_agent)
    if resolved is None:
        logging.warning(f"{label} no locator URL configured or discovered")
        return BrandOutcome(brand, False, error="no locator URL configured or discovered")
    locator_url, url_source = resolved

    ctx = FetchContext(
        session=session,
        timeout=settings.request_timeout_secs,
        user_agent=settings.user_agent,
        locator_url=locator_url,
        gates=gates,
        cancel_event=cancel_event,
        label=label,
    )
    try:
        result = fetch_store_locations(locator_url, ctx=ctx, adapters=adapters)
    except FetchCancelled:
        logging.warning(f"{label} cancelled")
        return BrandOutcome(brand, False, error="cancelled")
    except FetchError as e:
        logging.error(f"{label} failed to fetch locator page {sanitize_url(locator_url)}: {e}")
        sentry_integration.capture_brand_error(
            e, brand.slug, {"locator_url": locator_url, "url_source": url_source}
        )
        return BrandOutcome(brand, False, error=f"locator fetch failed: {e}")

    decision = evaluate_trust(result.locations)
    if not decision.accepted:
        logging.warning(f"{label} trust gate rejected scrape: {decision.reason}")
        return BrandOutcome(
            brand, False, records=len(result.locations), source=result.source,
            note=result.note, error=decision.reason,
        )
    sentry_integration.add_breadcrumb(
        f"{brand.slug}: {result.source} returned {len(result.locations)} locations"
    )

    items = [LocationInput.from_raw(brand.id, location) for location in result.locations]
    current_keys = {item.location_key for item in items}
    try:
        previous_keys = location_store.get_active_location_keys(brand.id)
        counts = location_store.upsert_locations(brand.id, items)
    except PersistenceError as e:
        logging.error(f"{label} failed to store locations: {e}")
        sentry_integration.capture_brand_error(e, brand.slug, {"stage": "upsert"})
        return BrandOutcome(
            brand, False, records=len(current_keys), source=result.source, error=f"persistence failed: {e}"
        )

    note = result.note
    lost = 0
    try:
        lost = location_store.deactivate_missing(brand.id, current_keys)
    except PersistenceError as e:
        # The upsert stands; the missing rows stay active until the next run
        logging.error(f"{label} upserted but failed to deactivate missing locations: {e}")
        sentry_integration.capture_brand_error(e, brand.slug, {"stage": "deactivate"})
        note = _join_notes(note, f"deactivation failed: {e}")

    gone = previous_keys - current_keys
    if gone:
        logging.info(f"{label} {len(gone)} previously active locations no longer listed")

    try:
        active = location_store.count_active(brand.id)
    except PersistenceError as e:
        logging.error(f"{label} failed to count active locations: {e}")
        active = len(current_keys)

    logging.info(
        f"{label} {result.source}: {len(current_keys)} locations "
        f"({counts.new} new, {counts.updated} updated, {lost} deactivated)"
    )
    return BrandOutcome(
        brand,
        True,
        records=len(current_keys),
        active_count=active,
        new_count=counts.new,
        lost_count=lost,
        source=result.source,
        note=note,
    )


def _record(audit_store: AuditStore, run_id: int, outcome: BrandOutcome) -> None:
    try:
        audit_store.record_brand_status(
            run_id,
            outcome.brand.id,
            BRAND_SUCCEEDED if outcome.succeeded else BRAND_FAILED,
            record_count=outcome.records,
            note=outcome.note,
            error=outcome.error,
        )
    except PersistenceError as e:
        logging.error(f"[{outcome.brand.slug}] failed to write audit status: {e}")


def run_collect_locations(
    brands: List[Brand],
    settings: Settings,
    location_store: LocationStore,
    audit_store: AuditStore,
    trigger: str = 'cli',
    adapters: Optional[Sequence[LocatorAdapter]] = None,
    cancel_event: Optional[threading.Event] = None,
    session_factory: Callable[[], requests.Session] = create_session,
    echo: Callable[[str], None] = print,
) -> RunSummary:
    """Collect every brand concurrently and write the run's audit trail.

    Args:
        brands: Brands to process
        settings: Run settings (timeout, user agent, pool width)
        location_store: Location store receiving accepted batches
        audit_store: Audit store for the run and per-brand rows
        trigger: Who started the run, stored on the run row
        adapters: Adapter chain override (tests)
        cancel_event: Set to abort in-flight brands
        session_factory: Builds one HTTP session per brand
        echo: Receives the per-brand and summary lines

    Raises:
        PersistenceError: If the run row itself cannot be created
    """
    run_id = audit_store.create_run(RUN_TYPE, trigger)
    audit_store.start_run(run_id)
    summary = RunSummary(run_id=run_id)

    gates = GateRegistry()
    cancel_event = cancel_event if cancel_event is not None else threading.Event()
    workers = max(1, min(int(settings.max_concurrent_brands), WORKERS.MAX_CONCURRENT_LIMIT))
    logging.info(f"Collecting locations for {len(brands)} brand(s) with {workers} worker(s) (run {run_id})")

    def work(brand: Brand) -> BrandOutcome:
        try:
            with session_factory() as session:
                return collect_brand_locations(
                    brand, settings, location_store, gates, cancel_event, session, adapters
                )
        except Exception as e:
            logging.exception(f"[{brand.slug}] unexpected error")
            sentry_integration.capture_brand_error(e, brand.slug)
            return BrandOutcome(brand, False, error=f"unexpected error: {e}")

    with concurrent.futures.ThreadPoolExecutor(
        max_workers=workers, thread_name_prefix='brand'
    ) as executor:
        futures = {executor.submit(work, brand): brand for brand in brands}
        try:
            for future in concurrent.futures.as_completed(futures):
                outcome = future.result()
                summary.outcomes.append(outcome)
                _record(audit_store, run_id, outcome)
                echo(outcome.summary_line())
        except KeyboardInterrupt:
            cancel_event.set()
            for pending in futures:
                pending.cancel()
            audit_store.fail_run(run_id, "interrupted")
            raise

    summary.new_this_run = sum(o.new_count for o in summary.outcomes if o.succeeded)
    try:
        summary.total_active = location_store.count_active()
    except PersistenceError as e:
        logging.error(f"Failed to count active locations: {e}")

    if summary.failed:
        audit_store.fail_run(run_id, "all brands failed")
        logging.error(f"Run {run_id} failed: all {len(summary.outcomes)} brand(s) failed")
    else:
        records = sum(o.records for o in summary.outcomes if o.succeeded)
        audit_store.complete_run(run_id, records)
    echo(
        f"Run complete: {summary.total_active} total active locations, "
        f"{summary.new_this_run} new this run"
    )
    return summary
