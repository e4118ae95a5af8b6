"""Geo-grid search for locator APIs that only answer "stores near a point".

Such providers have no "list all" operation, so the collector sweeps a
fixed set of points whose spacing does not exceed the query radius and
merges what comes back. The sweep is best effort: a failed point is
skipped, and a point whose answer hit the provider's per-query maximum is
counted and reported as a coverage risk.

Usage:
    search = GeoGridSearch(ctx, gate, query=lambda point, i: client.near(point),
                           source="destini", per_query_max=100)
    result = search.run(STRATEGIC_US_POINTS)
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from src.locator.dedup import dedupe_by_coordinates
from src.locator.types import FetchContext, RawLocation
from src.shared.concurrency import RequestGate
from src.shared.constants import GATE, GRID
from src.shared.delays import random_delay
from src.shared.http import FetchCancelled, FetchError

__all__ = [
    'GeoGridSearch',
    'GridConfig',
    'GridPoint',
    'GridSearchResult',
    'STRATEGIC_US_POINTS',
    'generate_grid',
    'grid_covers_radius',
]


@dataclass(frozen=True)
class GridPoint:
    """A query origin. ``zip`` is set for providers that search by ZIP."""
    lat: float
    lng: float
    zip: Optional[str] = None
    label: str = ""


@dataclass(frozen=True)
class GridConfig:
    """Bounding box and physical spacing (miles) of a coverage grid."""
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float
    step_miles: float

    @classmethod
    def sc_region(cls) -> 'GridConfig':
        """South Carolina and immediate neighbors, 30-mile step."""
        return cls(min_lat=32.0, max_lat=35.2, min_lng=-83.4, max_lng=-78.5, step_miles=30.0)

    @classmethod
    def conus_coarse(cls) -> 'GridConfig':
        """Continental US at a 200-mile step. Pair with a 200+ mile radius."""
        return cls(min_lat=24.4, max_lat=49.4, min_lng=-125.0, max_lng=-66.9, step_miles=200.0)


# Population centers used as the default sweep for radius-search providers
STRATEGIC_US_POINTS: List[GridPoint] = [
    GridPoint(44.9778, -93.2650, "55401", "Minneapolis"),
    GridPoint(39.8283, -98.5795, "67202", "Kansas"),
    GridPoint(34.0522, -118.2437, "90001", "Los Angeles"),
    GridPoint(40.7128, -74.0060, "10001", "New York"),
    GridPoint(41.8781, -87.6298, "60601", "Chicago"),
    GridPoint(29.7604, -95.3698, "77001", "Houston"),
    GridPoint(39.7392, -104.9903, "80202", "Denver"),
    GridPoint(33.4484, -112.0740, "85001", "Phoenix"),
    GridPoint(35.2271, -80.8431, "28202", "Charlotte"),
]


def generate_grid(config: GridConfig) -> List[GridPoint]:
    """Uniform lat/lng grid across the bounds.

    The longitude step widens with latitude so each column covers about
    ``step_miles`` on the ground. Each loop runs half a step past its upper
    bound so the far edge is always covered.
    """
    if config.step_miles <= 0:
        raise ValueError("step_miles must be positive")

    lat_step = config.step_miles / GRID.MILES_PER_DEGREE_LAT
    points = []
    lat = config.min_lat
    while lat <= config.max_lat + lat_step * 0.5:
        cos_lat = max(math.cos(math.radians(lat)), 0.01)
        lng_step = config.step_miles / (GRID.MILES_PER_DEGREE_LAT * cos_lat)
        lng = config.min_lng
        while lng <= config.max_lng + lng_step * 0.5:
            points.append(GridPoint(lat, lng))
            lng += lng_step
        lat += lat_step
    return points


def grid_covers_radius(config: GridConfig, radius_miles: float) -> bool:
    """True when adjacent points are no farther apart than the query radius."""
    return 0 < config.step_miles <= radius_miles


@dataclass
class GridSearchResult:
    """Merged locations plus sweep statistics."""
    locations: List[RawLocation] = field(default_factory=list)
    points_queried: int = 0
    points_failed: int = 0
    points_truncated: int = 0
    stopped_early: bool = False


class GeoGridSearch:
    """Paced, gated sweep of one query per grid point.

    Args:
        ctx: Fetch context (cancellation token and log label)
        gate: Gate shared by every brand that talks to the same API, or
            None when ``query`` gates its own requests
        query: ``query(point, index)`` returning that point's raw results
        source: Locator source name used in log messages
        per_query_max: Provider's per-query result cap, if it has one
        pacing: ``pacing(index)`` seconds to wait before query ``index``;
            defaults to a small random delay between queries
        stop_after: Stop sweeping once this many unique locations are merged
        dedupe: Merge function applied to the accumulated results
    """

    def __init__(
        self,
        ctx: FetchContext,
        gate: Optional[RequestGate],
        query: Callable[[GridPoint, int], List[RawLocation]],
        source: str,
        per_query_max: Optional[int] = None,
        pacing: Optional[Callable[[int], float]] = None,
        stop_after: Optional[int] = None,
        dedupe: Callable[[List[RawLocation]], List[RawLocation]] = dedupe_by_coordinates,
    ) -> None:
        self.ctx = ctx
        self.gate = gate
        self.query = query
        self.source = source
        self.per_query_max = per_query_max
        self.pacing = pacing
        self.stop_after = stop_after
        self.dedupe = dedupe

    def _pace(self, index: int) -> None:
        if self.pacing is not None:
            self.ctx.sleep(self.pacing(index))
        elif index > 0:
            random_delay(GATE.INTER_REQUEST_MIN, GATE.INTER_REQUEST_MAX, self.ctx.cancel_event)

    def run(self, points: Iterable[GridPoint]) -> GridSearchResult:
        """Query every point and merge the results.

        Raises:
            FetchCancelled: If the brand's token fires mid-sweep
            FetchError: The last point error, only when every point failed
        """
        result = GridSearchResult()
        accumulated: List[RawLocation] = []
        last_error: Optional[FetchError] = None
        prefix = f"{self.ctx.label} " if self.ctx.label else ""

        for index, point in enumerate(points):
            self.ctx.check_cancelled()
            self._pace(index)
            if self.gate is not None:
                self.gate.wait(self.ctx.cancel_event)
            result.points_queried += 1
            try:
                found = self.query(point, index)
            except FetchCancelled:
                raise
            except FetchError as e:
                result.points_failed += 1
                last_error = e
                logging.warning(
                    f"{prefix}{self.source}: grid point ({point.lat:.4f}, {point.lng:.4f}) failed: {e}"
                )
                continue

            if self.per_query_max and len(found) >= self.per_query_max:
                result.points_truncated += 1
            accumulated.extend(found)
            logging.debug(
                f"{prefix}{self.source}: point {index} ({point.lat:.4f}, {point.lng:.4f}) "
                f"returned {len(found)} results"
            )

            if self.stop_after is not None and len(self.dedupe(accumulated)) >= self.stop_after:
                result.stopped_early = True
                break

        if result.points_truncated:
            logging.warning(
                f"{prefix}{self.source}: {result.points_truncated} grid point(s) hit the "
                f"per-query maximum of {self.per_query_max}; coverage may be incomplete"
            )

        if result.points_queried and result.points_failed == result.points_queried and last_error:
            raise last_error

        result.locations = self.dedupe(accumulated)
        if result.points_failed:
            logging.warning(
                f"{prefix}{self.source}: {result.points_failed}/{result.points_queried} grid points "
                f"failed; returning {len(result.locations)} locations from the rest"
            )
        return result
