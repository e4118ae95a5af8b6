"""Tests for grid generation and the paced geo-grid sweep."""

import logging
from unittest.mock import Mock, patch

import pytest

from src.locator.grid import (
    STRATEGIC_US_POINTS,
    GeoGridSearch,
    GridConfig,
    GridPoint,
    generate_grid,
    grid_covers_radius,
)
from src.shared.http import FetchCancelled, FetchError

POINTS = [GridPoint(30.0, -97.0), GridPoint(31.0, -98.0), GridPoint(32.0, -99.0)]


class TestGenerateGrid:

    def test_covers_bounds(self):
        config = GridConfig.sc_region()
        points = generate_grid(config)
        lats = [p.lat for p in points]
        lngs = [p.lng for p in points]
        assert min(lats) == config.min_lat
        assert max(lats) >= config.max_lat - config.step_miles / 69.0
        assert min(lngs) == config.min_lng
        assert max(lngs) >= config.max_lng - 1.0

    def test_longitude_step_widens_with_latitude(self):
        points = generate_grid(GridConfig(min_lat=0, max_lat=60, min_lng=0, max_lng=10, step_miles=69 * 4))
        per_row = {}
        for point in points:
            per_row.setdefault(point.lat, 0)
            per_row[point.lat] += 1
        rows = sorted(per_row)
        assert per_row[rows[0]] > per_row[rows[-1]]

    def test_rejects_non_positive_step(self):
        with pytest.raises(ValueError):
            generate_grid(GridConfig(0, 1, 0, 1, step_miles=0))

    def test_grid_covers_radius(self):
        assert grid_covers_radius(GridConfig.conus_coarse(), 200)
        assert not grid_covers_radius(GridConfig.conus_coarse(), 150)


def test_strategic_points_have_zips():
    assert len(STRATEGIC_US_POINTS) == 9
    assert all(point.zip for point in STRATEGIC_US_POINTS)
    assert any(point.zip == "28202" for point in STRATEGIC_US_POINTS)


class TestGeoGridSearch:
    """Partial failure, truncation and cancellation behavior of the sweep."""

    def _search(self, fetch_ctx, query, **kwargs):
        kwargs.setdefault('pacing', lambda index: 0)
        return GeoGridSearch(fetch_ctx, None, query, source="test", **kwargs)

    def test_merges_and_dedupes(self, fetch_ctx, make_location):
        shared = make_location(name="Shared", latitude=30.5, longitude=-97.5)

        def query(point, index):
            return [shared, make_location(name=f"P{index}", latitude=point.lat, longitude=point.lng)]

        result = self._search(fetch_ctx, query).run(POINTS)
        assert result.points_queried == 3
        assert sorted(loc.name for loc in result.locations) == ["P0", "P1", "P2", "Shared"]

    def test_failed_point_is_skipped(self, fetch_ctx, make_location, caplog):
        def query(point, index):
            if index == 1:
                raise FetchError("u", "boom", status=500)
            return [make_location(name=f"P{index}", latitude=point.lat, longitude=point.lng)]

        with caplog.at_level(logging.WARNING):
            result = self._search(fetch_ctx, query).run(POINTS)

        assert result.points_failed == 1
        assert [loc.name for loc in result.locations] == ["P0", "P2"]
        assert any("1/3 grid points failed" in r.message for r in caplog.records)

    def test_all_points_failing_raises_last_error(self, fetch_ctx):
        errors = [FetchError("u", f"fail {i}", status=500) for i in range(3)]
        query = Mock(side_effect=errors)

        with pytest.raises(FetchError) as exc_info:
            self._search(fetch_ctx, query).run(POINTS)
        assert exc_info.value is errors[-1]

    def test_truncated_points_are_reported(self, fetch_ctx, make_location, caplog):
        def query(point, index):
            return [make_location(name=f"{index}-{i}", latitude=point.lat + i, longitude=point.lng)
                    for i in range(2)]

        with caplog.at_level(logging.WARNING):
            result = self._search(fetch_ctx, query, per_query_max=2).run(POINTS)

        assert result.points_truncated == 3
        assert any("per-query maximum of 2" in r.message for r in caplog.records)

    def test_stop_after(self, fetch_ctx, make_location):
        query = Mock(side_effect=lambda point, index: [
            make_location(name=f"P{index}", latitude=point.lat, longitude=point.lng)
        ])
        result = self._search(fetch_ctx, query, stop_after=2).run(POINTS)
        assert result.stopped_early
        assert query.call_count == 2

    def test_cancellation_propagates(self, fetch_ctx):
        def query(point, index):
            fetch_ctx.cancel_event.set()
            return []

        with pytest.raises(FetchCancelled):
            self._search(fetch_ctx, query).run(POINTS)

    def test_cancelled_query_is_not_counted_as_failure(self, fetch_ctx):
        query = Mock(side_effect=FetchCancelled())
        with pytest.raises(FetchCancelled):
            self._search(fetch_ctx, query).run(POINTS)
        assert query.call_count == 1

    def test_gate_waits_before_every_query(self, fetch_ctx):
        gate = Mock()
        search = GeoGridSearch(fetch_ctx, gate, lambda p, i: [], source="test", pacing=lambda i: 0)
        search.run(POINTS)
        assert gate.wait.call_count == 3

    def test_default_pacing_uses_random_delay_between_points(self, fetch_ctx):
        search = GeoGridSearch(fetch_ctx, None, lambda p, i: [], source="test")
        with patch('src.locator.grid.random_delay') as mock_delay:
            search.run(POINTS)
        assert mock_delay.call_count == 2
