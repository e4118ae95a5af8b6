"""Unit tests for the Stockist adapter."""

import pytest

from src.locator.adapters.stockist import (
    StockistAdapter,
    extract_widget_tag,
    parse_jsonp,
    parse_stores,
    search_params,
)
from src.shared.http import FetchError


class TestExtractWidgetTag:

    def test_data_attribute(self):
        assert extract_widget_tag('<div data-stockist-widget-tag="u1234"></div>') == "u1234"

    def test_api_url(self):
        html = '<script src="https://stockist.co/api/v1/u9876/widget.js"></script>'
        assert extract_widget_tag(html) == "u9876"

    def test_absent(self):
        assert extract_widget_tag("<html></html>") is None


class TestParseJsonp:

    def test_unwraps_callback(self):
        assert parse_jsonp('_stockistConfigCallback_u1({"latitude": 1.5});') == {"latitude": 1.5}

    def test_no_parentheses(self):
        assert parse_jsonp("not jsonp") is None

    def test_bad_json_raises(self):
        with pytest.raises(ValueError):
            parse_jsonp("cb({not json})")


class TestSearchParams:

    def test_uses_widget_center(self):
        params = search_params({"latitude": 32.7, "longitude": -79.9, "max_distance": 250})
        assert (params["latitude"], params["longitude"], params["distance"]) == (32.7, -79.9, 250)
        assert params["units"] == "mi"

    def test_defaults(self):
        params = search_params(None)
        assert params["distance"] == 50000
        assert params["per_page"] == 10000

    def test_non_integer_distance_ignored(self):
        assert search_params({"max_distance": "far", "distance": 30})["distance"] == 30


def test_parse_stores_prefers_address_line_1():
    [store] = parse_stores({"locations": [
        {"name": "A", "address_line_1": "1 Main", "full_address": "1 Main, Austin TX"},
    ]})
    assert store.address_line1 == "1 Main"


class TestFetch:

    def test_two_step_fetch(self, fetch_ctx, mock_session, mock_response_factory):
        mock_session.queue(
            mock_response_factory(text='_stockistConfigCallback_u1({"latitude": 40.0, "longitude": -75.0});'),
            mock_response_factory(json_data={"locations": [{"name": "A", "city": "Philly"}]}),
        )

        [store] = StockistAdapter().fetch(fetch_ctx, "u1")

        assert store.city == "Philly"
        search_call = mock_session.request.call_args_list[1]
        assert search_call[0][1] == "https://stockist.co/api/v1/u1/locations/search"
        assert search_call[1]["params"]["latitude"] == 40.0

    def test_malformed_widget_config(self, fetch_ctx, mock_session, mock_response_factory):
        mock_session.queue(mock_response_factory(text="cb({broken)"))
        with pytest.raises(FetchError) as exc_info:
            StockistAdapter().fetch(fetch_ctx, "u1")
        assert exc_info.value.kind == 'decode'
