"""Unit tests for the Storepoint adapter."""

from src.locator.adapters.storepoint import (
    AddressTail,
    StorepointAdapter,
    extract_widget_id,
    parse_address_tail,
    parse_stores,
)


class TestExtractWidgetId:

    def test_widget_call(self):
        assert extract_widget_id("<script>new StorepointWidget('15f056d3a7c3c2', 'map');</script>") == "15f056d3a7c3c2"

    def test_escaped_whitespace_in_inline_json(self):
        html = r'"html": "new StorepointWidget(\n  \"abc123\")"'
        assert extract_widget_id(html) == "abc123"

    def test_api_url(self):
        assert extract_widget_id("https://api.storepoint.co/v2/def456/locations") == "def456"

    def test_absent(self):
        assert extract_widget_id("<html></html>") is None


class TestParseAddressTail:
    """City, state and ZIP come from the tail of a single address string."""

    def test_with_country_suffix(self):
        tail = parse_address_tail("1324 5th Street, Jellico TN 37762, USA")
        assert tail == AddressTail(city="Jellico", state="TN", zip="37762", country="USA")

    def test_multi_word_city(self):
        tail = parse_address_tail("9 Elm St, Mount Pleasant SC 29464, US")
        assert (tail.city, tail.state) == ("Mount Pleasant", "SC")

    def test_explicit_country_field(self):
        tail = parse_address_tail("100 King St, Charleston SC 29401", has_country=True)
        assert tail == AddressTail(city="Charleston", state="SC", zip="29401")

    def test_unparseable_tail_keeps_country_only(self):
        assert parse_address_tail("Somewhere, Nowhere") == AddressTail(country="Nowhere")

    def test_empty(self):
        assert parse_address_tail(" , ") == AddressTail()


def test_parse_stores_maps_coordinates_and_tail():
    payload = {"success": True, "results": {"locations": [{
        "id": 7, "name": "Jellico Grocery", "streetaddress": "1324 5th Street, Jellico TN 37762, USA",
        "loc_lat": "36.58", "loc_long": "-84.12",
    }]}}
    [store] = parse_stores(payload)
    assert store.external_id == "7"
    assert (store.city, store.state, store.zip, store.country) == ("Jellico", "TN", "37762", "USA")
    assert store.longitude == -84.12


def test_fetch(fetch_ctx, mock_session, mock_response_factory):
    mock_session.queue(mock_response_factory(json_data={"results": {"locations": [{"name": "A"}]}}))
    [store] = StorepointAdapter().fetch(fetch_ctx, "abc123")
    assert store.locator_source == "storepoint"
    assert mock_session.request.call_args[0][1] == "https://api.storepoint.co/v2/abc123/locations"
