"""Unit tests for the AskHoodie adapter."""

from unittest.mock import patch

from src.locator.adapters.askhoodie import (
    AskHoodieAdapter,
    build_search_payload,
    dedupe_by_external_id,
    extract_embed_id,
    extract_hits,
    next_page_state,
    parse_hit,
)

EMBED_ID = "0f8b2c1e-1234-4abc-9def-0123456789ab"


def _hit(dispensary_id, name="Dispensary"):
    return {
        "MASTER_D_ID": dispensary_id,
        "MASTER_D_NAME": name,
        "MASTER_D_CITY": "Denver",
        "MASTER_D_STATE": "CO",
        "_geoloc": {"lat": 39.7, "lng": -104.9},
    }


def _page(hits, page=0, nb_pages=1):
    return {"results": [{"hits": hits, "page": page, "nbPages": nb_pages}]}


def test_extract_embed_id():
    html = f'<script src="https://askhoodie.com/embed.js"></script><script>hoodieEmbedWtbV2("{EMBED_ID}", "wtb")</script>'
    assert extract_embed_id(html) == EMBED_ID
    assert extract_embed_id(f'hoodieEmbedWtbV2("{EMBED_ID}")') is None


def test_build_search_payload():
    payload = build_search_payload(EMBED_ID, 39.7, -104.9, 2)
    params = payload["args"][0][0]["params"]
    assert payload["embedToken"] == f"{EMBED_ID}__dummy"
    assert params["aroundLatLng"] == "39.7,-104.9"
    assert params["page"] == 2


class TestResponseShape:

    def test_hits_from_results(self):
        assert extract_hits(_page([{"a": 1}])) == [{"a": 1}]

    def test_top_level_hits(self):
        assert extract_hits({"hits": []}) == []

    def test_no_hits(self):
        assert extract_hits({"message": "nope"}) is None

    def test_next_page_state(self):
        assert next_page_state(_page([], page=0, nb_pages=3)) == (1, True)
        assert next_page_state(_page([], page=2, nb_pages=3)) == (3, False)
        assert next_page_state({}) == (1, False)


def test_parse_hit_requires_id_and_name():
    assert parse_hit({"MASTER_D_NAME": "No Id"}) is None
    store = parse_hit(_hit("D1"))
    assert store.external_id == "D1"
    assert store.latitude == 39.7


def test_dedupe_by_external_id(make_location):
    merged = dedupe_by_external_id([
        make_location(name="A", external_id="1"),
        make_location(name="A again", external_id="1"),
        make_location(name="B", external_id="2"),
    ])
    assert [loc.name for loc in merged] == ["A", "B"]


class TestFetch:

    def test_pages_until_last(self, fetch_ctx, mock_session, mock_response_factory):
        mock_session.queue(
            mock_response_factory(json_data=_page([_hit("D1")], page=0, nb_pages=2)),
            mock_response_factory(json_data=_page([_hit("D2"), _hit("D1")], page=1, nb_pages=2)),
        )

        locations = AskHoodieAdapter(centers=[(39.8, -98.6)]).fetch(fetch_ctx, EMBED_ID)

        assert sorted(loc.external_id for loc in locations) == ["D1", "D2"]
        assert mock_session.request.call_count == 2

    def test_empty_pages_stop_paging(self, fetch_ctx, mock_session, mock_response_factory):
        mock_session.queue(
            mock_response_factory(json_data=_page([], nb_pages=5)),
            mock_response_factory(json_data=_page([], nb_pages=5)),
        )
        assert AskHoodieAdapter(centers=[(39.8, -98.6)]).fetch(fetch_ctx, EMBED_ID) == []
        assert mock_session.request.call_count == 2

    def test_merges_centers(self, fetch_ctx, mock_session, mock_response_factory):
        mock_session.queue(
            mock_response_factory(json_data=_page([_hit("D1")])),
            mock_response_factory(json_data=_page([_hit("D1"), _hit("D3")])),
        )
        adapter = AskHoodieAdapter(centers=[(39.8, -98.6), (40.7, -74.0)])
        with patch('src.locator.grid.random_delay'):
            locations = adapter.fetch(fetch_ctx, EMBED_ID)
        assert [loc.external_id for loc in locations] == ["D1", "D3"]

    def test_retried_page_waits_on_gate_again(self, fetch_ctx, mock_session, mock_response_factory):
        """Each attempt at a page request is paced by the shared gate."""
        fetch_ctx.max_attempts = 2
        mock_session.queue(
            mock_response_factory(status_code=429, headers={"Retry-After": "1"}),
            mock_response_factory(json_data=_page([_hit("D1")])),
        )
        gate = fetch_ctx.gate("askhoodie")

        with patch.object(gate, 'wait', wraps=gate.wait) as mock_wait, \
                patch('src.shared.retry.sleep_or_cancel'):
            locations = AskHoodieAdapter(centers=[(39.8, -98.6)]).fetch(fetch_ctx, EMBED_ID)

        assert [loc.external_id for loc in locations] == ["D1"]
        assert mock_session.request.call_count == 2
        assert mock_wait.call_count == 2
