"""Tests for the transport layer and load cycle."""

import json
import threading
from unittest.mock import MagicMock

import pytest
import requests

from processing.fetch import (
    DataSourceClient,
    DataSources,
    LoadState,
    MapDataLoader,
    PaginationLimitError,
    TransportError,
)
from processing.field_registry import FieldRegistry

GEO_A = "https://example.test/a.geojson"
GEO_B = "https://example.test/b.geojson"
RESULTS = "https://example.test/results?page=1"


def make_response(payload=None, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(
            f"{status_code} Error", response=response
        )
    return response


def make_session(routes):
    session = MagicMock()
    session.headers = {}

    def get(url, timeout=None):
        if url not in routes:
            raise requests.exceptions.ConnectionError(f"no route to {url}")
        return routes[url]

    session.get.side_effect = get
    return session


def test_fetch_boundaries_merges_collections():
    routes = {
        GEO_A: make_response({"type": "FeatureCollection", "features": [{"properties": {"code_circo": "0101"}}]}),
        GEO_B: make_response({"type": "FeatureCollection", "features": [{"properties": {"code_circo": "9701"}}]}),
    }
    client = DataSourceClient(DataSources([GEO_A, GEO_B], RESULTS), session=make_session(routes))

    merged = client.fetch_boundaries()

    assert [f["properties"]["code_circo"] for f in merged["features"]] == ["0101", "9701"]


def test_fetch_results_follows_pagination():
    page_2 = "https://example.test/results?page=2"
    routes = {
        RESULTS: make_response({"data": [{"Nom": "A"}], "links": {"next": page_2}}),
        page_2: make_response({"data": [{"Nom": "B"}], "links": {"next": None}}),
    }
    client = DataSourceClient(DataSources([GEO_A], RESULTS), session=make_session(routes))

    assert [row["Nom"] for row in client.fetch_results()] == ["A", "B"]


def test_fetch_results_accepts_bare_list():
    routes = {RESULTS: make_response([{"Nom": "A"}, {"Nom": "B"}])}
    client = DataSourceClient(DataSources([GEO_A], RESULTS), session=make_session(routes))
    assert len(client.fetch_results()) == 2


def test_pagination_guard_stops_endless_api():
    routes = {RESULTS: make_response({"data": [{"Nom": "A"}], "links": {"next": RESULTS}})}
    client = DataSourceClient(DataSources([GEO_A], RESULTS, max_pages=3), session=make_session(routes))

    with pytest.raises(PaginationLimitError):
        client.fetch_results()


def test_http_error_becomes_transport_error():
    routes = {GEO_A: make_response(status_code=503)}
    client = DataSourceClient(DataSources([GEO_A], RESULTS), session=make_session(routes))

    with pytest.raises(TransportError) as excinfo:
        client.fetch_boundaries()
    assert excinfo.value.status_code == 503
    assert "503" in str(excinfo.value)


def test_network_error_becomes_transport_error():
    client = DataSourceClient(DataSources([GEO_A], RESULTS), session=make_session({}))
    with pytest.raises(TransportError):
        client.fetch_boundaries()


def test_local_files_are_accepted(tmp_path):
    geo = tmp_path / "circos.geojson"
    geo.write_text(json.dumps({"type": "FeatureCollection", "features": [{"properties": {}}]}))
    results = tmp_path / "results.json"
    results.write_text(json.dumps({"data": [{"Nom": "A"}]}))

    client = DataSourceClient(DataSources([str(geo)], str(results)))

    assert len(client.fetch_boundaries()["features"]) == 1
    assert client.fetch_results() == [{"Nom": "A"}]


def test_missing_local_file_is_transport_error(tmp_path):
    client = DataSourceClient(DataSources([str(tmp_path / "missing.geojson")], str(tmp_path / "r.json")))
    with pytest.raises(TransportError):
        client.fetch_boundaries()


class FakeClient:
    def __init__(self, boundaries=None, rows=None, error=None, on_fetch=None):
        self.boundaries = boundaries or {"type": "FeatureCollection", "features": []}
        self.rows = rows or []
        self.error = error
        self.on_fetch = on_fetch

    def fetch_boundaries(self):
        if self.on_fetch:
            self.on_fetch()
        return self.boundaries

    def fetch_results(self):
        if self.error:
            raise self.error
        return self.rows


def test_loader_success_state():
    loader = MapDataLoader(FakeClient(rows=[{"Nom": "A"}]))
    snapshot = loader.load()
    assert snapshot.state is LoadState.SUCCESS
    assert snapshot.rows == [{"Nom": "A"}]
    assert snapshot.error is None


def test_loader_error_state_publishes_nothing_partial():
    loader = MapDataLoader(FakeClient(error=TransportError("Erreur lors du chargement des résultats (500)", 500)))
    snapshot = loader.load()
    assert snapshot.state is LoadState.ERROR
    assert "500" in snapshot.error
    assert snapshot.boundaries is None
    assert snapshot.rows == []


def test_cancelled_loader_discards_responses():
    loader = MapDataLoader(FakeClient(rows=[{"Nom": "A"}]))
    loader.client.on_fetch = loader.cancel

    snapshot = loader.load()

    assert not loader.alive
    assert snapshot.state is LoadState.LOADING
    assert snapshot.boundaries is None
    assert loader.snapshot.rows == []


def test_invalid_local_json_fails_the_load_cycle(tmp_path):
    geo = tmp_path / "circos.geojson"
    geo.write_text(json.dumps({"type": "FeatureCollection", "features": []}))
    results = tmp_path / "results.json"
    results.write_text("<html>not json</html>")

    loader = MapDataLoader(DataSourceClient(DataSources([str(geo)], str(results))))
    snapshot = loader.load()

    assert snapshot.state is LoadState.ERROR
    assert "résultats" in snapshot.error


def test_fetch_results_splits_wide_rows_with_custom_registry(tmp_path):
    results = tmp_path / "results.json"
    results.write_text(json.dumps({"data": [{
        "CodeCirconscription": "0101",
        "Etiquette 1": "RN", "Suffrages 1": "100",
        "Etiquette 2": "LR", "Suffrages 2": "200",
    }]}))
    registry = FieldRegistry(overrides={"score": ["Suffrages"], "party": ["Etiquette"]})

    client = DataSourceClient(DataSources([str(tmp_path / "g.geojson")], str(results)), registry=registry)
    rows = client.fetch_results()

    assert [row["Etiquette"] for row in rows] == ["RN", "LR"]


def test_each_thread_gets_its_own_session():
    client = DataSourceClient(DataSources([GEO_A], RESULTS))

    sessions = []
    for _ in range(2):
        thread = threading.Thread(target=lambda: sessions.append(client.session))
        thread.start()
        thread.join()

    assert client.session is client.session
    assert sessions[0] is not sessions[1]
    assert sessions[0].headers["Accept"] == "application/json"
