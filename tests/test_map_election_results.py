"""Tests for map styling, popups and summary panels."""

from analysis.map_election_results import (
    NO_RESULTS_MESSAGE,
    UNAVAILABLE_MESSAGE,
    build_legend_html,
    build_popup_content,
    build_summary_html,
    compute_map_center,
    feature_style,
    render_status_page,
    save_results_map,
)
from ops.config_loader import Config
from processing.fetch import LoadState
from processing.reconcile import DistrictResult, ReconciliationResult, reconcile

COLORS = {"Ensemble": "#fee08b", "Rassemblement National": "#4575b4"}


def test_feature_style_uses_bloc_color_or_default():
    district = DistrictResult(code="7512", winner={}, bloc="Ensemble")
    assert feature_style(district, COLORS, "#bdbdbd")["fillColor"] == "#fee08b"
    assert feature_style(None, COLORS, "#bdbdbd")["fillColor"] == "#bdbdbd"
    unknown = DistrictResult(code="0101", winner={}, bloc="Parti Inconnu XYZ")
    assert feature_style(unknown, COLORS, "#bdbdbd")["fillColor"] == "#bdbdbd"


def test_popup_without_winner():
    assert UNAVAILABLE_MESSAGE in build_popup_content(None, None)


def test_popup_content_lists_identity_bloc_party_and_scores():
    winner = {
        "Prenom": "Anne",
        "Nom": "PETIT",
        "Nuance": "ENS",
        "Voix": "18 204",
        "Pourcentage": "52,3",
        "Score": "1",
        "ScoreSecondTour": "2",
        "PourcentageVoix": "3",
    }
    html = build_popup_content(winner, "Ensemble", labels={"Ensemble": "Ensemble / Renaissance"})

    assert "<strong>Anne PETIT</strong>" in html
    assert "Ensemble / Renaissance" in html
    assert "<span>ENS</span>" in html
    assert "<strong>Voix</strong> : 18 204" in html
    assert html.count("<strong>") == 1 + 4


def test_popup_escapes_values():
    html = build_popup_content({"Nom": "<script>"}, None)
    assert "<script>" not in html
    assert "&lt;script&gt;" in html


def test_popup_with_nothing_to_show():
    assert UNAVAILABLE_MESSAGE in build_popup_content({"Autre": "x"}, None)


def test_summary_orders_blocs_by_seats():
    result = ReconciliationResult(bloc_totals={"Ensemble": 1, "Rassemblement National": 3})
    html = build_summary_html(result, COLORS, "#bdbdbd")
    assert html.index("Rassemblement National") < html.index("Ensemble")
    assert "swing-placeholder" not in html


def test_summary_empty_and_swing_placeholder():
    html = build_summary_html(ReconciliationResult(), COLORS, "#bdbdbd", swing_delta="+3")
    assert NO_RESULTS_MESSAGE in html
    assert "Delta à venir : +3" in html


def test_legend_lists_every_bloc():
    html = build_legend_html(COLORS, {"Ensemble": "Ensemble / Renaissance"})
    assert "Ensemble / Renaissance" in html
    assert "Rassemblement National" in html


def test_map_center_from_features(two_district_features):
    lat, lon = compute_map_center(two_district_features["features"], [46.6, 2.5])
    assert 44.5 < lat < 48.9
    assert 2.3 < lon < 6.1


def test_map_center_fallback():
    assert compute_map_center([{"properties": {}}], [46.6, 2.5]) == [46.6, 2.5]


def test_status_pages():
    assert "Chargement des données" in render_status_page(LoadState.LOADING)
    error_page = render_status_page(LoadState.ERROR, "Erreur lors du chargement des contours (404)")
    assert "Impossible de charger les données" in error_page
    assert "(404)" in error_page


def test_save_results_map_writes_html(config_file, tmp_path, two_district_rows, two_district_features):
    config = Config(str(config_file))
    result = reconcile(two_district_rows)
    features = two_district_features["features"] + [{"type": "Feature", "properties": {}, "geometry": None}]

    output = save_results_map(features, result, config, tmp_path / "out" / "map.html", swing_delta="n/a")

    html = output.read_text(encoding="utf-8")
    assert output.exists()
    assert "Sièges remportés par bloc" in html
    assert "DURAND" in html
