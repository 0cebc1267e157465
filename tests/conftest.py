"""Shared fixtures: small result tables and boundary collections."""

import json

import pytest


def square(x: float, y: float, size: float = 0.1) -> dict:
    return {
        "type": "Polygon",
        "coordinates": [[[x, y], [x + size, y], [x + size, y + size], [x, y + size], [x, y]]],
    }


@pytest.fixture
def two_district_rows():
    """District 0503 decided by an elected flag, 7512 by the highest score."""
    return [
        {"CodeDepartement": "5", "NumeroCirconscription": "3", "Nom": "MARTIN",
         "Prenom": "Claire", "Nuance": "RN", "Voix": "12 000", "Elu": "non"},
        {"CodeDepartement": "5", "NumeroCirconscription": "3", "Nom": "DURAND",
         "Prenom": "Paul", "Nuance": "UG", "Voix": "11 500", "Elu": "oui"},
        {"CodeCirconscription": "7512", "Nom": "PETIT", "Prenom": "Luc",
         "Nuance": "ENS", "Voix": "18 204"},
        {"CodeCirconscription": "7512", "Nom": "LEROY", "Prenom": "Anne",
         "Nuance": "LR", "Voix": "9 876"},
        {"Libelle": "Total France", "Voix": "1 000 000"},
    ]


@pytest.fixture
def two_district_features():
    return {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "properties": {"code_circo": "0503"}, "geometry": square(6.0, 44.5)},
            {"type": "Feature", "properties": {"CodeCirconscription": "7512"}, "geometry": square(2.3, 48.8)},
        ],
    }


@pytest.fixture
def config_file(tmp_path):
    """A config.yaml pointing the 'local' environment at files under tmp_path."""
    content = f"""
project_name: "Test"
description: "Test map"
environments:
  local:
    geojson_urls:
      - "{tmp_path / 'circos.geojson'}"
    results_url: "{tmp_path / 'results.json'}"
    max_pages: 3
blocs:
  default: "Autres"
  colors:
    "Ensemble": "#fee08b"
  labels:
    "Ensemble": "Ensemble / Renaissance"
output:
  html: "{tmp_path / 'html' / 'carte.html'}"
"""
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def local_sources(tmp_path, two_district_rows, two_district_features):
    """Write the sample rows and features where the 'local' environment expects them."""
    (tmp_path / "results.json").write_text(json.dumps({"data": two_district_rows}), encoding="utf-8")
    (tmp_path / "circos.geojson").write_text(json.dumps(two_district_features), encoding="utf-8")
    return tmp_path
