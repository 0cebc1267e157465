"""Tests for the command-line pipeline."""

import json

import pytest
from click.testing import CliRunner
from loguru import logger

from ops.run_pipeline import cli, summary_table
from processing.reconcile import ReconciliationResult


@pytest.fixture(autouse=True)
def drop_cli_log_sinks():
    """The CLI binds a sink to the runner's stderr, which is closed after each invoke."""
    yield
    logger.remove()


def test_summary_table_orders_by_seats():
    result = ReconciliationResult(bloc_totals={"Ensemble": 2, "Rassemblement National": 5})
    table = summary_table(result, {"Ensemble": "Ensemble / Renaissance"})
    assert table["bloc"].tolist() == ["Rassemblement National", "Ensemble"]
    assert table["label"].tolist() == ["Rassemblement National", "Ensemble / Renaissance"]
    assert table["sieges"].tolist() == [5, 2]


def test_reconcile_command_offline(config_file, local_sources):
    runner = CliRunner()
    result = runner.invoke(
        cli,
        [
            "--config", str(config_file),
            "reconcile", str(local_sources / "results.json"),
            "--geojson", str(local_sources / "circos.geojson"),
        ],
    )
    assert result.exit_code == 0, result.output
    assert "Nouveau Front Populaire" in result.output
    assert "Ensemble / Renaissance" in result.output


def test_render_command_with_local_environment(config_file, local_sources):
    output = local_sources / "rendered.html"
    runner = CliRunner()
    result = runner.invoke(
        cli, ["--config", str(config_file), "--environment", "local", "render", "--output", str(output)]
    )
    assert result.exit_code == 0, result.output
    assert output.exists()
    assert "PETIT" in output.read_text(encoding="utf-8")


def test_render_command_transport_failure_writes_error_page(config_file, tmp_path):
    # No local files were written: both sources are missing
    output = tmp_path / "error.html"
    runner = CliRunner()
    result = runner.invoke(
        cli, ["--config", str(config_file), "-e", "local", "render", "--output", str(output)]
    )
    assert result.exit_code == 1
    assert "Impossible de charger les données" in output.read_text(encoding="utf-8")


def test_unknown_environment_exits_with_error(config_file):
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(config_file), "-e", "staging", "summary"])
    assert result.exit_code == 1


def test_summary_command(config_file, local_sources):
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(config_file), "-e", "local", "summary"])
    assert result.exit_code == 0, result.output
    assert "sieges" in result.output


def test_reconcile_command_accepts_bare_list(config_file, tmp_path, two_district_rows):
    results = tmp_path / "bare.json"
    results.write_text(json.dumps(two_district_rows), encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(config_file), "reconcile", str(results)])
    assert result.exit_code == 0, result.output
    assert "Ensemble / Renaissance" in result.output


def test_summary_splits_wide_rows_with_configured_aliases(tmp_path):
    (tmp_path / "results.json").write_text(
        json.dumps({"data": [{
            "CodeCirconscription": "0101",
            "Etiquette 1": "RN", "Suffrages 1": "100",
            "Etiquette 2": "LR", "Suffrages 2": "200",
        }]}),
        encoding="utf-8",
    )
    (tmp_path / "circos.geojson").write_text(
        json.dumps({"type": "FeatureCollection", "features": []}), encoding="utf-8"
    )
    config = tmp_path / "config.yaml"
    config.write_text(
        f"""
environments:
  local:
    geojson_urls: ["{tmp_path / 'circos.geojson'}"]
    results_url: "{tmp_path / 'results.json'}"
fields:
  score: ["Suffrages"]
  party: ["Etiquette"]
""",
        encoding="utf-8",
    )

    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(config), "-e", "local", "summary"])

    assert result.exit_code == 0, result.output
    assert "Les Républicains" in result.output
    assert "Autres" not in result.output
