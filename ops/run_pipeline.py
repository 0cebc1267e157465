#!/usr/bin/env python3
"""
Legislative Results Map Pipeline

Fetches district boundaries and candidate results, reconciles them into one
winner and bloc per district, and renders the interactive map.

Usage:
    legislatives-map [OPTIONS] [COMMAND]

Examples:
    legislatives-map                                   # Fetch production data and render the map
    legislatives-map --environment local               # Use the local files listed in config.yaml
    legislatives-map render --output carte.html        # Custom output path
    legislatives-map summary                           # Print seats per bloc only
    legislatives-map reconcile results.json --geojson circos.geojson
    legislatives-map --verbose                         # Enable DEBUG level logging
"""

import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
import pandas as pd
from loguru import logger

from ops.config_loader import Config
from processing.data_utils import merge_feature_collections, normalize_rows
from processing.fetch import DataSourceClient, LoadState, MapDataLoader
from processing.reconcile import ReconciliationResult, join_features, reconcile


class PipelineContext:
    """Click context object: configuration and selected environment."""

    def __init__(self, config: Config, environment: str):
        self.config = config
        self.environment = environment


def setup_logging(verbose: bool = False, enable_trace: bool = False) -> None:
    """
    Configure loguru logging with appropriate levels.

    Args:
        verbose: If True, set log level to DEBUG
        enable_trace: If True, enable TRACE level logging for deep debugging
    """
    logger.remove()

    if enable_trace:
        log_level = "TRACE"
        log_format = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>"
    elif verbose:
        log_level = "DEBUG"
        log_format = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>"
    else:
        log_level = "INFO"
        log_format = (
            "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"
        )

    logger.add(
        sys.stderr,
        format=log_format,
        level=log_level,
        colorize=True,
        backtrace=enable_trace,
        diagnose=enable_trace,
    )

    os.environ["LOGURU_LEVEL"] = log_level

    if verbose:
        logger.debug("🔧 Verbose logging enabled (DEBUG level)")
    if enable_trace:
        logger.trace("🔍 Trace logging enabled - maximum detail mode")


def summary_table(result: ReconciliationResult, labels: Optional[Dict[str, str]] = None) -> pd.DataFrame:
    """Seats per bloc, largest first."""
    labels = labels or {}
    rows = [
        {"bloc": bloc, "label": labels.get(bloc, bloc), "sieges": total}
        for bloc, total in result.summary_items()
    ]
    return pd.DataFrame(rows, columns=["bloc", "label", "sieges"])


def log_summary(result: ReconciliationResult, labels: Optional[Dict[str, str]] = None) -> None:
    table = summary_table(result, labels)
    if table.empty:
        logger.warning("⚠️ Aucun résultat disponible")
        return
    logger.info(f"📊 Sièges remportés par bloc ({result.seats} circonscriptions):")
    for line in table[["label", "sieges"]].to_string(index=False).splitlines():
        logger.info(f"  {line}")


def load_cycle(pipeline: PipelineContext):
    """Fetch both sources for the selected environment; returns the loader snapshot."""
    sources = pipeline.config.get_sources(pipeline.environment)
    logger.info(f"🌐 Loading data for environment '{sources.name}'")
    client = DataSourceClient(sources, registry=pipeline.config.get_field_registry())
    loader = MapDataLoader(client)
    return loader.load()


def reconcile_with_config(rows: List[Dict[str, Any]], config: Config) -> ReconciliationResult:
    registry = config.get_field_registry()
    coverage = registry.coverage_report(rows)
    if coverage["unresolved_fields"]:
        logger.debug(f"  📋 Fields absent from every row: {coverage['unresolved_fields']}")
    return reconcile(
        rows,
        registry=registry,
        classifier=config.get_bloc_classifier(),
        default_bloc=config.get_default_bloc(),
    )


@click.group(invoke_without_command=True)
@click.option("--config", "config_file", type=click.Path(exists=True), help="Path to config.yaml")
@click.option(
    "--environment",
    "-e",
    default="production",
    show_default=True,
    help="Data source environment defined in config.yaml",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable DEBUG level logging")
@click.option(
    "--trace", is_flag=True, help="Enable TRACE level logging for deep debugging (maximum detail)"
)
@click.option("--log-file", type=str, help="Also log to specified file")
@click.pass_context
def cli(ctx, config_file, environment, verbose, trace, log_file):
    """
    Legislative results map: fetch, reconcile and render.

    Without a subcommand, runs the full pipeline (same as ``render``).
    """
    setup_logging(verbose=verbose, enable_trace=trace)

    if log_file:
        log_level = "TRACE" if trace else ("DEBUG" if verbose else "INFO")
        logger.add(
            log_file,
            level=log_level,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}",
            rotation="10 MB",
            retention="7 days",
        )
        logger.info(f"📄 Also logging to file: {log_file}")

    try:
        config = Config(config_file)
    except (FileNotFoundError, OSError, ValueError) as e:
        logger.critical(f"Configuration error: {e}")
        ctx.exit(1)
        return

    config.print_config_summary()
    ctx.obj = PipelineContext(config, environment)

    if ctx.invoked_subcommand is None:
        ctx.invoke(render)


@cli.command()
@click.option("--output", "-o", type=click.Path(), help="Output HTML file (defaults to config output.html)")
@click.option("--swing-delta", type=str, default=None, help="Placeholder value shown in the summary panel")
@click.pass_obj
def render(pipeline: PipelineContext, output: Optional[str] = None, swing_delta: Optional[str] = None):
    """Fetch, reconcile and write the interactive map."""
    from analysis.map_election_results import save_results_map, write_status_page

    config = pipeline.config
    output_path = Path(output) if output else config.get_output_path("html")

    try:
        snapshot = load_cycle(pipeline)
    except ValueError as e:
        logger.critical(f"Configuration error: {e}")
        sys.exit(1)

    if snapshot.state is LoadState.ERROR:
        write_status_page(LoadState.ERROR, output_path, snapshot.error)
        logger.critical(f"💥 Impossible de charger les données : {snapshot.error}")
        sys.exit(1)

    result = reconcile_with_config(snapshot.rows, config)
    save_results_map(
        snapshot.boundaries["features"], result, config, output_path, swing_delta=swing_delta
    )
    log_summary(result, config.get_bloc_labels())


@cli.command()
@click.pass_obj
def summary(pipeline: PipelineContext):
    """Fetch and reconcile, then print seats per bloc."""
    try:
        snapshot = load_cycle(pipeline)
    except ValueError as e:
        logger.critical(f"Configuration error: {e}")
        sys.exit(1)

    if snapshot.state is LoadState.ERROR:
        logger.critical(f"💥 Impossible de charger les données : {snapshot.error}")
        sys.exit(1)

    result = reconcile_with_config(snapshot.rows, pipeline.config)
    join_features(snapshot.boundaries["features"], result, pipeline.config.get_field_registry())
    table = summary_table(result, pipeline.config.get_bloc_labels())
    click.echo(table.to_string(index=False) if not table.empty else "Aucun résultat disponible")


@cli.command(name="reconcile")
@click.argument("results_file", type=click.Path(exists=True))
@click.option("--geojson", "geojson_files", multiple=True, type=click.Path(exists=True),
              help="Boundary GeoJSON file(s) to check the join against")
@click.option("--output", "-o", type=click.Path(), help="Also render the map to this HTML file")
@click.pass_obj
def reconcile_files(pipeline: PipelineContext, results_file: str, geojson_files, output: Optional[str]):
    """Reconcile local results (and boundaries) without any network access."""
    with open(results_file, "r", encoding="utf-8") as f:
        rows = normalize_rows(json.load(f), pipeline.config.get_field_registry())
    logger.info(f"  ✓ Loaded {len(rows):,} result rows from {results_file}")

    result = reconcile_with_config(rows, pipeline.config)

    features: List[Dict[str, Any]] = []
    if geojson_files:
        collections = []
        for path in geojson_files:
            with open(path, "r", encoding="utf-8") as f:
                collections.append(json.load(f))
        features = merge_feature_collections(collections)["features"]
        join_features(features, result, pipeline.config.get_field_registry())

    table = summary_table(result, pipeline.config.get_bloc_labels())
    click.echo(table.to_string(index=False) if not table.empty else "Aucun résultat disponible")

    if output:
        from analysis.map_election_results import save_results_map

        save_results_map(features, result, pipeline.config, output)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
