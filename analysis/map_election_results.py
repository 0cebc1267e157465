#!/usr/bin/env python3
"""
Legislative Results Map

Renders the reconciled results as an interactive choropleth:
- one polygon per district, filled with the color of the winning bloc
- a popup per district with the winner, bloc, party and main scores
- a legend of bloc colors
- a summary panel with seats won per bloc

Districts without a matching result are still drawn, with the default fill and
an "unavailable results" popup.

Output:
- A standalone HTML map (Leaflet through folium)
"""

from html import escape
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import folium
import geopandas as gpd
from loguru import logger

from ops import Config
from processing.blocs import bloc_color, bloc_label
from processing.fetch import LoadState
from processing.field_registry import DEFAULT_REGISTRY, FieldRegistry, is_empty
from processing.reconcile import DistrictResult, ReconciliationResult, join_features

UNAVAILABLE_MESSAGE = "Résultats indisponibles"
NO_RESULTS_MESSAGE = "Aucun résultat disponible"
MAX_SCORE_LINES = 4


def feature_style(
    district: Optional[DistrictResult],
    colors: Mapping[str, str],
    default_fill: str,
    fill_opacity: float = 0.65,
    outline_color: str = "#444",
    outline_weight: int = 1,
) -> Dict[str, Any]:
    """Leaflet style of one district polygon."""
    bloc = district.bloc if district else None
    return {
        "color": outline_color,
        "weight": outline_weight,
        "fillColor": bloc_color(bloc, colors, default_fill),
        "fillOpacity": fill_opacity,
    }


def _identity(winner: Mapping[str, Any], registry: FieldRegistry) -> str:
    parts = [registry.resolve(winner, "first_name"), registry.resolve(winner, "last_name")]
    return " ".join(str(part).strip() for part in parts if part is not None and str(part).strip())


def build_popup_content(
    winner: Optional[Mapping[str, Any]],
    bloc: Optional[str],
    registry: Optional[FieldRegistry] = None,
    labels: Optional[Mapping[str, str]] = None,
) -> str:
    """HTML popup for one district."""
    if not winner:
        return f"<p>{UNAVAILABLE_MESSAGE}</p>"

    registry = registry or DEFAULT_REGISTRY
    identity = _identity(winner, registry)
    party = registry.resolve(winner, "party")

    score_lines = []
    for field in registry.aliases("score"):
        value = winner.get(field)
        if is_empty(value):
            continue
        text = str(value).strip()
        if text:
            score_lines.append(f"<strong>{escape(field)}</strong> : {escape(text)}")

    lines = []
    if identity:
        lines.append(f"<strong>{escape(identity)}</strong>")
    if bloc:
        lines.append(f"<span>{escape(bloc_label(bloc, labels))}</span>")
    if party is not None:
        lines.append(f"<span>{escape(str(party))}</span>")
    lines.extend(score_lines[:MAX_SCORE_LINES])

    if not lines:
        lines.append(UNAVAILABLE_MESSAGE)

    return f'<div class="popup-content">{"<br/>".join(lines)}</div>'


def build_summary_html(
    result: ReconciliationResult,
    colors: Mapping[str, str],
    default_fill: str,
    labels: Optional[Mapping[str, str]] = None,
    swing_delta: Any = None,
) -> str:
    """Seats-per-bloc panel, largest bloc first."""
    items = []
    for bloc, total in result.summary_items():
        items.append(
            "<li>"
            f'<span class="summary-color" style="background-color: {bloc_color(bloc, colors, default_fill)}; '
            'display: inline-block; width: 12px; height: 12px; margin-right: 6px;"></span>'
            f'<span class="summary-label">{escape(bloc_label(bloc, labels))}</span> '
            f'<span class="summary-value"><b>{total}</b></span>'
            "</li>"
        )
    if not items:
        items.append(f"<li>{NO_RESULTS_MESSAGE}</li>")

    swing_html = ""
    if swing_delta is not None:
        swing_html = f'<p class="swing-placeholder">Delta à venir : {escape(str(swing_delta))}</p>'

    return f"""
    <aside class="map-summary" style="position: fixed; top: 80px; right: 10px; z-index: 1000;
        background-color: white; border: 2px solid #333333; border-radius: 5px;
        padding: 10px; font-family: Arial, sans-serif; font-size: 12px;">
        <h4 style="margin-top: 0;">Sièges remportés par bloc</h4>
        <ul style="list-style: none; padding-left: 0; margin: 0;">{"".join(items)}</ul>
        {swing_html}
    </aside>
    """


def build_legend_html(colors: Mapping[str, str], labels: Optional[Mapping[str, str]] = None) -> str:
    """Legend listing every configured bloc color."""
    entries = "".join(
        "<li>"
        f'<span class="legend-color" style="background-color: {color}; display: inline-block; '
        'width: 12px; height: 12px; margin-right: 6px;"></span>'
        f'<span class="legend-label">{escape(bloc_label(bloc, labels))}</span>'
        "</li>"
        for bloc, color in colors.items()
    )
    return f"""
    <section class="legend" style="position: fixed; bottom: 30px; left: 10px; z-index: 1000;
        background-color: white; border: 2px solid #333333; border-radius: 5px;
        padding: 10px; font-family: Arial, sans-serif; font-size: 12px;">
        <h4 style="margin-top: 0;">Légende</h4>
        <ul style="list-style: none; padding-left: 0; margin: 0;">{entries}</ul>
    </section>
    """


def compute_map_center(features: List[Mapping[str, Any]], fallback: List[float]) -> List[float]:
    """Center of the features' bounds, or the configured center."""
    polygons = [feature for feature in features if feature.get("geometry")]
    if not polygons:
        return list(fallback)

    try:
        gdf = gpd.GeoDataFrame.from_features(polygons, crs="EPSG:4326")
        min_x, min_y, max_x, max_y = gdf.total_bounds
    except (ValueError, TypeError, AttributeError) as e:
        logger.warning(f"  ⚠️ Could not compute bounds of boundary features: {e}")
        return list(fallback)

    if any(value != value for value in (min_x, min_y, max_x, max_y)):
        return list(fallback)
    return [(min_y + max_y) / 2, (min_x + max_x) / 2]


def create_results_map(
    features: List[Mapping[str, Any]],
    result: ReconciliationResult,
    config: Config,
    registry: Optional[FieldRegistry] = None,
    swing_delta: Any = None,
) -> folium.Map:
    """Build the interactive results map."""
    logger.info("🗺️ Creating interactive results map...")

    registry = registry or config.get_field_registry()
    colors = config.get_bloc_colors()
    labels = config.get_bloc_labels()
    default_fill = config.get_default_fill()
    fill_opacity = config.get_visualization_setting("fill_opacity")
    outline_color = config.get_visualization_setting("outline_color")
    outline_weight = config.get_visualization_setting("outline_weight")

    center = compute_map_center(features, config.get_visualization_setting("center"))
    logger.debug(f"     Map center: {center[0]:.4f}, {center[1]:.4f}")

    m = folium.Map(
        location=center,
        zoom_start=config.get_visualization_setting("zoom_start"),
        tiles=config.get_visualization_setting("tiles"),
        prefer_canvas=True,
    )

    for feature, code, district in join_features(features, result, registry):
        if not feature.get("geometry"):
            continue
        style = feature_style(
            district, colors, default_fill, fill_opacity, outline_color, outline_weight
        )
        popup_html = build_popup_content(
            district.winner if district else None,
            district.bloc if district else None,
            registry,
            labels,
        )
        layer = folium.GeoJson(
            data=feature,
            name=code or "circonscription",
            style_function=lambda _feature, style=style: style,
            control=False,
        )
        folium.Popup(popup_html, max_width=300).add_to(layer)
        layer.add_to(m)

    title_html = f"""
    <h3 align="center" style="font-size:20px; color: #333333; margin-top:10px;">
    <b>{escape(str(config.get('project_name')))}</b><br>
    <span style="font-size:14px;">{escape(str(config.get('description')))}</span>
    </h3>
    """
    m.get_root().html.add_child(folium.Element(title_html))
    m.get_root().html.add_child(folium.Element(build_legend_html(colors, labels)))
    m.get_root().html.add_child(
        folium.Element(build_summary_html(result, colors, default_fill, labels, swing_delta))
    )

    return m


def save_results_map(
    features: List[Mapping[str, Any]],
    result: ReconciliationResult,
    config: Config,
    output_path: Optional[Union[str, Path]] = None,
    swing_delta: Any = None,
) -> Path:
    """Render the results map and write it to HTML."""
    output_path = Path(output_path) if output_path else config.get_output_path("html")
    output_path.parent.mkdir(parents=True, exist_ok=True)

    m = create_results_map(features, result, config, swing_delta=swing_delta)
    m.save(str(output_path))
    logger.success(f"  ✅ Interactive results map saved: {output_path}")
    return output_path


def render_status_page(state: LoadState, message: Optional[str] = None) -> str:
    """Standalone page for the loading and error states."""
    if state is LoadState.ERROR:
        body = f'<div class="status error">Impossible de charger les données : {escape(message or "")}</div>'
    else:
        body = '<p class="status">Chargement des données…</p>'
    return f"<!DOCTYPE html><html lang=\"fr\"><head><meta charset=\"utf-8\"></head><body>{body}</body></html>"


def write_status_page(state: LoadState, output_path: Union[str, Path], message: Optional[str] = None) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(render_status_page(state, message), encoding="utf-8")
    logger.info(f"  📄 Status page written: {output_path}")
    return output_path
