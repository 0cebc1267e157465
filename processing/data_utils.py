#!/usr/bin/env python3
"""
data_utils.py - Shared Data Processing Utilities

Common helpers used across the reconciliation pipeline: tolerant number
parsing for French-formatted scores and normalization of the different row
layouts published by the results API.
"""

import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np
from loguru import logger

from .field_registry import DEFAULT_REGISTRY, FieldRegistry, is_empty

# Leading float literal, the way a browser's parseFloat reads "45.3%"
_FLOAT_PREFIX = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_WHITESPACE = re.compile(r"\s+")

# "Nom candidat 3", "% Voix/exprimés 12"
_INDEXED_COLUMN = re.compile(r"^(?P<base>.*\S)\s+(?P<index>\d+)$")

# Attributes whose indexed columns mark a one-row-per-district layout
CANDIDATE_ATTRIBUTES = ["last_name", "first_name", "party", "score", "elected_flag"]


def parse_score(value: Any) -> float:
    """Parse a vote count or percentage into a float.

    Accepts numbers and strings such as ``"1 234,5"`` or ``"45,3 %"``.
    Whitespace (including non-breaking thousands separators) is removed and the
    first comma becomes the decimal point. Anything unparseable yields NaN;
    this function never raises.
    """
    if value is None or isinstance(value, bool):
        return np.nan
    if isinstance(value, (int, float, np.integer, np.floating)):
        return float(value)
    if isinstance(value, str):
        normalized = _WHITESPACE.sub("", value).replace(",", ".", 1)
        match = _FLOAT_PREFIX.match(normalized)
        if match is None:
            return np.nan
        try:
            return float(match.group(0))
        except ValueError:
            return np.nan
    return np.nan


def is_missing_score(score: float) -> bool:
    return bool(np.isnan(score))


def split_indexed_columns(row: Mapping[str, Any]) -> Tuple[Dict[str, Any], Dict[int, Dict[str, Any]]]:
    """Split a row into shared columns and per-slot candidate columns."""
    shared: Dict[str, Any] = {}
    slots: Dict[int, Dict[str, Any]] = {}

    for column, value in row.items():
        match = _INDEXED_COLUMN.match(str(column))
        if match is None:
            shared[column] = value
            continue
        slot = int(match.group("index"))
        slots.setdefault(slot, {})[match.group("base")] = value

    return shared, slots


def candidate_columns(registry: Optional[FieldRegistry] = None) -> set:
    """Column names that describe one candidate (name, nuance, votes, flag)."""
    registry = registry or DEFAULT_REGISTRY
    columns = set()
    for name in CANDIDATE_ATTRIBUTES:
        if name in registry.names():
            columns.update(registry.aliases(name))
    return columns


def explode_candidate_blocks(
    row: Mapping[str, Any], registry: Optional[FieldRegistry] = None
) -> List[Dict[str, Any]]:
    """
    Turn a one-row-per-district record into one row per candidate.

    Some result vintages store every candidate of a district in a single row,
    as indexed column blocks ("Nom candidat 1", "Voix 1", "Elu 1", "Nom
    candidat 2", ...). Each non-empty slot becomes a flat row made of the
    shared columns plus the slot's columns without their index. Slots whose
    values are all empty are dropped. A row is wide when some indexed column
    is a candidate attribute, even with a single slot; other rows are
    returned unchanged.
    """
    shared, slots = split_indexed_columns(row)

    known = candidate_columns(registry)
    if not any(base in known for fields in slots.values() for base in fields):
        return [dict(row)]

    exploded = []
    for slot in sorted(slots):
        candidate_fields = slots[slot]
        if all(is_empty(value) or (isinstance(value, str) and not value.strip())
               for value in candidate_fields.values()):
            continue
        flat = dict(shared)
        flat.update(candidate_fields)
        exploded.append(flat)

    logger.trace(f"Exploded row into {len(exploded)} candidates ({len(slots)} slots)")
    return exploded


def extract_rows(payload: Any) -> List[Dict[str, Any]]:
    """Accept ``{"data": [...]}`` or a bare list of rows; anything else is empty."""
    if isinstance(payload, dict) and isinstance(payload.get("data"), list):
        rows = payload["data"]
    elif isinstance(payload, list):
        rows = payload
    else:
        logger.warning(f"⚠️ Unexpected results payload type: {type(payload).__name__}")
        return []
    return [row for row in rows if isinstance(row, dict)]


def normalize_rows(payload: Any, registry: Optional[FieldRegistry] = None) -> List[Dict[str, Any]]:
    """Extract rows from a results payload and flatten indexed candidate blocks."""
    rows = extract_rows(payload)

    normalized: List[Dict[str, Any]] = []
    exploded_count = 0
    for row in rows:
        flat_rows = explode_candidate_blocks(row, registry)
        if len(flat_rows) != 1 or flat_rows[0] != row:
            exploded_count += 1
        normalized.extend(flat_rows)

    if exploded_count:
        logger.info(
            f"  📝 Flattened {exploded_count} district rows into {len(normalized)} candidate rows"
        )

    return normalized


def merge_feature_collections(collections: List[Mapping[str, Any]]) -> Dict[str, Any]:
    """Merge GeoJSON FeatureCollections by concatenating their features."""
    features: List[Dict[str, Any]] = []
    for collection in collections:
        if not isinstance(collection, Mapping):
            continue
        features.extend(
            feature for feature in collection.get("features") or [] if isinstance(feature, dict)
        )
    return {"type": "FeatureCollection", "features": features}
