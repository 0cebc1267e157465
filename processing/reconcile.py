#!/usr/bin/env python3
"""
reconcile.py - Results Reconciliation Engine

Takes the candidate rows of one fetch cycle and produces, for every district:
- the winning candidate row
- the political bloc of that winner

together with the number of districts won by each bloc. The pass is pure: it
reads an immutable snapshot of rows and builds fresh output structures, so it
can be recomputed on every render.

Data-quality problems never raise here. Rows without a district code are
skipped and counted, missing scores rank last, and winners without any bloc or
party information fall into the default bloc.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from loguru import logger

from .blocs import DEFAULT_BLOC, DEFAULT_CLASSIFIER, BlocClassifier
from .district_codes import feature_code, result_code
from .field_registry import DEFAULT_REGISTRY, FieldRegistry
from .winners import select_winner


@dataclass(frozen=True)
class DistrictResult:
    """Winner and bloc of one district."""

    code: str
    winner: Mapping[str, Any]
    bloc: str


@dataclass(frozen=True)
class ReconciliationResult:
    """Output of one reconciliation pass."""

    district_results: Dict[str, DistrictResult] = field(default_factory=dict)
    bloc_totals: Dict[str, int] = field(default_factory=dict)
    skipped_rows: int = 0
    total_rows: int = 0

    @property
    def seats(self) -> int:
        return sum(self.bloc_totals.values())

    def get(self, code: Optional[str]) -> Optional[DistrictResult]:
        if code is None:
            return None
        return self.district_results.get(code)

    def summary_items(self) -> List[Tuple[str, int]]:
        """Bloc totals ordered by descending seat count (stable for ties)."""
        return sorted(self.bloc_totals.items(), key=lambda item: item[1], reverse=True)


def group_by_district(
    rows: Iterable[Mapping[str, Any]], registry: Optional[FieldRegistry] = None
) -> Tuple[Dict[str, List[Mapping[str, Any]]], int, int]:
    """Group rows by district code in first-seen order.

    Returns the groups, the number of rows read and the number skipped for
    lack of a district code.
    """
    registry = registry or DEFAULT_REGISTRY
    grouped: Dict[str, List[Mapping[str, Any]]] = {}
    total = 0
    skipped = 0

    for row in rows:
        total += 1
        code = result_code(row, registry)
        if code is None:
            skipped += 1
            continue
        grouped.setdefault(code, []).append(row)

    return grouped, total, skipped


def resolve_bloc(
    winner: Mapping[str, Any],
    registry: Optional[FieldRegistry] = None,
    classifier: Optional[BlocClassifier] = None,
    default_bloc: str = DEFAULT_BLOC,
) -> str:
    """Bloc of a winner: published bloc first, then party/nuance, then the default."""
    registry = registry or DEFAULT_REGISTRY
    classifier = classifier or DEFAULT_CLASSIFIER

    bloc = classifier.classify(registry.resolve(winner, "bloc"))
    if bloc is None:
        bloc = classifier.classify(registry.resolve(winner, "party"))
    return bloc or default_bloc


def reconcile(
    rows: Iterable[Mapping[str, Any]],
    registry: Optional[FieldRegistry] = None,
    classifier: Optional[BlocClassifier] = None,
    default_bloc: str = DEFAULT_BLOC,
) -> ReconciliationResult:
    """Determine winners and blocs for every district and count seats per bloc."""
    registry = registry or DEFAULT_REGISTRY
    classifier = classifier or DEFAULT_CLASSIFIER

    grouped, total_rows, skipped_rows = group_by_district(rows, registry)

    district_results: Dict[str, DistrictResult] = {}
    bloc_totals: Dict[str, int] = {}

    for code, candidates in grouped.items():
        if not candidates:
            continue
        winner = select_winner(candidates, registry)
        bloc = resolve_bloc(winner, registry, classifier, default_bloc)
        district_results[code] = DistrictResult(code=code, winner=winner, bloc=bloc)
        bloc_totals[bloc] = bloc_totals.get(bloc, 0) + 1

    if skipped_rows:
        logger.info(f"  ⏭️ Skipped {skipped_rows:,} of {total_rows:,} rows without a district code")
    logger.info(
        f"  🗳️ Reconciled {total_rows - skipped_rows:,} candidate rows into "
        f"{len(district_results):,} districts across {len(bloc_totals)} blocs"
    )

    return ReconciliationResult(
        district_results=district_results,
        bloc_totals=bloc_totals,
        skipped_rows=skipped_rows,
        total_rows=total_rows,
    )


def join_features(
    features: Iterable[Mapping[str, Any]],
    result: ReconciliationResult,
    registry: Optional[FieldRegistry] = None,
) -> List[Tuple[Mapping[str, Any], Optional[str], Optional[DistrictResult]]]:
    """
    Pair every boundary feature with its district code and result.

    Features without a code, or whose code has no result, are kept with None
    so that they are still drawn with the default fill.
    """
    registry = registry or DEFAULT_REGISTRY
    joined = []
    matched_codes = set()
    without_code = 0
    unmatched = 0

    for feature in features:
        code = feature_code(feature, registry)
        district = result.get(code)
        if code is None:
            without_code += 1
        elif district is None:
            unmatched += 1
        else:
            matched_codes.add(code)
        joined.append((feature, code, district))

    orphan_results = len(set(result.district_results) - matched_codes)

    logger.info(f"  🔗 Matched {len(matched_codes):,} of {len(joined):,} features to district results")
    if without_code:
        logger.warning(f"  ⚠️ {without_code:,} features carry no district code")
    if unmatched:
        logger.warning(f"  ⚠️ {unmatched:,} features have no matching result")
    if orphan_results:
        logger.warning(f"  ⚠️ {orphan_results:,} district results have no boundary polygon")

    return joined
