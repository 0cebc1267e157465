"""
Processing package for the Legislative Results Map

This package contains the results reconciliation engine and its data helpers.
"""

__version__ = "0.1.0"

# Import key utilities for easy access
from .blocs import BlocClassifier, classify_bloc
from .data_utils import normalize_rows, parse_score
from .district_codes import feature_code, result_code
from .field_registry import FieldRegistry, resolve_field
from .reconcile import DistrictResult, ReconciliationResult, join_features, reconcile
from .winners import select_winner

__all__ = [
    "resolve_field",
    "FieldRegistry",
    "parse_score",
    "normalize_rows",
    "classify_bloc",
    "BlocClassifier",
    "result_code",
    "feature_code",
    "select_winner",
    "reconcile",
    "join_features",
    "DistrictResult",
    "ReconciliationResult",
]
