"""Winner selection within one district."""

from typing import Any, Mapping, Optional, Sequence

from .data_utils import is_missing_score, parse_score
from .field_registry import DEFAULT_REGISTRY, FieldRegistry

TRUTHY_FLAGS = {"oui", "yes", "true", "1", "elu", "élu"}


def is_truthy_flag(flag: Any) -> bool:
    """Numeric 1, boolean True, or one of the accepted 'elected' strings."""
    if flag is None:
        return False
    if isinstance(flag, bool):
        return flag
    if isinstance(flag, (int, float)):
        return flag == 1
    if isinstance(flag, str):
        return flag.strip().lower() in TRUTHY_FLAGS
    return False


def is_flagged_elected(row: Mapping[str, Any], registry: Optional[FieldRegistry] = None) -> bool:
    registry = registry or DEFAULT_REGISTRY
    return any(is_truthy_flag(row.get(alias)) for alias in registry.aliases("elected_flag"))


def best_score(row: Mapping[str, Any], registry: Optional[FieldRegistry] = None) -> float:
    """Highest parseable score among the score columns; -inf when there is none."""
    registry = registry or DEFAULT_REGISTRY
    best = float("-inf")
    for alias in registry.aliases("score"):
        if alias not in row:
            continue
        score = parse_score(row[alias])
        if not is_missing_score(score) and score > best:
            best = score
    return best


def select_winner(candidates: Sequence[Mapping[str, Any]], registry: Optional[FieldRegistry] = None):
    """
    Pick the winning row of a district.

    The first candidate carrying a truthy elected flag wins outright. Without
    any flag, the candidate with the strictly highest best score wins; ties
    keep the earlier candidate.
    """
    if not candidates:
        raise ValueError("Cannot select a winner from an empty candidate list")

    registry = registry or DEFAULT_REGISTRY

    if len(candidates) == 1:
        return candidates[0]

    for candidate in candidates:
        if is_flagged_elected(candidate, registry):
            return candidate

    winner = candidates[0]
    winning_score = float("-inf")
    for candidate in candidates:
        score = best_score(candidate, registry)
        if score > winning_score:
            winning_score = score
            winner = candidate

    return winner
