"""
District code normalization.

Result rows and boundary polygons must agree on one code format for the join
to work: the department code followed by the two-digit district number within
that department ("0503", "7512", "2A01", "97101").
"""

from typing import Any, Mapping, Optional

from loguru import logger

from .field_registry import DEFAULT_REGISTRY, FieldRegistry, is_empty

MIN_DIRECT_CODE_LENGTH = 4
DEPARTMENT_WIDTH = 2
DISTRICT_NUMBER_WIDTH = 2


def _as_code_text(value: Any) -> str:
    """String form of a code; integral floats read back as integers, letters upper-cased."""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip().upper()


def pad_code_part(value: Any, width: int) -> str:
    """Zero-pad a digit-only code part to ``width``; other strings pass through."""
    text = _as_code_text(value)
    if text.isdigit():
        return text.zfill(width)
    return text


def compose_district_code(department: Any, number: Any) -> Optional[str]:
    """Build ``DDNN`` from a department code and a district number."""
    if is_empty(department) or is_empty(number):
        return None
    department_text = pad_code_part(department, DEPARTMENT_WIDTH)
    number_text = pad_code_part(number, DISTRICT_NUMBER_WIDTH)
    if not department_text or not number_text:
        return None
    return department_text + number_text


def result_code(row: Mapping[str, Any], registry: Optional[FieldRegistry] = None) -> Optional[str]:
    """Canonical district code of a result row, or None.

    Direct code columns are accepted only when at least four characters long;
    otherwise the code is composed from the department and district number.
    """
    registry = registry or DEFAULT_REGISTRY

    for alias in registry.aliases("district_code"):
        value = row.get(alias)
        if is_empty(value):
            continue
        text = _as_code_text(value)
        if len(text) >= MIN_DIRECT_CODE_LENGTH:
            return text

    department = registry.resolve(row, "department_code")
    number = registry.resolve(row, "district_number")
    if department is None or number is None:
        return None

    code = compose_district_code(department, number)
    logger.trace(f"Composed district code {code} from department={department!r} number={number!r}")
    return code


def feature_code(feature: Mapping[str, Any], registry: Optional[FieldRegistry] = None) -> Optional[str]:
    """District code carried by a GeoJSON feature's properties, or None."""
    registry = registry or DEFAULT_REGISTRY
    properties = (feature or {}).get("properties") or {}
    value = registry.resolve(properties, "feature_code")
    if value is None:
        return None
    text = _as_code_text(value)
    return text or None
