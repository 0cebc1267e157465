#!/usr/bin/env python3
"""
Field Registry for the Legislative Results Pipeline

Result tables published for French legislative elections change their column
names from one vintage to the next ("CodeCirconscription", "code_circo",
"Code circonscription législative", ...). This module keeps a single registry of
logical attributes, each with an ordered list of acceptable column names, and
resolves values from rows through it instead of hard-coding lookups per source.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from loguru import logger


@dataclass
class FieldDefinition:
    """A logical attribute and the column names it may appear under."""

    name: str
    description: str
    aliases: List[str] = field(default_factory=list)
    category: str = "electoral"  # 'electoral', 'identity', 'geographic', 'administrative'


def is_empty(value: Any) -> bool:
    """Absent values are None and the empty string."""
    return value is None or (isinstance(value, str) and value == "")


def resolve_field(row: Mapping[str, Any], aliases: Sequence[str]) -> Optional[Any]:
    """Return the first present, non-empty value among ``aliases``.

    Absence is an expected outcome and is reported as None, never raised.
    """
    if not row:
        return None
    for alias in aliases:
        value = row.get(alias)
        if not is_empty(value):
            return value
    return None


DISTRICT_CODE_FIELDS = [
    "CodeCirconscription",
    "code_circo",
    "Code_circonscription",
    "code_circonscription",
    "Code Circonscription",
    "Code circonscription législative",
    "Code de la circonscription",
]

DEPARTMENT_CODE_FIELDS = [
    "CodeDepartement",
    "code_departement",
    "Code_departement",
    "Code département",
    "Code du département",
    "code_dpt",
    "dep",
]

DISTRICT_NUMBER_FIELDS = [
    "NumeroCirconscription",
    "numero_circonscription",
    "Numero_circonscription",
    "num_circ",
    "Code circonscription",
    "Circonscription",
    "Code de la circonscription",
]

BLOC_FIELDS = [
    "Bloc",
    "BlocPolitique",
    "Bloc_politique",
    "BlocPolitiqueMajoritaire",
    "BlocMajoritaire",
    "BlocMajoritaire2",
    "Bloc2",
    "Bloc second tour",
    "BlocSecondTour",
    "Bloc_politique_second_tour",
]

PARTY_FIELDS = [
    "Nuance",
    "NuanceListe",
    "NuanceListe2",
    "Nuance_Candidat",
    "Nuance candidat",
    "Parti",
    "LibelleParti",
    "LibelleNuance",
]

ELECTED_FLAG_FIELDS = [
    "Elu",
    "elu",
    "Élu",
    "EstElu",
    "est_elu",
    "Elu_T2",
    "EluSecondTour",
]

SCORE_FIELDS = [
    "Voix",
    "VoixSecondTour",
    "Voix_2",
    "NbVoix",
    "NombreVoix",
    "NombreVoixSecondTour",
    "Score",
    "ScoreSecondTour",
    "Pourcentage",
    "PourcentageVoix",
    "PourcentageVoixExprimés",
    "PourcentageVoixExprimes",
    "PourcentageVoixInscrits",
    "PourcentageExp",
    "Score%",
]

FIRST_NAME_FIELDS = [
    "Prenom",
    "Prénom",
    "PrenomCandidat",
    "Prenom_Candidat",
    "PrénomCandidat",
    "Prénom candidat",
]

LAST_NAME_FIELDS = [
    "Nom",
    "NomCandidat",
    "Nom_Candidat",
    "Nom de famille",
    "Nom candidat",
]

FEATURE_CODE_FIELDS = [
    "code_circo",
    "CodeCirconscription",
    "codeCirconscription",
    "code_circonscription",
]


class FieldRegistry:
    """
    Registry of logical attributes and their ordered column-name aliases.
    Handles schema drift by trying every known alias in priority order.
    """

    def __init__(self, overrides: Optional[Mapping[str, Sequence[str]]] = None):
        self._fields: Dict[str, FieldDefinition] = {}
        self._register_base_fields()
        if overrides:
            for name, aliases in overrides.items():
                self.set_aliases(name, aliases)

    def register(self, field_def: FieldDefinition) -> None:
        """Register a field definition."""
        self._fields[field_def.name] = field_def
        logger.trace(f"Registered field: {field_def.name} ({len(field_def.aliases)} aliases)")

    def set_aliases(self, name: str, aliases: Sequence[str]) -> None:
        """Replace the alias list of a logical attribute, creating it if unknown."""
        if name in self._fields:
            self._fields[name].aliases = list(aliases)
        else:
            self.register(
                FieldDefinition(
                    name=name,
                    description=f"Configured field: {name}",
                    aliases=list(aliases),
                    category="informational",
                )
            )
        logger.debug(f"Field '{name}' now resolved from: {list(aliases)}")

    def aliases(self, name: str) -> List[str]:
        if name not in self._fields:
            raise KeyError(f"Field {name} not found in registry")
        return self._fields[name].aliases

    def resolve(self, row: Mapping[str, Any], name: str) -> Optional[Any]:
        """Resolve a logical attribute from a row."""
        return resolve_field(row, self.aliases(name))

    def names(self) -> List[str]:
        return list(self._fields.keys())

    def known_columns(self) -> set:
        """Every column name some registered attribute may be read from."""
        columns = set()
        for field_def in self._fields.values():
            columns.update(field_def.aliases)
        return columns

    def coverage_report(self, rows: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
        """
        Report how well a row collection is covered by the registered aliases.

        Returns counts of rows resolving each logical attribute, plus the
        columns that no alias matches (candidates for new aliases).
        """
        resolved = {name: 0 for name in self._fields}
        seen_columns: set = set()
        total_rows = 0

        for row in rows:
            total_rows += 1
            seen_columns.update(row.keys())
            for name, field_def in self._fields.items():
                if resolve_field(row, field_def.aliases) is not None:
                    resolved[name] += 1

        unmatched_columns = sorted(seen_columns - self.known_columns())

        report = {
            "total_rows": total_rows,
            "resolved": resolved,
            "unresolved_fields": [name for name, count in resolved.items() if count == 0],
            "unmatched_columns": unmatched_columns,
        }

        if total_rows and unmatched_columns:
            logger.debug(
                f"  📋 {len(unmatched_columns)} columns match no registered alias: "
                f"{unmatched_columns[:10]}{'...' if len(unmatched_columns) > 10 else ''}"
            )

        return report

    def _register_base_fields(self) -> None:
        """Register the logical attributes used by the reconciliation engine."""
        base_fields = [
            FieldDefinition(
                name="district_code",
                description="Full district code (department + district number)",
                aliases=DISTRICT_CODE_FIELDS,
                category="administrative",
            ),
            FieldDefinition(
                name="department_code",
                description="Department code (01-95, 2A, 2B, 971...)",
                aliases=DEPARTMENT_CODE_FIELDS,
                category="administrative",
            ),
            FieldDefinition(
                name="district_number",
                description="District number within its department",
                aliases=DISTRICT_NUMBER_FIELDS,
                category="administrative",
            ),
            FieldDefinition(
                name="bloc",
                description="Political bloc published with the result",
                aliases=BLOC_FIELDS,
            ),
            FieldDefinition(
                name="party",
                description="Party label or official nuance code of the candidate",
                aliases=PARTY_FIELDS,
            ),
            FieldDefinition(
                name="elected_flag",
                description="Whether the candidate won the district",
                aliases=ELECTED_FLAG_FIELDS,
            ),
            FieldDefinition(
                name="score",
                description="Vote counts or percentages, any of which ranks candidates",
                aliases=SCORE_FIELDS,
            ),
            FieldDefinition(
                name="first_name",
                description="Candidate first name",
                aliases=FIRST_NAME_FIELDS,
                category="identity",
            ),
            FieldDefinition(
                name="last_name",
                description="Candidate surname",
                aliases=LAST_NAME_FIELDS,
                category="identity",
            ),
            FieldDefinition(
                name="feature_code",
                description="District code carried by a boundary polygon",
                aliases=FEATURE_CODE_FIELDS,
                category="geographic",
            ),
        ]

        for field_def in base_fields:
            # Copy so that overrides never mutate the module-level lists
            field_def.aliases = list(field_def.aliases)
            self.register(field_def)


DEFAULT_REGISTRY = FieldRegistry()
