"""
Political bloc classification.

Results mix short official nuance codes ("RN", "LFI", "UDI") with long party
or coalition labels ("RASSEMBLEMENT NATIONAL", "ENSEMBLE !"). A winner's label
is looked up first among nuance codes, then among free-text aliases; labels
found in neither table are kept as their own ad-hoc bloc so that no winner is
dropped from the seat totals.
"""

from typing import Dict, Mapping, Optional

from loguru import logger

NOUVEAU_FRONT_POPULAIRE = "Nouveau Front Populaire"
ENSEMBLE = "Ensemble"
RASSEMBLEMENT_NATIONAL = "Rassemblement National"
LES_REPUBLICAINS = "Les Républicains"
DIVERS_DROITE = "Divers droite"
DIVERS_GAUCHE = "Divers gauche"
CENTRE = "Centre"
DIVERS = "Divers"
AUTRES = "Autres"

KNOWN_BLOCS = [
    NOUVEAU_FRONT_POPULAIRE,
    ENSEMBLE,
    RASSEMBLEMENT_NATIONAL,
    LES_REPUBLICAINS,
    DIVERS_DROITE,
    DIVERS_GAUCHE,
    CENTRE,
    DIVERS,
    AUTRES,
]

DEFAULT_BLOC = AUTRES

# Official nuance codes (upper case)
NUANCE_TO_BLOC: Dict[str, str] = {
    "NFP": NOUVEAU_FRONT_POPULAIRE,
    "UG": NOUVEAU_FRONT_POPULAIRE,
    "G": NOUVEAU_FRONT_POPULAIRE,
    "SOC": NOUVEAU_FRONT_POPULAIRE,
    "EELV": NOUVEAU_FRONT_POPULAIRE,
    "ECO": NOUVEAU_FRONT_POPULAIRE,
    "LFI": NOUVEAU_FRONT_POPULAIRE,
    "FI": NOUVEAU_FRONT_POPULAIRE,
    "COM": NOUVEAU_FRONT_POPULAIRE,
    "DVG": DIVERS_GAUCHE,
    "DVC": CENTRE,
    "UDI": CENTRE,
    "MODEM": ENSEMBLE,
    "ENS": ENSEMBLE,
    "REN": ENSEMBLE,
    "HOR": ENSEMBLE,
    "RE": ENSEMBLE,
    "LR": LES_REPUBLICAINS,
    "DVD": DIVERS_DROITE,
    "UDC": DIVERS_DROITE,
    "RN": RASSEMBLEMENT_NATIONAL,
    "UXD": RASSEMBLEMENT_NATIONAL,
    "DLF": RASSEMBLEMENT_NATIONAL,
    "EXD": RASSEMBLEMENT_NATIONAL,
    "REC": RASSEMBLEMENT_NATIONAL,
    "DIV": DIVERS,
    "REG": DIVERS,
    "AUT": AUTRES,
}

# Full party and coalition names, including historical label variants (upper case)
ALIAS_TO_BLOC: Dict[str, str] = {
    "NOUVEAU FRONT POPULAIRE": NOUVEAU_FRONT_POPULAIRE,
    "UNION DE LA GAUCHE": NOUVEAU_FRONT_POPULAIRE,
    "LA FRANCE INSOUMISE": NOUVEAU_FRONT_POPULAIRE,
    "PARTI SOCIALISTE": NOUVEAU_FRONT_POPULAIRE,
    "LES ÉCOLOGISTES": NOUVEAU_FRONT_POPULAIRE,
    "LES ECOLOGISTES": NOUVEAU_FRONT_POPULAIRE,
    "PARTI COMMUNISTE FRANÇAIS": NOUVEAU_FRONT_POPULAIRE,
    "ENSEMBLE": ENSEMBLE,
    "ENSEMBLE !": ENSEMBLE,
    "ENSEMBLE POUR LA RÉPUBLIQUE": ENSEMBLE,
    "ENSEMBLE POUR LA REPUBLIQUE": ENSEMBLE,
    "RENAISSANCE": ENSEMBLE,
    "MOUVEMENT DÉMOCRATE": ENSEMBLE,
    "MOUVEMENT DEMOCRATE": ENSEMBLE,
    "HORIZONS": ENSEMBLE,
    "RASSEMBLEMENT NATIONAL": RASSEMBLEMENT_NATIONAL,
    "UNION DE L'EXTREME DROITE": RASSEMBLEMENT_NATIONAL,
    "UNION DE L'EXTRÊME DROITE": RASSEMBLEMENT_NATIONAL,
    "LES RÉPUBLICAINS": LES_REPUBLICAINS,
    "LES REPUBLICAINS": LES_REPUBLICAINS,
    "DIVERS DROITE": DIVERS_DROITE,
    "DIVERS GAUCHE": DIVERS_GAUCHE,
    "DIVERS CENTRE": CENTRE,
    "CENTRE": CENTRE,
    "DIVERS": DIVERS,
    "RÉGIONALISTE": DIVERS,
    "REGIONALISTE": DIVERS,
    "AUTRES": AUTRES,
}


def _normalize_key(raw_value) -> Optional[str]:
    if raw_value is None:
        return None
    text = str(raw_value).strip()
    return text or None


class BlocClassifier:
    """Two-tier lookup from a raw nuance or party label to a bloc id."""

    def __init__(
        self,
        nuance_table: Optional[Mapping[str, str]] = None,
        alias_table: Optional[Mapping[str, str]] = None,
    ):
        if nuance_table is None:
            nuance_table = NUANCE_TO_BLOC
        if alias_table is None:
            alias_table = ALIAS_TO_BLOC
        self.nuance_table = {k.upper(): v for k, v in nuance_table.items()}
        self.alias_table = {k.upper(): v for k, v in alias_table.items()}

    def classify(self, raw_value) -> Optional[str]:
        """Return the bloc for a raw label, the trimmed label itself if unknown, or None if empty."""
        text = _normalize_key(raw_value)
        if text is None:
            return None

        key = text.upper()
        if key in self.nuance_table:
            return self.nuance_table[key]
        if key in self.alias_table:
            return self.alias_table[key]

        logger.trace(f"Unrecognised bloc label kept as-is: {text!r}")
        return text


DEFAULT_CLASSIFIER = BlocClassifier()


def classify_bloc(raw_value) -> Optional[str]:
    """Classify with the built-in tables."""
    return DEFAULT_CLASSIFIER.classify(raw_value)


def bloc_label(bloc: str, labels: Optional[Mapping[str, str]] = None) -> str:
    """Display label for a bloc, falling back to the bloc id."""
    if labels and bloc in labels:
        return labels[bloc]
    return bloc


def bloc_color(bloc: Optional[str], colors: Mapping[str, str], default: str) -> str:
    """Fill color for a bloc, falling back to the default fill."""
    if bloc and colors.get(bloc):
        return colors[bloc]
    return default
