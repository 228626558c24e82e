import re
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Pattern, Tuple


class Category(str, Enum):
    MASSE_SALARIALE = "MASSE SALARIALE"
    FRAIS_BANQUE = "FRAIS BANQUE"
    INTERNET = "INTERNET"
    ASSURANCE = "ASSURANCE"
    LOYER_CABINET = "LOYER CABINET"
    GYM = "GYM"
    CHARGES_SOCIALES = "CHARGES SOCIALES"
    LEASING_MOTO = "LEASING MOTO"
    LEASING_VOITURE = "LEASING VOITURE"
    MUTUELLE = "MUTUELLE"
    MATERIEL_CABINET = "MATERIEL CABINET"
    LOGICIEL_CABINET = "LOGICIEL CABINET"
    PREVOYANCE = "PREVOYANCE"
    TPE_BANQUE = "TPE BANQUE"
    AUTRES = "AUTRES"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class MovementType(str, Enum):
    DIRECT_DEBIT = "direct_debit"
    TRANSFER = "transfer"
    CARD = "card"
    CHECK = "check"
    OTHER = "other"


class Frequency(str, Enum):
    MONTHLY = "monthly"
    OCCASIONAL = "occasional"
    UNKNOWN = "unknown"


RULES_VERSION = "2025.02"

# Fuzzy stage. Declaration order is the match order; keywords are regexes.
DEFAULT_CATEGORY_RULES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("MASSE SALARIALE", ("VIR INSTANTANE EMIS NET", "VIREMENT SALAIRE", "PAIE", "REMUNERATION", "SALAIRE")),
    ("FRAIS BANQUE", ("FRAIS", "BANCAIRE", "COMMISSION", "AGIOS", "COTISATION CARTE", "TENUE COMPTE", "SOCIETE GENERALE")),
    ("INTERNET", ("ORANGE", "SFR", "BOUYGUES", "FREE", "TELECOM", "INTERNET", "MOBILE", "FIBRE", "GG CORPORATE")),
    ("ASSURANCE", ("ASSURANCE", "ASSUR", "MAIF", "MACIF", "AXA", "ALLIANZ", "GENERALI")),
    ("LOYER CABINET", ("LOYER", "LOCATION", "BAIL", "IMMOBILIER", "CABINET", "LOCAL")),
    ("GYM", ("GYM", "FITNESS", "SPORT", "CLUB", "SALLE DE SPORT", "MUSCULATION")),
    ("CHARGES SOCIALES", ("URSSAF", "SOCIAL", "COTISATION", "SECU", "RETRAITE", "POLE EMPLOI")),
    ("LEASING MOTO", ("LEASING.*MOTO", "LOCATION.*MOTO", "SCOOTER", "DEUX ROUES")),
    ("LEASING VOITURE", ("LEASING.*VOITURE", "LOCATION.*VEHICULE", "AUTO", "VOITURE", "PARKING", "CARBURANT")),
    ("MUTUELLE", ("MUTUELLE", "COMPLEMENTAIRE", "SANTE", "MEDICAL")),
    ("MATERIEL CABINET", (
        "MATERIEL", "EQUIPEMENT", "FOURNITURE", "MOBILIER",
        # supermarket runs are office supplies on this account
        "CARREFOUR", "MONOPRIX", "FRANPRIX", "FRANKPRIX", "AUCHAN", "LECLERC", "LIDL",
    )),
    ("LOGICIEL CABINET", ("LOGICIEL", "SOFTWARE", "LICENCE", "ABONNEMENT.*INFORMATIQUE")),
    ("PREVOYANCE", ("PREVOYANCE", "DECES", "INVALIDITE", "INCAPACITE")),
    ("TPE BANQUE", ("TPE", "TERMINAL", "PAIEMENT", "MONETIQUE")),
)

MONTHLY_KEYWORDS = ("LOYER", "ABONNEMENT", "ASSURANCE", "MUTUELLE", "INTERNET", "TELEPHONE")
OCCASIONAL_KEYWORDS = ("ACHAT", "FACTURE", "REPARATION", "MAINTENANCE")

MOVEMENT_RULES: Tuple[Tuple[Pattern[str], MovementType], ...] = (
    (re.compile(r"PRELEVEMENT"), MovementType.DIRECT_DEBIT),
    (re.compile(r"\bVIR(?:EMENT)?\b"), MovementType.TRANSFER),
    (re.compile(r"CARTE|\bCB\b"), MovementType.CARD),
    (re.compile(r"CHEQUE"), MovementType.CHECK),
)


@dataclass(frozen=True)
class CategoryRuleTable:
    """
    Immutable keyword table for the fuzzy stage.

    Built once at import and shared by every extraction; unknown category
    names or broken patterns fail here rather than at match time.
    """

    version: str
    rules: Tuple[Tuple[Category, Tuple[Pattern[str], ...]], ...]

    @classmethod
    def build(cls, version: str, raw_rules: Tuple[Tuple[str, Tuple[str, ...]], ...]) -> "CategoryRuleTable":
        compiled = []
        seen = set()
        for name, keywords in raw_rules:
            category = Category(name)
            if category is Category.AUTRES:
                raise ValueError("AUTRES is the fallback category and cannot carry keywords")
            if category in seen:
                raise ValueError(f"Duplicate rule for category {name!r}")
            if not keywords:
                raise ValueError(f"Category {name!r} has no keywords")
            seen.add(category)
            compiled.append((category, tuple(re.compile(kw, re.IGNORECASE) for kw in keywords)))
        return cls(version=version, rules=tuple(compiled))

    def as_mapping(self) -> Mapping[Category, Tuple[str, ...]]:
        return MappingProxyType({cat: tuple(p.pattern for p in pats) for cat, pats in self.rules})


CATEGORY_RULES = CategoryRuleTable.build(RULES_VERSION, DEFAULT_CATEGORY_RULES)


@dataclass(frozen=True, slots=True)
class CategoryMatch:
    category: Category
    confidence: Confidence
    keyword: Optional[str] = None


def categorize(description: str, table: CategoryRuleTable = CATEGORY_RULES) -> CategoryMatch:
    """
    Map a description to a business category.
      1) literal category name inside the description -> high
      2) first category (declaration order) with a matching keyword -> medium
      3) AUTRES -> low
    """
    upper = (description or "").upper()

    for category in Category:
        if category is Category.AUTRES:
            continue
        if category.value in upper:
            return CategoryMatch(category, Confidence.HIGH, category.value)

    for category, patterns in table.rules:
        for rgx in patterns:
            if rgx.search(upper):
                return CategoryMatch(category, Confidence.MEDIUM, rgx.pattern)

    return CategoryMatch(Category.AUTRES, Confidence.LOW)


def determine_movement_type(description: str) -> MovementType:
    upper = (description or "").upper()
    for rgx, movement in MOVEMENT_RULES:
        if rgx.search(upper):
            return movement
    return MovementType.OTHER


def determine_frequency(description: str) -> Frequency:
    upper = (description or "").upper()
    if any(kw in upper for kw in MONTHLY_KEYWORDS):
        return Frequency.MONTHLY
    if any(kw in upper for kw in OCCASIONAL_KEYWORDS):
        return Frequency.OCCASIONAL
    return Frequency.UNKNOWN
