from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from .diagnostics import DiagnosticObserver, resolve_observer
from .matchers import RawCandidate


class Column(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


# Money coming in. Kept narrow: any hit here wins over the debit list.
CREDIT_KEYWORDS: Tuple[str, ...] = (
    "VIREMENT RECU",
    "VIR RECU",
    "VIR INSTANTANE RECU",
    "REMISE CB",
    "VERSEMENT RECU",
    "DEPOT ESPECE",
    "ENCAISSEMENT",
)

DEBIT_KEYWORDS: Tuple[str, ...] = (
    "PRELEVEMENT",
    "VIREMENT EMIS",
    "VIR EMIS",
    "VIR INSTANTANE EMIS",
    "FRAIS",
    "COMMISSION",
    "COTISATION",
    "ABONNEMENT",
    "FACTURE",
    "PAIEMENT",
    "RETRAIT",
    "CARTE",
    "CB ",
    "CHEQUE",
    "ACHAT",
    "LOCATION",
    "LOYER",
    "ASSURANCE",
    "MUTUELLE",
    "INTERNET",
    "TELEPHONE",
    "ELECTRICITE",
    "GAZ",
    "EAU",
    "SALAIRE",
    "PAIE",
    "REMUNERATION",
    "VIREMENT SALAIRE",
    "VIREMENT PAIE",
    "MASSE SALARIALE",
)


@dataclass(frozen=True, slots=True)
class ClassifiedTransaction:
    candidate: RawCandidate
    column: Column
    # Keyword that decided the column; None when the default policy applied.
    matched_keyword: Optional[str] = None

    @property
    def debit_amount(self) -> Optional[str]:
        return self.candidate.amount_text if self.column is Column.DEBIT else None

    @property
    def credit_amount(self) -> Optional[str]:
        return self.candidate.amount_text if self.column is Column.CREDIT else None

    @property
    def operation_date(self) -> date:
        return self.candidate.operation_date

    @property
    def value_date(self) -> date:
        return self.candidate.value_date

    @property
    def description(self) -> str:
        return self.candidate.description

    @property
    def amount_text(self) -> str:
        return self.candidate.amount_text


def _first_keyword(haystack: str, keywords: Iterable[str]) -> Optional[str]:
    return next((kw for kw in keywords if kw in haystack), None)


def infer_column(line: str, description: str) -> Tuple[Column, Optional[str]]:
    """
    Decide which statement column an amount belongs to.

    Credit keywords are checked first. An unrecognized transaction on a
    business account is treated as an expense.
    """
    haystack = f"{line or ''} {description or ''}".upper()

    credit_kw = _first_keyword(haystack, CREDIT_KEYWORDS)
    if credit_kw:
        return Column.CREDIT, credit_kw

    debit_kw = _first_keyword(haystack, DEBIT_KEYWORDS)
    if debit_kw:
        return Column.DEBIT, debit_kw

    return Column.DEBIT, None


def classify_candidate(
    candidate: RawCandidate,
    observer: Optional[DiagnosticObserver] = None,
) -> ClassifiedTransaction:
    obs = resolve_observer(observer)
    column, keyword = infer_column(candidate.source_text, candidate.description)
    obs.emit(
        "debug",
        "columns.assigned",
        column=column.value,
        keyword=keyword,
        default_policy=keyword is None,
        amount=candidate.amount_text,
        description=candidate.description[:40],
    )
    return ClassifiedTransaction(candidate=candidate, column=column, matched_keyword=keyword)


def classify_candidates(
    candidates: Iterable[RawCandidate],
    observer: Optional[DiagnosticObserver] = None,
) -> List[ClassifiedTransaction]:
    return [classify_candidate(c, observer) for c in candidates]
