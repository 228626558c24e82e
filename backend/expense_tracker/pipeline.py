"""
Statement text -> expense records.

    extract_candidates -> deduplicate -> classify_candidates -> debit only
        -> categorize + extract_counterparty per record

Pure and synchronous: no I/O, no shared mutable state. Diagnostics go to the
observer passed in by the caller.
"""
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from .categories import (
    Category,
    Confidence,
    Frequency,
    MovementType,
    categorize,
    determine_frequency,
    determine_movement_type,
)
from .columns import ClassifiedTransaction, Column, classify_candidates
from .counterparty import extract_counterparty
from .dedup import deduplicate
from .diagnostics import DiagnosticObserver, resolve_observer
from .lexer import clean_spaces, format_date_ddmmyyyy, parse_fr_amount
from .matchers import extract_candidates


@dataclass(frozen=True, slots=True)
class ExpenseRecord:
    index: int
    date: date
    value_date: date
    counterparty: str
    amount: float
    amount_text: str
    category: Category
    confidence: Confidence
    movement_type: MovementType
    frequency: Frequency
    raw_description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "date": format_date_ddmmyyyy(self.date),
            "value_date": format_date_ddmmyyyy(self.value_date),
            "counterparty": self.counterparty,
            "amount": self.amount,
            "amount_text": self.amount_text,
            "category": self.category.value,
            "confidence": self.confidence.value,
            "movement_type": self.movement_type.value,
            "frequency": self.frequency.value,
            "raw_description": self.raw_description,
        }


@dataclass(frozen=True, slots=True)
class ExtractionResult:
    records: List[ExpenseRecord]
    candidate_count: int
    unique_count: int
    credit_count: int

    @property
    def total_amount(self) -> float:
        return round(sum(r.amount for r in self.records), 2)


def build_expense_record(index: int, tx: ClassifiedTransaction) -> ExpenseRecord:
    description = clean_spaces(tx.description)
    match = categorize(description)
    amount = parse_fr_amount(tx.amount_text)
    return ExpenseRecord(
        index=index,
        date=tx.operation_date,
        value_date=tx.value_date,
        counterparty=extract_counterparty(description),
        # amount_text is grammar-checked by the matchers, so this always parses
        amount=amount if amount is not None else 0.0,
        amount_text=tx.amount_text,
        category=match.category,
        confidence=match.confidence,
        movement_type=determine_movement_type(description),
        frequency=determine_frequency(description),
        raw_description=tx.description,
    )


def run_extraction(text: str, observer: Optional[DiagnosticObserver] = None) -> ExtractionResult:
    obs = resolve_observer(observer)

    candidates = extract_candidates(text or "", obs)
    unique = deduplicate(candidates, obs)
    classified = classify_candidates(unique, obs)

    debits = [tx for tx in classified if tx.column is Column.DEBIT]
    records = [build_expense_record(i, tx) for i, tx in enumerate(debits, start=1)]

    result = ExtractionResult(
        records=records,
        candidate_count=len(candidates),
        unique_count=len(unique),
        credit_count=len(classified) - len(debits),
    )
    obs.emit(
        "info",
        "pipeline.completed",
        candidates=result.candidate_count,
        unique=result.unique_count,
        debits=len(records),
        credits=result.credit_count,
    )
    return result


def extract_expenses(text: str, observer: Optional[DiagnosticObserver] = None) -> List[ExpenseRecord]:
    return run_extraction(text, observer).records


def categorize_description(description: str) -> Dict[str, Any]:
    """Category, counterparty and movement hints for a bare description."""
    cleaned = clean_spaces(description or "")
    match = categorize(cleaned)
    return {
        "category": match.category.value,
        "confidence": match.confidence.value,
        "counterparty": extract_counterparty(cleaned),
        "movement_type": determine_movement_type(cleaned).value,
        "frequency": determine_frequency(cleaned).value,
    }
