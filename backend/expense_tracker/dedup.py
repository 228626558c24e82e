"""
Collapse candidates that describe the same statement row.

The matching strategies overlap, so every real row is usually
found two or three times. Two candidates are the same row when date and
amount agree exactly and the descriptions agree on their first characters,
allowing for one strategy having truncated or prefixed the text.
"""
from typing import Iterable, List, Optional

from .diagnostics import DiagnosticObserver, resolve_observer
from .lexer import clean_spaces
from .matchers import RawCandidate

EXACT_PREFIX_LEN = 20
CONTAINS_PREFIX_LEN = 30


def _desc_key(description: str) -> str:
    return clean_spaces(description or "")


def is_duplicate(a: RawCandidate, b: RawCandidate) -> bool:
    if a.operation_date != b.operation_date or a.amount_text != b.amount_text:
        return False
    da = _desc_key(a.description)
    db = _desc_key(b.description)
    if da[:EXACT_PREFIX_LEN] == db[:EXACT_PREFIX_LEN]:
        return True
    pa = da[:CONTAINS_PREFIX_LEN]
    pb = db[:CONTAINS_PREFIX_LEN]
    return pa in pb or pb in pa


def deduplicate(
    candidates: Iterable[RawCandidate],
    observer: Optional[DiagnosticObserver] = None,
) -> List[RawCandidate]:
    """Keep the first candidate of every duplicate group, in input order."""
    obs = resolve_observer(observer)
    kept: List[RawCandidate] = []
    dropped = 0
    for c in candidates:
        original = next((k for k in kept if is_duplicate(k, c)), None)
        if original is not None:
            dropped += 1
            obs.emit(
                "debug",
                "dedup.duplicate_dropped",
                strategy=c.source_pattern_id,
                kept_strategy=original.source_pattern_id,
                amount=c.amount_text,
                description=c.description[:40],
            )
            continue
        kept.append(c)
    obs.emit("debug", "dedup.completed", kept=len(kept), dropped=dropped)
    return kept
