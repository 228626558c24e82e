import re
from dataclasses import dataclass
from datetime import date
from typing import Callable, List, Optional, Tuple

from .diagnostics import DiagnosticObserver, resolve_observer
from .lexer import (
    DATE_PATTERN,
    DATE_RE,
    LEADING_DATE_RE,
    LINE_AMOUNT_RE,
    LOOSE_AMOUNT_PATTERN,
    STRICT_AMOUNT_PATTERN,
    clean_spaces,
    find_amounts,
    find_dates,
    has_amount,
    has_date,
    normalize_amount_text,
    normalize_fr,
    parse_fr_date,
    starts_with_date,
)

STRICT_PATTERN_ID = "strict"
LOOSE_PATTERN_ID = "loose"
SINGLE_DATE_PATTERN_ID = "single_date"
LINE_SCAN_PATTERN_ID = "line_scan"

# Dates and description share one line; '.' never crosses a line break.
_HS = r"[^\S\n]+"

STRICT_RE = re.compile(
    rf"({DATE_PATTERN}){_HS}({DATE_PATTERN}){_HS}(.+?)\s+({STRICT_AMOUNT_PATTERN})(?!\d)"
)
LOOSE_RE = re.compile(
    rf"({DATE_PATTERN}){_HS}({DATE_PATTERN}){_HS}(.+?)\s+({LOOSE_AMOUNT_PATTERN})(?!\d)"
)
SINGLE_DATE_RE = re.compile(
    rf"({DATE_PATTERN}){_HS}(.+?)\s+({STRICT_AMOUNT_PATTERN})(?!\d)"
)

SECTION_MARKERS = ("RELEVE DES OPERATIONS",)
MAX_CONTINUATION_LINES = 2


@dataclass(frozen=True, slots=True)
class RawCandidate:
    """One potential transaction found by a matching strategy."""

    operation_date: date
    value_date: date
    description: str
    amount_text: str
    source_pattern_id: str
    # Full text the strategy matched; the debit/credit classifier reads it.
    source_text: str = ""


def _build_candidate(
    observer: DiagnosticObserver,
    pattern_id: str,
    op_date_text: str,
    value_date_text: Optional[str],
    description: str,
    amount_text: str,
    source_text: str,
) -> Optional[RawCandidate]:
    op_date = parse_fr_date(op_date_text)
    value_date = parse_fr_date(value_date_text) if value_date_text else op_date
    if op_date is None or value_date is None:
        observer.emit(
            "debug",
            "matcher.candidate_rejected",
            strategy=pattern_id,
            reason="invalid_date",
            text=source_text[:80],
        )
        return None

    amount = normalize_amount_text(amount_text)
    if amount is None:
        observer.emit(
            "debug",
            "matcher.candidate_rejected",
            strategy=pattern_id,
            reason="invalid_amount",
            amount=amount_text,
            text=source_text[:80],
        )
        return None

    return RawCandidate(
        operation_date=op_date,
        value_date=value_date,
        description=description,
        amount_text=amount,
        source_pattern_id=pattern_id,
        source_text=source_text,
    )


def match_strict(text: str, observer: Optional[DiagnosticObserver] = None) -> List[RawCandidate]:
    """Two dates, description, amount in the strict French grammar."""
    obs = resolve_observer(observer)
    out: List[RawCandidate] = []
    for m in STRICT_RE.finditer(text):
        c = _build_candidate(obs, STRICT_PATTERN_ID, m.group(1), m.group(2), m.group(3), m.group(4), m.group(0))
        if c is not None:
            out.append(c)
    return out


def match_loose(text: str, observer: Optional[DiagnosticObserver] = None) -> List[RawCandidate]:
    """Two dates, description, amount tolerating irregular spacing."""
    obs = resolve_observer(observer)
    out: List[RawCandidate] = []
    for m in LOOSE_RE.finditer(text):
        c = _build_candidate(obs, LOOSE_PATTERN_ID, m.group(1), m.group(2), m.group(3), m.group(4), m.group(0))
        if c is not None:
            out.append(c)
    return out


def match_single_date(text: str, observer: Optional[DiagnosticObserver] = None) -> List[RawCandidate]:
    """
    One date, description, amount. Handles rows where the value date is
    fused onto the description: a leading date in the captured description
    is lifted off and used as the value date.
    """
    obs = resolve_observer(observer)
    out: List[RawCandidate] = []
    for m in SINGLE_DATE_RE.finditer(text):
        description = m.group(2)
        value_date_text = None
        lead = LEADING_DATE_RE.match(description)
        if lead and description[lead.end():].strip():
            value_date_text = lead.group(1)
            description = description[lead.end():]
        c = _build_candidate(obs, SINGLE_DATE_PATTERN_ID, m.group(1), value_date_text, description, m.group(3), m.group(0))
        if c is not None:
            out.append(c)
    return out


def is_section_header(line: str) -> bool:
    norm = normalize_fr(line)
    if any(marker in norm for marker in SECTION_MARKERS):
        return True
    return "Date" in line and "Valeur" in line


def parse_transaction_line(
    line: str,
    observer: Optional[DiagnosticObserver] = None,
) -> Optional[RawCandidate]:
    """
    Parse a single (possibly joined) statement line.
    First date is the operation date, second (if any) the value date, the last
    French amount is the transaction amount, and what is left once dates and
    amounts are removed is the description.
    """
    obs = resolve_observer(observer)
    dates = find_dates(line)
    amounts = find_amounts(line)
    if not dates or not amounts:
        return None

    description = clean_spaces(LINE_AMOUNT_RE.sub(" ", DATE_RE.sub(" ", line)))

    value_date_text = dates[1] if len(dates) > 1 else dates[0]
    return _build_candidate(obs, LINE_SCAN_PATTERN_ID, dates[0], value_date_text, description, amounts[-1], line)


def scan_lines(text: str, observer: Optional[DiagnosticObserver] = None) -> List[RawCandidate]:
    """
    Line-oriented fallback. Only lines after an operations-section header are
    considered; a dated line without an amount is joined with up to two
    following undated lines (wrapped descriptions).
    """
    obs = resolve_observer(observer)
    lines = (text or "").split("\n")
    out: List[RawCandidate] = []
    in_section = False

    i = 0
    while i < len(lines):
        line = lines[i].strip()

        if is_section_header(line):
            in_section = True
            obs.emit("debug", "matcher.section_found", line_number=i + 1)
            i += 1
            continue

        if not in_section or not line:
            i += 1
            continue

        line_has_amount = has_amount(line)
        if line_has_amount and has_date(line):
            c = parse_transaction_line(line, obs)
            if c is not None:
                out.append(c)

        if starts_with_date(line):
            joined = line
            j = i + 1
            while j < len(lines) and j < i + 1 + MAX_CONTINUATION_LINES:
                nxt = lines[j].strip()
                if nxt and not starts_with_date(nxt):
                    joined += " " + nxt
                    j += 1
                else:
                    break

            if not line_has_amount:
                c = parse_transaction_line(joined, obs)
                if c is not None:
                    out.append(c)

            i = j
            continue

        i += 1

    return out


MatcherFn = Callable[[str, Optional[DiagnosticObserver]], List[RawCandidate]]

# Priority order matters: deduplication keeps the first candidate it sees.
MATCHERS: Tuple[Tuple[str, MatcherFn], ...] = (
    (STRICT_PATTERN_ID, match_strict),
    (LOOSE_PATTERN_ID, match_loose),
    (SINGLE_DATE_PATTERN_ID, match_single_date),
    (LINE_SCAN_PATTERN_ID, scan_lines),
)


def extract_candidates(text: str, observer: Optional[DiagnosticObserver] = None) -> List[RawCandidate]:
    """Run every strategy over the same text and union their results in priority order."""
    obs = resolve_observer(observer)
    text = text or ""
    candidates: List[RawCandidate] = []
    for pattern_id, matcher in MATCHERS:
        found = matcher(text, obs)
        obs.emit("debug", "matcher.strategy_completed", strategy=pattern_id, count=len(found))
        candidates.extend(found)
    return candidates
