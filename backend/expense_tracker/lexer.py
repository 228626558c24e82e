import re
import unicodedata
from datetime import date
from typing import List, Optional

DATE_PATTERN = r"\d{2}/\d{2}/\d{4}"
STRICT_AMOUNT_PATTERN = r"\d{1,3}(?:\s?\d{3})*,\d{2}|\d+,\d{2}"  # 2 000,00 / 2000,00 / 89,50
LOOSE_AMOUNT_PATTERN = r"\d[\d\s]*,\d{2}"
LINE_AMOUNT_PATTERN = r"\d{1,3}(?:\s\d{3})*,\d{2}|\d+,\d{2}"

DATE_RE = re.compile(rf"(?<!\d)({DATE_PATTERN})(?!\d)")
LEADING_DATE_RE = re.compile(rf"^({DATE_PATTERN})\s*")
LINE_AMOUNT_RE = re.compile(rf"(?<![\d,])({LINE_AMOUNT_PATTERN})(?![\d,])")
AMOUNT_TOKEN_RE = re.compile(rf"^(?:{STRICT_AMOUNT_PATTERN})$")


def clean_spaces(s: str) -> str:
    return re.sub(r"\s+", " ", s).strip()


def normalize_fr(s: str) -> str:
    """
    Upper-case and strip French accents so "RELEVÉ DES OPÉRATIONS" and
    "RELEVE DES OPERATIONS" compare equal.
    """
    decomposed = unicodedata.normalize("NFKD", s or "")
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).upper()


def parse_fr_date(s: str) -> Optional[date]:
    m = re.fullmatch(r"\s*(\d{2})/(\d{2})/(\d{4})\s*", s or "")
    if not m:
        return None
    try:
        return date(int(m.group(3)), int(m.group(2)), int(m.group(1)))
    except ValueError:
        return None


def format_date_ddmmyyyy(d: date) -> str:
    return d.strftime("%d/%m/%Y")


def is_fr_amount(s: str) -> bool:
    return bool(AMOUNT_TOKEN_RE.fullmatch(s or ""))


def normalize_amount_text(s: str) -> Optional[str]:
    """
    Collapse irregular spacing inside an amount ("1  360,46" -> "1 360,46").
    Returns None when the result is not a well-formed French amount.
    """
    candidate = clean_spaces(s or "")
    return candidate if is_fr_amount(candidate) else None


def parse_fr_amount(s: str) -> Optional[float]:
    # "2 000,00" -> 2000.0; thousands separated by spaces, decimal comma
    raw = re.sub(r"\s+", "", s or "").replace(",", ".")
    try:
        return round(float(raw), 2)
    except ValueError:
        return None


def find_dates(text: str) -> List[str]:
    return DATE_RE.findall(text or "")


def find_amounts(text: str) -> List[str]:
    return LINE_AMOUNT_RE.findall(text or "")


def has_date(text: str) -> bool:
    return DATE_RE.search(text or "") is not None


def starts_with_date(text: str) -> bool:
    return LEADING_DATE_RE.match((text or "").strip()) is not None


def has_amount(text: str) -> bool:
    return LINE_AMOUNT_RE.search(text or "") is not None
