import re
from typing import List, Optional

SALARY_TRANSFER_MARKER = "VIR INSTANTANE EMIS NET"
DIRECT_DEBIT_MARKER = "PRELEVEMENT EUROPEEN"

SALARY_FALLBACK = "Salary Payment"
UNKNOWN_CLIENT = "Unknown Client"

MAX_NAME_TOKENS = 5

# Name runs after the marker and stops at the first digit (references, amounts).
POUR_RE = re.compile(r"\bPOUR:\s*([^0-9\n]+)", re.IGNORECASE)
DE_RE = re.compile(r"\bDE:\s*([^0-9\n]+)", re.IGNORECASE)

DISALLOWED_CHARS_RE = re.compile(r"[^a-zA-ZÀ-ÿ0-9\s\-.]")
CARD_MASK_RE = re.compile(r"^X\d+$", re.IGNORECASE)

STOPWORDS = frozenset({
    "DE", "DU", "LA", "LE", "LES", "POUR", "PAR", "ET", "OU",
    "AVEC", "SANS", "REF", "DATE", "MOTIF",
})

# Payment-method prefixes and SEPA / instant transfer qualifiers.
LEADING_BOILERPLATE = frozenset({
    "PRELEVEMENT", "VIREMENT", "VIR", "PAIEMENT", "CARTE", "CB",
    "EUROPEEN", "SEPA", "INSTANTANE", "INST", "EMIS", "NET",
})


def _tokens(text: str) -> List[str]:
    return DISALLOWED_CHARS_RE.sub(" ", text or "").split()


def _is_noise(token: str) -> bool:
    return (
        len(token) <= 2
        or token[0].isdigit()
        or token.upper() in STOPWORDS
        or bool(CARD_MASK_RE.match(token))
    )


def _drop_leading_boilerplate(tokens: List[str]) -> List[str]:
    i = 0
    while i < len(tokens) and tokens[i].upper() in LEADING_BOILERPLATE:
        i += 1
    return tokens[i:]


class CounterpartyName(str):
    """A name returned by extract_counterparty; extracting it again is a no-op."""

    __slots__ = ()


def clean_name(text: str) -> str:
    """Drop characters outside letters, digits, space, hyphen and period; collapse spaces."""
    return " ".join(_tokens(text))


def _significant_name(text: str) -> str:
    tokens = [t for t in _tokens(text) if not _is_noise(t)]
    return " ".join(_drop_leading_boilerplate(tokens)[:MAX_NAME_TOKENS])


def _marker_name(rgx: "re.Pattern[str]", description: str) -> Optional[str]:
    m = rgx.search(description)
    if not m:
        return None
    return clean_name(m.group(1)) or None


def _extract(description: str) -> str:
    upper = description.upper()
    if SALARY_TRANSFER_MARKER in upper:
        return _marker_name(POUR_RE, description) or SALARY_FALLBACK

    if DIRECT_DEBIT_MARKER in upper:
        name = _marker_name(DE_RE, description)
        if name:
            return name

    name = _significant_name(description)
    if name:
        return name

    # Text after a POUR:/DE: marker is still a name, even when too short to survive above.
    return _marker_name(POUR_RE, description) or _marker_name(DE_RE, description) or UNKNOWN_CLIENT


def extract_counterparty(description: str) -> str:
    """
    Derive a short client/vendor name from a transaction description.

    Salary transfers take the text after "POUR:", European direct debits the
    text after "DE:", both up to the first digit. Anything else keeps its
    first five meaningful words: no payment boilerplate, stopwords, numbers
    or words of two letters or less.

    The result is a CounterpartyName, which passes through unchanged when
    extracted again.
    """
    if isinstance(description, CounterpartyName):
        return description
    return CounterpartyName(_extract(" ".join((description or "").split())))
