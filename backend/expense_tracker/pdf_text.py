import io
from typing import Any

import pdfplumber


class StatementReadError(Exception):
    """The uploaded bytes could not be read as a PDF statement."""


def extract_text_from_pdf(pdf: Any) -> str:
    # One line break between pages keeps rows from two pages apart.
    return "\n".join((page.extract_text() or "") for page in pdf.pages)


def extract_text_from_bytes(data: bytes) -> str:
    if not data:
        raise StatementReadError("Uploaded file is empty.")
    try:
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            return extract_text_from_pdf(pdf)
    except Exception as e:  # pdfminer raises a handful of unrelated types on bad input
        raise StatementReadError("Uploaded file is not a readable PDF.") from e
