"""Cell-value predicates shared by header classification and type inference.

Every function here is pure and works on the raw values a grid source
returns (Python scalars, ``datetime`` objects, strings) plus the cell's
display format.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, time
from typing import Any

from openpyxl.styles.numbers import is_date_format

from ingestkit_structure.models import DEFAULT_NUMBER_FORMAT, CellValue, SemanticType

_NUMBER_RE = re.compile(
    r"^[+-]?(?:\d{1,3}(?:,\d{3})+|\d+)?(?:\.\d+)?(?:[eE][+-]?\d+)?%?$"
)
_CURRENCY_SYMBOLS = "$€£¥₩₹"
_CURRENCY_TEXT_RE = re.compile(
    r"^\(?[+-]?\s*(?:[" + _CURRENCY_SYMBOLS + r"]|USD|EUR|GBP|JPY)\s?(?P<num>[\d.,]+)\)?$"
    r"|^\(?[+-]?(?P<num2>[\d.,]+)\s?(?:[" + _CURRENCY_SYMBOLS + r"]|USD|EUR|GBP|JPY)\)?$"
)
_CURRENCY_FORMAT_RE = re.compile(r"[" + _CURRENCY_SYMBOLS + r"]|\[\$")
_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%d/%m/%Y",
    "%m/%d/%y",
    "%d.%m.%Y",
    "%d-%b-%Y",
    "%d %b %Y",
    "%b %d, %Y",
    "%B %d, %Y",
)
_BOOLEAN_TEXT = {"true", "false"}


def is_blank(value: Any) -> bool:
    """Return True if a cell value is logically empty."""
    if value is None:
        return True
    if isinstance(value, str) and value.strip() == "":
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return False


def is_occupied(cell: CellValue) -> bool:
    """A cell is occupied if it has a value or a non-default display format."""
    if not is_blank(cell.value):
        return True
    return bool(cell.number_format) and cell.number_format != DEFAULT_NUMBER_FORMAT


def is_formula(value: Any) -> bool:
    return isinstance(value, str) and len(value) > 1 and value.startswith("=")


def parse_number(value: Any) -> float | None:
    """Parse *value* as a number, or return None.

    Booleans are not numbers.  Strings may use thousands separators and a
    trailing percent sign.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return None
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text or not any(ch.isdigit() for ch in text):
            return None
        if not _NUMBER_RE.match(text):
            return None
        scale = 100.0 if text.endswith("%") else 1.0
        try:
            return float(text.rstrip("%").replace(",", "")) / scale
        except ValueError:
            return None
    return None


def is_currency(cell: CellValue) -> bool:
    """Numeric cell with a currency display format, or currency-looking text."""
    value = cell.value
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return bool(_CURRENCY_FORMAT_RE.search(cell.number_format or ""))
    if isinstance(value, str):
        match = _CURRENCY_TEXT_RE.match(value.strip())
        if match is None:
            return False
        number = match.group("num") or match.group("num2")
        return parse_number(number) is not None
    return False


def is_date_like(cell: CellValue) -> bool:
    """Date/time objects, date-formatted serial numbers, or date strings."""
    value = cell.value
    if isinstance(value, (datetime, date, time)):
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        fmt = cell.number_format or DEFAULT_NUMBER_FORMAT
        return fmt != DEFAULT_NUMBER_FORMAT and is_date_format(fmt)
    if isinstance(value, str):
        text = value.strip()
        if not text or not text[0].isalnum():
            return False
        for fmt in _DATE_FORMATS:
            try:
                datetime.strptime(text, fmt)
            except ValueError:
                continue
            return True
    return False


def is_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return True
    return isinstance(value, str) and value.strip().lower() in _BOOLEAN_TEXT


def is_text(value: Any) -> bool:
    """Non-blank string that does not parse as a number or formula."""
    return (
        isinstance(value, str)
        and not is_blank(value)
        and parse_number(value) is None
        and not is_formula(value)
    )


def classify_value(cell: CellValue) -> SemanticType | None:
    """Most specific semantic type of one cell, or None for blanks.

    Parses are tried in precedence order: Formula, Currency, Date, Number,
    Boolean, Text.  Values that fail every parse map to Unknown.
    """
    value = cell.value
    if is_blank(value):
        return None
    if is_formula(value):
        return SemanticType.FORMULA
    if is_currency(cell):
        return SemanticType.CURRENCY
    if is_date_like(cell):
        return SemanticType.DATE
    if parse_number(value) is not None:
        return SemanticType.NUMBER
    if is_boolean(value):
        return SemanticType.BOOLEAN
    if isinstance(value, str):
        return SemanticType.TEXT
    return SemanticType.UNKNOWN


def display_value(value: Any) -> str:
    """Render a raw value as the string stored in sample rows."""
    if is_blank(value):
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, str):
        return value.strip()
    return str(value)
