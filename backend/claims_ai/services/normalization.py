# /backend/claims_ai/services/normalization.py

"""
Value normalizers shared by the structured and generative extraction paths.

These are pure functions with no I/O. None of them raise:
unparseable input degrades to 0, None or the physician-ID sentinel.
"""

import re
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional, Union

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

UNKNOWN_DOCTOR_ID = "MD-UNKNOWN"

_CENTS = Decimal("0.01")

# Fixed month-name table for "Month DD, YYYY"
MONTHS = {
    "january": 1, "jan": 1,
    "february": 2, "feb": 2,
    "march": 3, "mar": 3,
    "april": 4, "apr": 4,
    "may": 5,
    "june": 6, "jun": 6,
    "july": 7, "jul": 7,
    "august": 8, "aug": 8,
    "september": 9, "sept": 9, "sep": 9,
    "october": 10, "oct": 10,
    "november": 11, "nov": 11,
    "december": 12, "dec": 12,
}

_US_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_LONG_DATE = re.compile(r"^([A-Za-z]+)\.?\s+(\d{1,2}),?\s+(\d{4})$")

# Last-resort formats, tried after the three canonical shapes
FALLBACK_DATE_FORMATS = [
    "%d/%m/%Y",   # 26/01/2026
    "%d-%m-%Y",   # 26-01-2026
    "%m-%d-%Y",   # 01-26-2026
    "%Y/%m/%d",   # 2026/01/26
    "%m/%d/%y",   # 01/26/26
    "%d %b %Y",   # 26 Jan 2026
    "%d %B %Y",   # 26 January 2026
    "%B %d %Y",   # January 26 2026
    "%Y%m%d",     # 20260126
]

_DEFAULT_A = datetime(2000, 1, 1)
_DEFAULT_B = datetime(2001, 2, 2)

_NON_NUMERIC = re.compile(r"[^0-9.\-]+")
_NUMERIC_PREFIX = re.compile(r"-?(?:\d+\.?\d*|\.\d+)")
_MD_NUMBER = re.compile(r"(?:MD)?[-\s]?(\d+)", re.IGNORECASE)


def today_iso() -> str:
    """The processing date in ISO form."""
    return date.today().isoformat()


# ----------------------------------------------------------------------
# Currency
# ----------------------------------------------------------------------

def parse_currency(value: Any) -> float:
    """
    Strip everything but digits, '.' and '-' then parse the longest
    numeric prefix, so "$1,250.00 (approx.)" reads as 1250.0 and
    "1.2.3" as 1.2. Returns 0.0 for empty, None or unparseable input.
    """
    if value is None or isinstance(value, bool):
        return 0.0

    if isinstance(value, (int, float, Decimal)):
        return float(value)

    cleaned = _NON_NUMERIC.sub("", str(value))
    match = _NUMERIC_PREFIX.match(cleaned)
    if not match:
        logger.debug(f"Could not parse currency: '{value}'")
        return 0.0

    return float(match.group(0))


def round_money(value: Union[float, Decimal, None]) -> Decimal:
    """Quantize to cents (half-up), clamped at zero."""
    try:
        amount = Decimal(str(value or 0)).quantize(_CENTS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        logger.warning(f"Could not round amount: '{value}'")
        return Decimal("0.00")
    if amount.is_nan() or amount < 0:
        return Decimal("0.00")
    return amount


# ----------------------------------------------------------------------
# Dates
# ----------------------------------------------------------------------

def _iso(year: int, month: int, day: int) -> Optional[str]:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def parse_date(value: Any) -> Optional[str]:
    """
    Parse a date written as MM/DD/YYYY, YYYY-MM-DD or "Month DD, YYYY" into
    zero-padded YYYY-MM-DD, falling back to a general parse.

    Returns None when nothing matches; callers substitute the processing date.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    text = str(value).strip()
    if not text:
        return None

    match = _US_DATE.match(text)
    if match:
        parsed = _iso(int(match.group(3)), int(match.group(1)), int(match.group(2)))
        if parsed:
            return parsed

    match = _ISO_DATE.match(text)
    if match:
        parsed = _iso(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        if parsed:
            return parsed

    match = _LONG_DATE.match(text)
    if match:
        month = MONTHS.get(match.group(1).lower())
        if month:
            parsed = _iso(int(match.group(3)), month, int(match.group(2)))
            if parsed:
                return parsed

    return _parse_date_fallback(text)


def _parse_date_fallback(text: str) -> Optional[str]:
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        pass

    for fmt in FALLBACK_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue

    # General parse. Two distinct defaults must agree, so a string missing
    # its year, month or day is rejected instead of borrowing one.
    try:
        first = date_parser.parse(text, fuzzy=True, default=_DEFAULT_A)
        second = date_parser.parse(text, fuzzy=True, default=_DEFAULT_B)
    except (ValueError, OverflowError):
        first = second = None

    if first is not None and first.date() == second.date():
        return first.date().isoformat()

    logger.debug(f"Could not parse date: '{text}'")
    return None


# ----------------------------------------------------------------------
# Physician IDs
# ----------------------------------------------------------------------

def normalize_doctor_id(value: Any) -> str:
    """Canonical physician ID: 'MD' + digits, or MD-UNKNOWN."""
    if value is None:
        return UNKNOWN_DOCTOR_ID

    text = str(value).strip()
    if not text or text.lower() == "n/a":
        return UNKNOWN_DOCTOR_ID

    match = _MD_NUMBER.search(text)
    if match:
        return f"MD{match.group(1)}"

    digits = re.sub(r"[^0-9]", "", text)
    if digits:
        return f"MD{digits}"

    return UNKNOWN_DOCTOR_ID
