# /backend/claims_ai/services/field_classifier.py

"""
Heuristic mapping of analyzer output onto canonical claim fields.

Key/value pairs run through KEY_VALUE_RULES in order; the first rule whose
predicate matches the lower-cased label claims the pair, even if its
extractor then yields nothing. Tables are classified by their header row.
"""

import re
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from claims_ai.models.claim import Medication
from claims_ai.services.canonical_schema import (
    ClaimCandidate,
    DEFAULT_DOSAGE,
    DEFAULT_FREQUENCY,
)
from claims_ai.services.collaborators import AnalyzedTable
from claims_ai.services.normalization import (
    normalize_doctor_id,
    parse_currency,
    parse_date,
)

logger = logging.getLogger(__name__)

# Explicit license prefix, e.g. "Physician License No: 123456", "MD-98765"
_LICENSE_PREFIX = re.compile(
    r"(?:MD|Medical License|License No\.?|Physician License No\.?)\s*[-:#]?\s*(\d+)",
    re.IGNORECASE,
)

# Most medical license numbers are 5-7 digits
_LICENSE_DIGITS = re.compile(r"(\d{5,7})")


def _all(label: str, *words: str) -> bool:
    return all(w in label for w in words)


def _any(label: str, *words: str) -> bool:
    return any(w in label for w in words)


# ── Extractors ────────────────────────────────────────────────────────────────

def _text(value: str) -> Optional[str]:
    value = value.strip()
    return value or None


def extract_doctor_id(value: str) -> str:
    """Prefix pattern first, then a bare 5-7 digit run, then the raw value."""
    doctor_id = value.strip()

    prefix = _LICENSE_PREFIX.search(doctor_id)
    if prefix:
        doctor_id = f"MD{prefix.group(1)}"
    else:
        digits = _LICENSE_DIGITS.search(doctor_id)
        if digits:
            doctor_id = f"MD{digits.group(1)}"

    return normalize_doctor_id(doctor_id)


# ── Rule table ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class FieldRule:
    name:    str
    matches: Callable[[str], bool]
    field:   str
    extract: Callable[[str], Any]


KEY_VALUE_RULES = (
    FieldRule(
        "patient_name",
        lambda k: _all(k, "patient", "name"),
        "patient_name", _text,
    ),
    FieldRule(
        "patient_id",
        lambda k: "patient" in k and _any(k, "id", "mrn"),
        "patient_id", _text,
    ),
    FieldRule(
        "provider_name",
        lambda k: _any(k, "physician", "doctor", "provider", "attending")
        and "name" in k and "license" not in k,
        "provider_name", _text,
    ),
    FieldRule(
        "doctor_id",
        lambda k: _any(k, "physician", "doctor", "provider", "attending", "license")
        and _any(k, "license", "id", "no"),
        "doctor_id", extract_doctor_id,
    ),
    FieldRule(
        "total_amount",
        lambda k: _any(k, "total", "billed"),
        "total_amount", parse_currency,
    ),
    FieldRule(
        "insurance_covered",
        lambda k: _all(k, "insurance", "paid"),
        "insurance_covered", parse_currency,
    ),
    FieldRule(
        "patient_responsibility",
        lambda k: ("patient" in k and _any(k, "responsibility", "due"))
        or _all(k, "amount", "due", "by", "patient"),
        "patient_responsibility", parse_currency,
    ),
    FieldRule(
        "service_date",
        lambda k: _any(k, "service date", "date of service"),
        "service_date", parse_date,
    ),
    FieldRule(
        "diagnosis",
        lambda k: _any(k, "diagnosis", "icd"),
        "diagnosis", _text,
    ),
)


def classify_key_value(label: str, value: str, candidate: ClaimCandidate) -> Optional[str]:
    """
    Apply the first matching rule to the candidate.

    Returns the field that was set, or None when no rule matched or the
    extractor produced nothing (e.g. an unparseable service date).
    """
    label = label.lower().strip()
    for rule in KEY_VALUE_RULES:
        if not rule.matches(label):
            continue
        extracted = rule.extract(value)
        if extracted is None:
            return None
        setattr(candidate, rule.field, extracted)
        return rule.field
    return None


# ── Tables ────────────────────────────────────────────────────────────────────

def _find_column(headers: Dict[int, str], *keywords: str) -> Optional[int]:
    for col in sorted(headers):
        if _any(headers[col], *keywords):
            return col
    return None


def _cell_text(row: dict, col: Optional[int]) -> str:
    if col is None or col not in row:
        return ""
    return (row[col].content or "").strip()


def _row_indices(table: AnalyzedTable) -> range:
    last = max((c.row_index for c in table.cells), default=0)
    return range(1, max(table.row_count, last + 1))


def classify_table(table: AnalyzedTable, candidate: ClaimCandidate) -> Optional[str]:
    """
    Classify a table by its header row and fold its rows into the candidate.

    Returns "medication", "financial" or None for an ignored table.
    """
    headers = {
        col: (cell.content or "").lower()
        for col, cell in table.row(0).items()
    }
    values = list(headers.values())

    if any(_any(h, "medication", "drug") for h in values):
        _read_medication_table(table, headers, candidate)
        return "medication"

    if any(_any(h, "amount", "charge") for h in values):
        _read_financial_table(table, headers, candidate)
        return "financial"

    return None


def _read_medication_table(
    table: AnalyzedTable, headers: Dict[int, str], candidate: ClaimCandidate
) -> None:
    name_col = _find_column(headers, "medication", "drug")
    dosage_col = _find_column(headers, "dosage", "strength")
    frequency_col = _find_column(headers, "frequency", "instructions")

    for i in _row_indices(table):
        row = table.row(i)
        name = _cell_text(row, name_col)
        if not name:
            continue
        candidate.medications.append(Medication(
            name=name,
            dosage=_cell_text(row, dosage_col) or DEFAULT_DOSAGE,
            frequency=_cell_text(row, frequency_col) or DEFAULT_FREQUENCY,
        ))


def _read_financial_table(
    table: AnalyzedTable, headers: Dict[int, str], candidate: ClaimCandidate
) -> None:
    amount_col = _find_column(headers, "amount", "charge")
    desc_col = _find_column(headers, "description", "type")

    for i in _row_indices(table):
        row = table.row(i)
        description = _cell_text(row, desc_col).lower()
        amount = parse_currency(_cell_text(row, amount_col) or "0")

        if "total" in description:
            candidate.total_amount = amount
        elif "insurance" in description:
            candidate.insurance_covered = amount
        elif "patient" in description:
            candidate.patient_responsibility = amount
