# /backend/claims_ai/services/merger.py

"""
Merge the structured and generative candidates into one CanonicalClaim.

Precedence, applied in this order:
  1. fallback defaults
  2. structured candidate, wherever it has a value
  3. generative candidate, only for identity fields still at their sentinel
  4. generative financials, when its total_amount is non-zero
  5. patient_responsibility = max(0, total - insurance) whenever total > 0
"""

import logging
from decimal import Decimal
from typing import List, Optional

from claims_ai.models.claim import CanonicalClaim, Medication
from claims_ai.services.canonical_schema import (
    CANDIDATE_FIELDS,
    ClaimCandidate,
    MONEY_FIELDS,
    STRING_DEFAULTS,
    fallback_claim,
)
from claims_ai.services.normalization import (
    UNKNOWN_DOCTOR_ID,
    normalize_doctor_id,
    parse_currency,
    parse_date,
    round_money,
    today_iso,
)

logger = logging.getLogger(__name__)

# Fields the generative candidate may fill when the structured one left a default
GENERATIVE_FILL_FIELDS = ("patient_name", "patient_id", "provider_name", "doctor_id", "diagnosis")


def _present(value) -> bool:
    return value is not None and value != ""


def merge_candidates(
    structured: Optional[ClaimCandidate],
    generative: Optional[ClaimCandidate],
    document_path: str = "",
    today: Optional[str] = None,
) -> CanonicalClaim:
    today = today or today_iso()
    merged = fallback_claim(document_path, today).model_dump()

    if structured is not None:
        for field in CANDIDATE_FIELDS:
            value = getattr(structured, field)
            if _present(value):
                merged[field] = value

    if generative is not None:
        for field in GENERATIVE_FILL_FIELDS:
            value = getattr(generative, field)
            if merged[field] == STRING_DEFAULTS[field] and _present(value):
                merged[field] = value

        if not merged["medications"] and generative.medications:
            merged["medications"] = generative.medications

        if generative.total_amount:
            logger.info("Using generative financial values")
            for field in MONEY_FIELDS:
                merged[field] = parse_currency(getattr(generative, field))

    return finalize_claim(merged, today)


def finalize_claim(data: dict, today: Optional[str] = None) -> CanonicalClaim:
    """
    Coerce a merged dict into a valid CanonicalClaim.

    Money is rounded to cents before the responsibility recomputation so the
    total - insurance identity holds exactly on the emitted values.
    """
    today = today or today_iso()

    strings = {}
    for field, sentinel in STRING_DEFAULTS.items():
        value = data.get(field)
        strings[field] = str(value).strip() if _present(value) else ""
        if not strings[field]:
            strings[field] = sentinel

    doctor_id = strings["doctor_id"]
    if doctor_id != UNKNOWN_DOCTOR_ID:
        strings["doctor_id"] = normalize_doctor_id(doctor_id)

    total = round_money(parse_currency(data.get("total_amount")))
    insurance = round_money(parse_currency(data.get("insurance_covered")))
    responsibility = round_money(parse_currency(data.get("patient_responsibility")))

    if total > 0:
        responsibility = max(Decimal("0.00"), total - insurance)

    return CanonicalClaim(
        **strings,
        total_amount=total,
        insurance_covered=insurance,
        patient_responsibility=responsibility,
        service_date=parse_date(data.get("service_date")) or today,
        medications=_medications(data.get("medications")),
        document_path=str(data.get("document_path") or ""),
    )


def _medications(value) -> List[Medication]:
    if not isinstance(value, (list, tuple)):
        return []
    medications = []
    for item in value:
        if isinstance(item, Medication):
            medications.append(item)
        elif isinstance(item, dict) and item.get("name"):
            medications.append(Medication(**item))
    return medications


def defaulted_fields(claim: CanonicalClaim, today: Optional[str] = None) -> List[str]:
    """Fields of a finished claim that ended up at their fallback default."""
    today = today or today_iso()
    fields = [f for f, sentinel in STRING_DEFAULTS.items() if getattr(claim, f) == sentinel]
    fields += [f for f in MONEY_FIELDS if getattr(claim, f) == 0]
    # Recomputed whenever the total is positive
    if claim.total_amount > 0 and "patient_responsibility" in fields:
        fields.remove("patient_responsibility")
    if claim.service_date == today:
        fields.append("service_date")
    if not claim.medications:
        fields.append("medications")
    return fields
