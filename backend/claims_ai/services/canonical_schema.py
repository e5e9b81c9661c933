# /backend/claims_ai/services/canonical_schema.py

"""
The canonical claim schema is the single source of truth that both extraction
paths produce: the structured analyzer through the field classifier, the
generative engine through its JSON reply.

Every field has a sentinel default. A candidate starts empty (all None) and
only the merger turns it into a fully populated CanonicalClaim.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from claims_ai.models.claim import CanonicalClaim, Medication
from claims_ai.services.normalization import UNKNOWN_DOCTOR_ID, today_iso

DEFAULT_PATIENT_ID = "UNKNOWN"
DEFAULT_PATIENT_NAME = "Unknown Patient"
DEFAULT_PROVIDER_NAME = "Unknown Provider"
DEFAULT_DIAGNOSIS = "Not specified"
DEFAULT_DOSAGE = "Not specified"
DEFAULT_FREQUENCY = "As directed"

# Sentinel per string field; monetary fields default to 0.00
STRING_DEFAULTS = {
    "patient_id":    DEFAULT_PATIENT_ID,
    "patient_name":  DEFAULT_PATIENT_NAME,
    "provider_name": DEFAULT_PROVIDER_NAME,
    "doctor_id":     UNKNOWN_DOCTOR_ID,
    "diagnosis":     DEFAULT_DIAGNOSIS,
}

MONEY_FIELDS = ("total_amount", "insurance_covered", "patient_responsibility")

CANDIDATE_FIELDS = (
    "patient_id",
    "patient_name",
    "provider_name",
    "doctor_id",
    "diagnosis",
    "total_amount",
    "insurance_covered",
    "patient_responsibility",
    "service_date",
    "medications",
)


@dataclass
class ClaimCandidate:
    """One partially populated claim from a single extraction attempt."""

    patient_id:             Optional[str]   = None
    patient_name:           Optional[str]   = None
    provider_name:          Optional[str]   = None
    doctor_id:              Optional[str]   = None
    diagnosis:              Optional[str]   = None
    total_amount:           Optional[float] = None
    insurance_covered:      Optional[float] = None
    patient_responsibility: Optional[float] = None
    service_date:           Optional[str]   = None
    medications:            List[Medication] = field(default_factory=list)


def fallback_claim(document_path: str = "", today: Optional[str] = None) -> CanonicalClaim:
    """Every field at its sentinel default. The terminal safety net."""
    return CanonicalClaim(
        **STRING_DEFAULTS,
        total_amount=Decimal("0.00"),
        insurance_covered=Decimal("0.00"),
        patient_responsibility=Decimal("0.00"),
        service_date=today or today_iso(),
        medications=[],
        document_path=document_path or "",
    )


def build_prompt_schema() -> dict:
    """
    Build the JSON template shown inside the LLM prompt.
    Medications include one example item to guide the model.
    """
    return {
        "patient_name":           "Full Name",
        "patient_id":             "Insurance ID or Policy Number",
        "provider_name":          "Doctor's Full Name with Title (Dr.)",
        "doctor_id":              "Doctor's License Number or Medical ID (e.g., MD567890)",
        "diagnosis":              "Diagnosis with ICD Code",
        "total_amount":           "Total Amount Billed",
        "insurance_covered":      "Amount Paid by Insurance",
        "patient_responsibility": "Amount Due by Patient",
        "service_date":           "Date of Service",
        "medications": [
            {
                "name":      "Medication Name",
                "dosage":    "Dosage or Strength",
                "frequency": "Frequency or Instructions",
            }
        ],
    }
