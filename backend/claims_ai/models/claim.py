# /backend/claims_ai/models/claim.py

from pydantic import BaseModel, Field
from typing import List, Optional
from decimal import Decimal

class Medication(BaseModel):
    name: str
    dosage: str = "Not specified"
    frequency: str = "As directed"

class CanonicalClaim(BaseModel):
    """Schema-complete claim record handed to the storage layer."""

    patient_id: str = Field(min_length=1)
    patient_name: str = Field(min_length=1)
    provider_name: str = Field(min_length=1)
    doctor_id: str = Field(pattern=r"^(MD\d+|MD-UNKNOWN)$")
    diagnosis: str = Field(min_length=1)
    total_amount: Decimal = Field(ge=0, decimal_places=2)
    insurance_covered: Decimal = Field(ge=0, decimal_places=2)
    patient_responsibility: Decimal = Field(ge=0, decimal_places=2)
    service_date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    medications: List[Medication] = Field(default_factory=list)
    document_path: str = ""

class ExtractionReport(BaseModel):
    claim: CanonicalClaim
    confidence_score: Optional[float] = None
    structured_profile: Optional[str] = None
    generative_used: bool = False
    defaulted_fields: List[str] = Field(default_factory=list)
