# /backend/claims_ai/services/__init__.py
from .document_ai_service import DocumentAIService, build_document_ai_service
from .canonical_schema import ClaimCandidate, fallback_claim
from .merger import merge_candidates
from .pdf_service import pdf_service
