# /backend/claims_ai/services/document_ai_service.py

"""
Top-level document processing: bytes in, CanonicalClaim out.

Steps:
  1. Read the document (bytes or a path)
  2. Structured analyzer over every profile  ┐ concurrently,
     Generative extraction                   ┘ failures isolated
  3. Merge + consistency recomputation
  4. Fallback record on anything unexpected

process_document never raises.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Tuple, Union

from claims_ai.config import Settings
from claims_ai.models.claim import CanonicalClaim, ExtractionReport
from claims_ai.services.canonical_schema import ClaimCandidate, fallback_claim
from claims_ai.services.collaborators import GenerativeClient, StructuredAnalyzer
from claims_ai.services.llm_extraction_service import LLMExtractionService
from claims_ai.services.merger import defaulted_fields, merge_candidates
from claims_ai.services.normalization import today_iso
from claims_ai.services.pdf_service import PDFService, pdf_service
from claims_ai.services.structured_extraction import StructuredExtraction, StructuredExtractor
from claims_ai.utils.file_handler import read_document

logger = logging.getLogger(__name__)

DocumentInput = Union[bytes, bytearray, str, Path]


class DocumentAIService:

    def __init__(
        self,
        analyzer: Optional[StructuredAnalyzer],
        generator: Optional[GenerativeClient],
        settings: Optional[Settings] = None,
        text_extractor: PDFService = pdf_service,
    ):
        self.settings = settings or Settings()
        self.structured = None
        self.generative = None

        if analyzer is not None:
            self.structured = StructuredExtractor(
                analyzer,
                profiles=self.settings.ANALYZER_PROFILES,
                threshold=self.settings.KV_CONFIDENCE_THRESHOLD,
                timeout=self.settings.ANALYZER_TIMEOUT,
            )
        if generator is not None:
            self.generative = LLMExtractionService(generator, text_extractor)

    # ------------------------------------------------------------------
    # Extraction paths
    # ------------------------------------------------------------------

    async def _run_structured(self, data: bytes) -> Optional[StructuredExtraction]:
        if self.structured is None:
            return None
        return await self.structured.extract(data)

    async def _run_generative(self, data: bytes, today: str) -> Optional[ClaimCandidate]:
        if self.generative is None:
            return None
        return await self.generative.extract(data, today)

    async def _extract(
        self, data: bytes, today: str
    ) -> Tuple[Optional[StructuredExtraction], Optional[ClaimCandidate]]:
        structured, generative = await asyncio.gather(
            self._run_structured(data),
            self._run_generative(data, today),
            return_exceptions=True,
        )

        if isinstance(structured, BaseException):
            logger.error(f"Structured extraction error: {structured!r}")
            structured = None
        if isinstance(generative, BaseException):
            logger.error(f"Generative extraction error: {generative!r}")
            generative = None

        return structured, generative

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    async def process_document_with_report(
        self,
        document: DocumentInput,
        document_path: Optional[str] = None,
    ) -> ExtractionReport:
        """Like process_document, plus the extraction quality signals."""
        if document_path is None:
            document_path = str(document) if isinstance(document, (str, Path)) else ""
        today = today_iso()

        try:
            logger.info(f"Processing medical document: {document_path or '<bytes>'}")
            data = read_document(document)
            structured, generative = await self._extract(data, today)

            claim = merge_candidates(
                structured.candidate if structured else None,
                generative,
                document_path=document_path,
                today=today,
            )
            return ExtractionReport(
                claim=claim,
                confidence_score=structured.score if structured else None,
                structured_profile=structured.profile if structured else None,
                generative_used=generative is not None,
                defaulted_fields=defaulted_fields(claim, today),
            )
        except Exception as e:
            logger.exception(f"Document processing error: {e}")
            claim = fallback_claim(document_path, today)
            return ExtractionReport(
                claim=claim,
                defaulted_fields=defaulted_fields(claim, today),
            )

    async def process_document(
        self,
        document: DocumentInput,
        document_path: Optional[str] = None,
    ) -> CanonicalClaim:
        """
        Extract one canonical claim from a document.

        Args:
            document:      Raw bytes, or a path to read them from.
            document_path: Storage reference copied onto the record. Defaults
                           to the path when one is given.

        Returns:
            A fully populated CanonicalClaim (never raises).
        """
        report = await self.process_document_with_report(document, document_path)
        return report.claim


def build_document_ai_service(settings: Settings) -> DocumentAIService:
    """Wire the Azure analyzer and Ollama generator from settings."""
    from claims_ai.services.ollama_client import OllamaClient

    analyzer = None
    if settings.azure_configured:
        from claims_ai.services.azure_analyzer import AzureDocumentAnalyzer
        analyzer = AzureDocumentAnalyzer(
            settings.AZURE_DOCINTEL_ENDPOINT, settings.AZURE_DOCINTEL_KEY
        )
    else:
        logger.warning("Azure Document Intelligence not configured, structured path disabled")

    generator = OllamaClient(
        base_url=settings.OLLAMA_BASE_URL,
        model=settings.OLLAMA_MODEL,
        timeout=settings.OLLAMA_TIMEOUT,
        retries=settings.OLLAMA_RETRIES,
    )
    return DocumentAIService(analyzer, generator, settings)
