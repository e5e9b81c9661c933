# /backend/claims_ai/services/llm_extraction_service.py

"""
LLM extraction service: turns a generative completion into a claim candidate.

Pipeline:
  document bytes
    → embedded text (PyMuPDF)
    → deduplicated lines, capped to MAX_DOCUMENT_CHARS
    → one completion with the canonical schema and physician-ID heuristics
    → JSON recovery (2 passes):
        Pass 1: strip markdown fences, take the first balanced {...} span
        Pass 2: repair truncated JSON (close unclosed braces/brackets)
    → currency / date / physician-ID normalizers

Any failure (no text, transport error, unparseable reply) yields None; the
caller treats that as "no supplemental data".
"""

import re
import asyncio
import json
import logging
from typing import Any, List, Optional

from claims_ai.models.claim import Medication
from claims_ai.services.canonical_schema import (
    ClaimCandidate,
    DEFAULT_DIAGNOSIS,
    DEFAULT_DOSAGE,
    DEFAULT_FREQUENCY,
    DEFAULT_PATIENT_ID,
    DEFAULT_PATIENT_NAME,
    DEFAULT_PROVIDER_NAME,
    build_prompt_schema,
)
from claims_ai.services.collaborators import GenerativeClient
from claims_ai.services.normalization import (
    normalize_doctor_id,
    parse_currency,
    parse_date,
    today_iso,
)
from claims_ai.services.pdf_service import PDFService, pdf_service

logger = logging.getLogger(__name__)

# Roughly num_ctx=4096 tokens minus the prompt scaffolding
MAX_DOCUMENT_CHARS = 12000

_PROMPT_SCHEMA = json.dumps(build_prompt_schema(), indent=2)

# Values a model writes when it found nothing
_EMPTY_MARKERS = {"", "null", "none", "n/a", "unknown"}


class LLMExtractionService:

    def __init__(self, client: GenerativeClient, text_extractor: PDFService = pdf_service):
        self.client = client
        self.text_extractor = text_extractor

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    def _extract_text(self, data: bytes) -> Optional[str]:
        try:
            text, page_count = self.text_extractor.extract_text_from_bytes(data)
        except Exception as e:
            logger.error(f"Text extraction failed: {e}")
            return None

        if self.text_extractor.is_scanned(text):
            logger.warning(f"Document has little embedded text ({len(text.strip())} chars, {page_count} pages)")
        return text

    def _clean_text(self, text: str) -> str:
        """Deduplicate lines and cap to MAX_DOCUMENT_CHARS."""
        lines, seen = [], set()
        for line in text.splitlines():
            s = line.strip()
            if s and s not in seen:
                seen.add(s)
                lines.append(s)
        clean = "\n".join(lines)
        if len(clean) > MAX_DOCUMENT_CHARS:
            logger.info(f"Truncating document text {len(clean)} → {MAX_DOCUMENT_CHARS} chars")
            clean = clean[:MAX_DOCUMENT_CHARS]
        return clean

    # ------------------------------------------------------------------
    # Prompt
    # ------------------------------------------------------------------

    def build_prompt(self, document_text: str) -> str:
        return f"""You are a medical claim form analyzer. Extract the following information from this form in JSON format, with special focus on finding the physician's license or ID number. Look for patterns like "Physician License No:", "License Number:", "Medical License:", "Provider ID:", "MD License:", or any number following a doctor's name.

Return ONLY valid JSON. No explanation. No markdown. Raw JSON only.
Use null for missing fields. Never add extra fields.

Schema:
{_PROMPT_SCHEMA}

For doctor_id, specifically look for:
1. "Physician License No:" followed by numbers
2. "MD" followed by numbers
3. Any number sequence near "License" and doctor's name

Document text:
\"\"\"
{document_text}
\"\"\"
"""

    # ------------------------------------------------------------------
    # JSON recovery
    # ------------------------------------------------------------------

    def _first_balanced_object(self, text: str) -> Optional[str]:
        """The first {...} span whose braces balance, ignoring braces in strings."""
        start = text.find("{")
        if start == -1:
            return None

        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        return None

    def _repair_json(self, raw: str) -> str:
        """
        Close unclosed braces/brackets from a truncated LLM response.
        Also strips markdown fences and any prose prefix before the JSON.
        """
        s = re.sub(r"```json|```", "", raw).strip()

        start = s.find("{")
        if start == -1:
            return s
        s = s[start:]

        # Remove trailing comma before we close
        s = re.sub(r",\s*$", "", s.rstrip())

        open_brackets = s.count("[") - s.count("]")
        open_braces   = s.count("{") - s.count("}")
        s += "]" * max(open_brackets, 0)
        s += "}" * max(open_braces,   0)

        return s

    def parse_response(self, raw: str) -> Optional[dict]:
        if not raw:
            return None

        # Pass 1: strip fences, first balanced object
        clean = re.sub(r"```json|```", "", raw)
        span = self._first_balanced_object(clean)
        if span is not None:
            try:
                parsed = json.loads(span)
                if isinstance(parsed, dict):
                    return parsed
            except json.JSONDecodeError:
                pass

        # Pass 2: repair truncation
        try:
            parsed = json.loads(self._repair_json(raw))
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass

        logger.warning(f"Could not parse LLM response. Raw preview: {raw[:300]}")
        return None

    # ------------------------------------------------------------------
    # Normalization
    # ------------------------------------------------------------------

    def normalize(self, data: dict, today: Optional[str] = None) -> ClaimCandidate:
        """Run every field through the shared normalizers."""
        return ClaimCandidate(
            patient_id=_string(data.get("patient_id")) or DEFAULT_PATIENT_ID,
            patient_name=_string(data.get("patient_name")) or DEFAULT_PATIENT_NAME,
            provider_name=_string(data.get("provider_name")) or DEFAULT_PROVIDER_NAME,
            doctor_id=normalize_doctor_id(_string(data.get("doctor_id"))),
            diagnosis=_string(data.get("diagnosis")) or DEFAULT_DIAGNOSIS,
            total_amount=parse_currency(data.get("total_amount")),
            insurance_covered=parse_currency(data.get("insurance_covered")),
            patient_responsibility=parse_currency(data.get("patient_responsibility")),
            service_date=parse_date(data.get("service_date")) or today or today_iso(),
            medications=_medications(data.get("medications")),
        )

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    async def extract_from_text(
        self, document_text: str, today: Optional[str] = None
    ) -> Optional[ClaimCandidate]:
        if not document_text or not document_text.strip():
            logger.warning("No document text to send to the LLM")
            return None

        prompt = self.build_prompt(self._clean_text(document_text))

        try:
            raw = await self.client.complete(prompt)
        except Exception as e:
            logger.error(f"Generative processing error: {e}")
            return None

        parsed = self.parse_response(raw)
        if parsed is None:
            return None

        logger.info("Successfully parsed medical claim form")
        return self.normalize(parsed, today)

    async def extract(self, data: bytes, today: Optional[str] = None) -> Optional[ClaimCandidate]:
        text = await asyncio.to_thread(self._extract_text, data)
        if text is None:
            return None
        return await self.extract_from_text(text, today)


def _string(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    if text.lower() in _EMPTY_MARKERS:
        return None
    return text


def _medications(value: Any) -> List[Medication]:
    if not isinstance(value, list):
        return []

    medications = []
    for item in value:
        if not isinstance(item, dict):
            continue
        name = _string(item.get("name"))
        if not name:
            continue
        medications.append(Medication(
            name=name,
            dosage=_string(item.get("dosage")) or DEFAULT_DOSAGE,
            frequency=_string(item.get("frequency")) or DEFAULT_FREQUENCY,
        ))
    return medications
