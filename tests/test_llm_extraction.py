"""
Tests for the generative-result normalizer.
"""

import json
import threading

import pytest

from claims_ai.services.collaborators import GenerationError
from claims_ai.services.llm_extraction_service import LLMExtractionService

from conftest import FakeGenerator, FakeTextExtractor

TODAY = "2026-10-17"

REPLY = {
    "patient_name": "Jane Doe",
    "patient_id": "INS-55",
    "provider_name": "Dr. Alan Grant",
    "doctor_id": "Physician License No: 123456",
    "diagnosis": "J20.9 Acute bronchitis",
    "total_amount": "$800.00",
    "insurance_covered": "$600.00",
    "patient_responsibility": "$200.00",
    "service_date": "March 4, 2024",
}


def service(reply, text="Patient Name: Jane Doe\nTotal Billed: $800.00"):
    return LLMExtractionService(FakeGenerator(reply), FakeTextExtractor(text))


class TestParseResponse:

    def setup_method(self):
        self.service = service("")

    def test_plain_json(self):
        assert self.service.parse_response('{"a": 1}') == {"a": 1}

    def test_prose_and_fences(self):
        raw = 'Here is the data:\n```json\n{"patient_name": "Jane"}\n```\nHope this helps {x}'
        assert self.service.parse_response(raw) == {"patient_name": "Jane"}

    def test_first_balanced_object_only(self):
        raw = '{"a": {"b": 1}} and later {"c": 2}'
        assert self.service.parse_response(raw) == {"a": {"b": 1}}

    def test_braces_inside_strings(self):
        raw = '{"diagnosis": "note {see chart}", "patient_id": "7"}'
        assert self.service.parse_response(raw)["diagnosis"] == "note {see chart}"

    def test_truncated_reply_repaired(self):
        raw = '{"patient_name": "Jane Doe", "medications": [{"name": "Ibuprofen"}'
        parsed = self.service.parse_response(raw)
        assert parsed["patient_name"] == "Jane Doe"
        assert parsed["medications"] == [{"name": "Ibuprofen"}]

    @pytest.mark.parametrize("raw", ["", "no json here", "[1, 2, 3]", "{not: valid"])
    def test_unparseable(self, raw):
        assert self.service.parse_response(raw) is None


class TestNormalize:

    def test_all_fields_normalized(self):
        candidate = service("").normalize(REPLY, TODAY)
        assert candidate.patient_name == "Jane Doe"
        assert candidate.doctor_id == "MD123456"
        assert candidate.total_amount == 800.0
        assert candidate.insurance_covered == 600.0
        assert candidate.service_date == "2024-03-04"
        assert candidate.medications == []

    def test_missing_fields_get_sentinels(self):
        candidate = service("").normalize({"patient_name": None, "doctor_id": "N/A"}, TODAY)
        assert candidate.patient_name == "Unknown Patient"
        assert candidate.patient_id == "UNKNOWN"
        assert candidate.provider_name == "Unknown Provider"
        assert candidate.diagnosis == "Not specified"
        assert candidate.doctor_id == "MD-UNKNOWN"
        assert candidate.total_amount == 0.0
        assert candidate.service_date == TODAY

    def test_numeric_amounts(self):
        candidate = service("").normalize({"total_amount": 1200.5}, TODAY)
        assert candidate.total_amount == 1200.5

    def test_medications(self):
        data = {"medications": [
            {"name": "Amoxicillin", "dosage": "500mg", "frequency": None},
            {"name": None},
            "junk",
        ]}
        medications = service("").normalize(data, TODAY).medications
        assert len(medications) == 1
        assert medications[0].frequency == "As directed"


class TestExtract:

    @pytest.mark.asyncio
    async def test_success(self):
        svc = service("Sure! " + json.dumps(REPLY))
        candidate = await svc.extract(b"%PDF", TODAY)
        assert candidate.patient_id == "INS-55"
        assert candidate.total_amount == 800.0

    @pytest.mark.asyncio
    async def test_prompt_carries_schema_and_text(self):
        generator = FakeGenerator(json.dumps(REPLY))
        svc = LLMExtractionService(generator, FakeTextExtractor("Physician License No: 445566"))
        await svc.extract(b"%PDF", TODAY)
        prompt = generator.prompts[0]
        assert '"doctor_id"' in prompt
        assert "Physician License No: 445566" in prompt
        assert '"MD" followed by numbers' in prompt

    @pytest.mark.asyncio
    async def test_transport_failure_returns_none(self):
        svc = service(GenerationError("connection refused"))
        assert await svc.extract(b"%PDF", TODAY) is None

    @pytest.mark.asyncio
    async def test_unparseable_reply_returns_none(self):
        assert await service("I cannot help with that").extract(b"%PDF", TODAY) is None

    @pytest.mark.asyncio
    async def test_text_extraction_failure_returns_none(self):
        svc = LLMExtractionService(FakeGenerator("{}"), FakeTextExtractor(RuntimeError("bad pdf")))
        assert await svc.extract(b"not a pdf", TODAY) is None

    @pytest.mark.asyncio
    async def test_empty_text_skips_request(self):
        generator = FakeGenerator(json.dumps(REPLY))
        svc = LLMExtractionService(generator, FakeTextExtractor("   "))
        assert await svc.extract(b"%PDF", TODAY) is None
        assert generator.prompts == []

    @pytest.mark.asyncio
    async def test_text_layer_read_off_the_event_loop(self):
        loop_thread = threading.get_ident()
        seen = []

        class RecordingExtractor(FakeTextExtractor):
            def extract_text_from_bytes(self, data, filetype="pdf"):
                seen.append(threading.get_ident())
                return super().extract_text_from_bytes(data, filetype)

        svc = LLMExtractionService(FakeGenerator(json.dumps(REPLY)), RecordingExtractor())
        assert await svc.extract(b"%PDF", TODAY) is not None
        assert seen and seen[0] != loop_thread

    @pytest.mark.asyncio
    async def test_real_pdf_text_layer(self):
        fitz = pytest.importorskip("fitz")
        doc = fitz.open()
        page = doc.new_page()
        page.insert_text((72, 72), "Patient Name: Jane Doe")
        data = doc.tobytes()
        doc.close()

        generator = FakeGenerator(json.dumps(REPLY))
        svc = LLMExtractionService(generator)
        assert await svc.extract(data, TODAY) is not None
        assert "Patient Name: Jane Doe" in generator.prompts[0]
