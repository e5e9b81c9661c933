# /backend/claims_ai/services/structured_extraction.py

"""
Structured extraction: run the analyzer under several model profiles, build a
candidate from each result and keep the one with the best completeness score.

Analyzer failures never escape this module. A profile that errors, times out
or returns no content is logged and skipped.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from claims_ai.services.canonical_schema import (
    ClaimCandidate,
    DEFAULT_DIAGNOSIS,
    DEFAULT_PATIENT_ID,
    DEFAULT_PATIENT_NAME,
    DEFAULT_PROVIDER_NAME,
)
from claims_ai.services.collaborators import AnalysisResult, StructuredAnalyzer
from claims_ai.services.field_classifier import classify_key_value, classify_table
from claims_ai.services.normalization import today_iso

logger = logging.getLogger(__name__)

DEFAULT_PROFILES = ("prebuilt-document", "prebuilt-invoice", "prebuilt-layout")
DEFAULT_CONFIDENCE_THRESHOLD = 0.5

_SCORED_SIGNALS = 8
_MEDICATION_BONUS = 0.5


@dataclass
class StructuredExtraction:
    candidate: ClaimCandidate
    score:     float
    profile:   str


# ----------------------------------------------------------------------
# Builder
# ----------------------------------------------------------------------

def build_candidate(
    result: AnalysisResult,
    threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
) -> ClaimCandidate:
    """Classify every confident key/value pair and every table of one result."""
    candidate = ClaimCandidate()

    for pair in result.key_value_pairs:
        key = (pair.key or "").strip()
        value = (pair.value or "").strip()
        if not key or not value:
            continue
        if (pair.confidence or 0) <= threshold:
            continue
        classify_key_value(key.lower(), value, candidate)

    for table in result.tables:
        classify_table(table, candidate)

    return candidate


# ----------------------------------------------------------------------
# Scoring
# ----------------------------------------------------------------------

def _filled(value: Optional[str], sentinel: str) -> bool:
    return bool(value) and value != sentinel


def calculate_confidence_score(
    candidate: ClaimCandidate, today: Optional[str] = None
) -> float:
    """
    Fraction of the eight scored signals that differ from their defaults,
    with a half-signal bonus (numerator and denominator) for medications.
    """
    today = today or today_iso()

    signals = [
        _filled(candidate.patient_name, DEFAULT_PATIENT_NAME),
        _filled(candidate.patient_id, DEFAULT_PATIENT_ID),
        _filled(candidate.provider_name, DEFAULT_PROVIDER_NAME),
        _filled(candidate.diagnosis, DEFAULT_DIAGNOSIS),
        (candidate.total_amount or 0) > 0,
        (candidate.insurance_covered or 0) > 0,
        (candidate.patient_responsibility or 0) > 0,
        _filled(candidate.service_date, today),
    ]

    filled = float(sum(signals))
    total = float(_SCORED_SIGNALS)

    if candidate.medications:
        filled += _MEDICATION_BONUS
        total += _MEDICATION_BONUS

    return filled / total


# ----------------------------------------------------------------------
# Invoker
# ----------------------------------------------------------------------

class StructuredExtractor:

    def __init__(
        self,
        analyzer: StructuredAnalyzer,
        profiles: Iterable[str] = DEFAULT_PROFILES,
        threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        timeout: Optional[float] = None,
    ):
        self.analyzer = analyzer
        self.profiles: List[str] = list(profiles)
        self.threshold = threshold
        self.timeout = timeout

    async def _analyze(self, profile: str, data: bytes) -> AnalysisResult:
        call = self.analyzer.analyze(profile, data)
        if self.timeout:
            return await asyncio.wait_for(call, timeout=self.timeout)
        return await call

    async def extract(self, data: bytes) -> Optional[StructuredExtraction]:
        """
        Try each profile once and return the highest-scoring candidate.

        Returns None if every profile failed or produced a zero-signal result.
        """
        best: Optional[StructuredExtraction] = None
        today = today_iso()

        for profile in self.profiles:
            try:
                logger.info(f"Analyzing with profile: {profile}")
                result = await self._analyze(profile, data)
            except asyncio.TimeoutError:
                logger.warning(f"Analyzer profile {profile} timed out after {self.timeout}s")
                continue
            except Exception as e:
                logger.error(f"Error with analyzer profile {profile}: {e}")
                continue

            if result is None or not result.content:
                logger.info(f"Profile {profile} returned no content")
                continue

            candidate = build_candidate(result, self.threshold)
            score = calculate_confidence_score(candidate, today)
            logger.info(f"Profile {profile} confidence: {score:.3f}")

            if score > (best.score if best else 0.0):
                best = StructuredExtraction(candidate=candidate, score=score, profile=profile)

        if best:
            logger.info(f"Using best structured result from {best.profile} ({best.score:.3f})")
        else:
            logger.warning("No structured analyzer profile produced a usable result")

        return best
