"""
Pytest Configuration and Fixtures.
Fake collaborators and analyzer results shared by all test modules.
"""

import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

# Add backend to path for imports
backend_path = Path(__file__).parent.parent / "backend"
sys.path.insert(0, str(backend_path))

from claims_ai.config import Settings
from claims_ai.services.collaborators import (
    AnalysisResult,
    AnalyzedTable,
    AnalyzerError,
    GenerationError,
    KeyValuePair,
    TableCell,
)


# =============================================================================
# Builders
# =============================================================================


def make_table(rows: List[List[str]]) -> AnalyzedTable:
    """Build a table from a list of rows, row 0 being the header."""
    cells = [
        TableCell(row_index=r, column_index=c, content=text)
        for r, row in enumerate(rows)
        for c, text in enumerate(row)
    ]
    return AnalyzedTable(cells=cells, row_count=len(rows))


def make_result(
    pairs: Optional[List[Tuple[str, str, float]]] = None,
    tables: Optional[List[AnalyzedTable]] = None,
    content: str = "CLAIM FORM",
) -> AnalysisResult:
    return AnalysisResult(
        content=content,
        key_value_pairs=[KeyValuePair(k, v, c) for k, v, c in (pairs or [])],
        tables=tables or [],
    )


# =============================================================================
# Fake collaborators
# =============================================================================


class FakeAnalyzer:
    """Returns a canned result per profile; an Exception value is raised."""

    def __init__(self, results: Dict[str, object]):
        self.results = results
        self.calls: List[str] = []

    async def analyze(self, profile: str, data: bytes) -> AnalysisResult:
        self.calls.append(profile)
        result = self.results.get(profile)
        if isinstance(result, Exception):
            raise result
        if result is None:
            raise AnalyzerError(f"no canned result for {profile}")
        return result


class FakeGenerator:
    def __init__(self, reply: object = ""):
        self.reply = reply
        self.prompts: List[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


class FakeTextExtractor:
    def __init__(self, text: str = "Patient Name: Jane Doe\nTotal Billed: $800.00"):
        self.text = text

    def extract_text_from_bytes(self, data: bytes, filetype: str = "pdf"):
        if isinstance(self.text, Exception):
            raise self.text
        return self.text, 1

    def is_scanned(self, text: str) -> bool:
        return len(text.strip()) < 50


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def settings():
    return Settings(ANALYZER_TIMEOUT=5.0, KV_CONFIDENCE_THRESHOLD=0.5)


@pytest.fixture
def text_extractor():
    return FakeTextExtractor()


@pytest.fixture
def failing_analyzer():
    return FakeAnalyzer({})


@pytest.fixture
def failing_generator():
    return FakeGenerator(GenerationError("connection refused"))
