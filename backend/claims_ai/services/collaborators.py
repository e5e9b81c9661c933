# /backend/claims_ai/services/collaborators.py

"""
Contracts for the two external backends.

The core never talks to a vendor SDK directly. Adapters (azure_analyzer,
ollama_client) convert vendor responses into these plain records and wrap
transport failures in CollaboratorError subclasses.
"""

from dataclasses import dataclass, field
from typing import List, Protocol, runtime_checkable


class CollaboratorError(Exception):
    """A backend call failed (network, auth, quota, timeout)."""


class AnalyzerError(CollaboratorError):
    pass


class GenerationError(CollaboratorError):
    pass


# ── Structured analyzer result ────────────────────────────────────────────────

@dataclass
class KeyValuePair:
    key:        str
    value:      str
    confidence: float = 0.0


@dataclass
class TableCell:
    row_index:    int
    column_index: int
    content:      str = ""


@dataclass
class AnalyzedTable:
    cells:     List[TableCell] = field(default_factory=list)
    row_count: int             = 0

    def row(self, index: int) -> dict:
        """Cells of one row keyed by column index."""
        return {c.column_index: c for c in self.cells if c.row_index == index}


@dataclass
class AnalysisResult:
    content:         str                 = ""
    key_value_pairs: List[KeyValuePair]  = field(default_factory=list)
    tables:          List[AnalyzedTable] = field(default_factory=list)


# ── Collaborator protocols ───────────────────────────────────────────────────

@runtime_checkable
class StructuredAnalyzer(Protocol):
    async def analyze(self, profile: str, data: bytes) -> AnalysisResult:
        """Run one analyzer model profile. Raises AnalyzerError on failure."""
        ...


@runtime_checkable
class GenerativeClient(Protocol):
    async def complete(self, prompt: str) -> str:
        """Return the raw completion text. Raises GenerationError on failure."""
        ...
