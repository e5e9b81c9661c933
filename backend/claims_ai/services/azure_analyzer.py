# /backend/claims_ai/services/azure_analyzer.py

"""
Structured analyzer backed by Azure AI Document Intelligence.

Converts the SDK's AnalyzeResult into the plain AnalysisResult records the
field classifier works on. Every SDK failure surfaces as AnalyzerError.
"""

import io
import logging
from typing import List, Optional

from azure.ai.documentintelligence.aio import DocumentIntelligenceClient
from azure.ai.documentintelligence.models import AnalyzeResult, DocumentAnalysisFeature
from azure.core.credentials import AzureKeyCredential
from azure.core.exceptions import AzureError

from claims_ai.services.collaborators import (
    AnalysisResult,
    AnalyzedTable,
    AnalyzerError,
    KeyValuePair,
    TableCell,
)

logger = logging.getLogger(__name__)

# The general-document model was folded into prebuilt-layout; key/value
# extraction is now an add-on feature of the layout model.
PROFILE_MODELS = {
    "prebuilt-document": ("prebuilt-layout", [DocumentAnalysisFeature.KEY_VALUE_PAIRS]),
}


class AzureDocumentAnalyzer:

    def __init__(self, endpoint: str, key: str):
        if not endpoint or not key:
            raise ValueError("Azure Document Intelligence endpoint and key are required")
        self.endpoint = endpoint
        self.key = key

    def _client(self) -> DocumentIntelligenceClient:
        return DocumentIntelligenceClient(
            endpoint=self.endpoint, credential=AzureKeyCredential(self.key)
        )

    async def analyze(self, profile: str, data: bytes) -> AnalysisResult:
        model_id, features = PROFILE_MODELS.get(profile, (profile, None))
        try:
            async with self._client() as client:
                poller = await client.begin_analyze_document(
                    model_id,
                    body=io.BytesIO(data),
                    features=features,
                    content_type="application/octet-stream",
                )
                result = await poller.result()
        except AzureError as e:
            raise AnalyzerError(f"Azure analysis with {model_id} failed: {e}") from e

        logger.debug(f"Azure {model_id}: {len(result.content or '')} chars of content")
        return to_analysis_result(result)


def to_analysis_result(result: AnalyzeResult) -> AnalysisResult:
    return AnalysisResult(
        content=result.content or "",
        key_value_pairs=_key_value_pairs(result),
        tables=_tables(result),
    )


def _element_text(element) -> Optional[str]:
    if element is None:
        return None
    return element.content


def _key_value_pairs(result: AnalyzeResult) -> List[KeyValuePair]:
    pairs = []
    for kvp in result.key_value_pairs or []:
        key = _element_text(kvp.key)
        value = _element_text(kvp.value)
        if not key or not value:
            continue
        pairs.append(KeyValuePair(key=key, value=value, confidence=kvp.confidence or 0.0))
    return pairs


def _tables(result: AnalyzeResult) -> List[AnalyzedTable]:
    return [
        AnalyzedTable(
            cells=[
                TableCell(
                    row_index=cell.row_index,
                    column_index=cell.column_index,
                    content=cell.content or "",
                )
                for cell in table.cells or []
            ],
            row_count=table.row_count or 0,
        )
        for table in result.tables or []
    ]
