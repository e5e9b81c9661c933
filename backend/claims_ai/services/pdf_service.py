# /backend/claims_ai/services/pdf_service.py

import fitz  # pymupdf
import logging
from typing import Tuple

logger = logging.getLogger(__name__)

class PDFService:

    def extract_text_from_bytes(self, data: bytes, filetype: str = "pdf") -> Tuple[str, int]:
        """
        Pull the embedded text layer out of an in-memory document.
        Returns: (text, page_count). Raises on unreadable input.
        """
        doc = fitz.open(stream=data, filetype=filetype)
        try:
            page_count = len(doc)
            full_text = ""

            for page in doc:
                full_text += page.get_text()

            return full_text, page_count
        finally:
            doc.close()

    def is_scanned(self, text: str) -> bool:
        """Scanned pages carry little or no text layer"""
        return len(text.strip()) < 50

pdf_service = PDFService()
