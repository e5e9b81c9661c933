# /backend/claims_ai/utils/file_handler.py

import os
from pathlib import Path
from typing import Union

def read_document(document: Union[bytes, bytearray, str, Path]) -> bytes:
    """Return document bytes, reading from disk when given a path"""
    if isinstance(document, (bytes, bytearray)):
        return bytes(document)

    file_path = Path(document)
    if not file_path.is_file():
        raise FileNotFoundError(f"Document not found: {file_path}")

    with open(file_path, "rb") as f:
        return f.read()

def get_file_size(file_path: str) -> int:
    """Get file size in bytes"""
    return os.path.getsize(file_path)
