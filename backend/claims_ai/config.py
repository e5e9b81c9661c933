# /backend/claims_ai/config.py

from pydantic import BaseModel
from typing import List, Optional
import logging
import os
import sys

class Settings(BaseModel):
    # App Settings
    APP_NAME: str = "Medical Claim Document AI"
    VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"

    # Structured analyzer (Azure Document Intelligence)
    AZURE_DOCINTEL_ENDPOINT: Optional[str] = None
    AZURE_DOCINTEL_KEY: Optional[str] = None
    ANALYZER_PROFILES: List[str] = ["prebuilt-document", "prebuilt-invoice", "prebuilt-layout"]
    ANALYZER_TIMEOUT: float = 120.0
    KV_CONFIDENCE_THRESHOLD: float = 0.5

    # Generative engine (Ollama)
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "llama3.2:3b"
    OLLAMA_TIMEOUT: float = 600.0
    OLLAMA_RETRIES: int = 2

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Load from environment variables, explicit kwargs win
        if "LOG_LEVEL" not in kwargs:
            self.LOG_LEVEL = os.getenv("LOG_LEVEL", self.LOG_LEVEL).upper()
        if "AZURE_DOCINTEL_ENDPOINT" not in kwargs:
            self.AZURE_DOCINTEL_ENDPOINT = os.getenv("AZURE_DOCINTEL_ENDPOINT", self.AZURE_DOCINTEL_ENDPOINT)
        if "AZURE_DOCINTEL_KEY" not in kwargs:
            self.AZURE_DOCINTEL_KEY = os.getenv("AZURE_DOCINTEL_KEY", self.AZURE_DOCINTEL_KEY)
        if "ANALYZER_PROFILES" not in kwargs and os.getenv("ANALYZER_PROFILES"):
            self.ANALYZER_PROFILES = [
                p.strip() for p in os.environ["ANALYZER_PROFILES"].split(",") if p.strip()
            ]
        if "ANALYZER_TIMEOUT" not in kwargs:
            self.ANALYZER_TIMEOUT = float(os.getenv("ANALYZER_TIMEOUT", self.ANALYZER_TIMEOUT))
        if "KV_CONFIDENCE_THRESHOLD" not in kwargs:
            self.KV_CONFIDENCE_THRESHOLD = float(
                os.getenv("KV_CONFIDENCE_THRESHOLD", self.KV_CONFIDENCE_THRESHOLD)
            )
        if "OLLAMA_BASE_URL" not in kwargs:
            self.OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", self.OLLAMA_BASE_URL)
        if "OLLAMA_MODEL" not in kwargs:
            self.OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", self.OLLAMA_MODEL)
        if "OLLAMA_TIMEOUT" not in kwargs:
            self.OLLAMA_TIMEOUT = float(os.getenv("OLLAMA_TIMEOUT", self.OLLAMA_TIMEOUT))
        if "OLLAMA_RETRIES" not in kwargs:
            self.OLLAMA_RETRIES = int(os.getenv("OLLAMA_RETRIES", self.OLLAMA_RETRIES))

    @property
    def azure_configured(self) -> bool:
        return bool(self.AZURE_DOCINTEL_ENDPOINT and self.AZURE_DOCINTEL_KEY)


def configure_logging(level: str = "INFO") -> None:
    """Route log records to stderr so stdout stays clean for JSON output."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


settings = Settings()
