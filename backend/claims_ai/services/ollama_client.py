# /backend/claims_ai/services/ollama_client.py

"""
Generative collaborator backed by a local Ollama server.

Transport concerns live here: timeouts, the retry-on-timeout loop and
translating httpx failures into GenerationError. The extraction core only
sees complete(prompt) -> text.
"""

import httpx
import logging

from claims_ai.services.collaborators import GenerationError

logger = logging.getLogger(__name__)

OLLAMA_BASE_URL = "http://localhost:11434"
OLLAMA_MODEL = "llama3.2:3b"


class OllamaClient:

    def __init__(
        self,
        base_url: str = OLLAMA_BASE_URL,
        model: str = OLLAMA_MODEL,
        timeout: float = 600.0,
        retries: int = 2,
        transport: httpx.AsyncBaseTransport = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.retries = retries
        self._transport = transport

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    async def is_available(self) -> bool:
        try:
            async with httpx.AsyncClient(timeout=3, transport=self._transport) as client:
                response = await client.get(f"{self.base_url}/api/tags")
                return response.status_code == 200
        except httpx.HTTPError:
            return False

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    async def complete(self, prompt: str) -> str:
        for attempt in range(self.retries + 1):
            try:
                logger.info(f"Ollama attempt {attempt + 1}/{self.retries + 1}")
                async with httpx.AsyncClient(
                    timeout=self.timeout, transport=self._transport
                ) as client:
                    response = await client.post(
                        f"{self.base_url}/api/generate",
                        json={
                            "model": self.model,
                            "prompt": prompt,
                            "stream": False,
                            "options": {
                                "num_ctx": 4096,
                                "num_predict": 1024,
                                "temperature": 0.1,
                            },
                        },
                    )
                    response.raise_for_status()
                    raw = response.json().get("response", "")
                    logger.info(f"Ollama raw ({len(raw)} chars): {raw[:300]}")
                    return raw

            except httpx.ConnectError as e:
                raise GenerationError(f"Ollama not reachable at {self.base_url}") from e
            except httpx.TimeoutException as e:
                logger.warning(f"Timeout on attempt {attempt + 1}")
                if attempt == self.retries:
                    raise GenerationError("Ollama timed out") from e
            except (httpx.HTTPError, ValueError) as e:
                raise GenerationError(f"Ollama error: {e}") from e

        raise GenerationError("Ollama returned no response")
