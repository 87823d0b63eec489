# infra/llm_client.py
import logging
from typing import Any, Dict, Optional

import requests

from config.settings import settings

logger = logging.getLogger(__name__)

STOP_SEQUENCES = ["\n\n\n", "Question:", "Explanation:"]


class LLMResponseError(Exception):
    pass


class LLMClient:
    """Single calls to the Ollama ``/api/generate`` endpoint. No retries here."""

    def __init__(self, base_url: Optional[str] = None, model: Optional[str] = None,
                 session: Optional[requests.Session] = None):
        self.url = (base_url or settings.OLLAMA_URL).rstrip("/")
        self.model = model or settings.OLLAMA_MODEL
        self.session = session or requests.Session()

    def build_request(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": 0.1,
                "top_p": 0.9,
                "top_k": 40,
                "repeat_penalty": 1.1,
                "num_predict": settings.OLLAMA_NUM_PREDICT,
                "stop": STOP_SEQUENCES,
            },
        }

    def generate(self, prompt: str, timeout: Optional[float] = None) -> str:
        resp = self.session.post(
            f"{self.url}/api/generate",
            json=self.build_request(prompt),
            timeout=timeout or settings.OLLAMA_TIMEOUT,
        )
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict) or "response" not in data:
            raise LLMResponseError("Invalid response from Ollama: missing 'response' field")
        return data["response"] or ""

    def is_healthy(self) -> bool:
        try:
            resp = self.session.get(f"{self.url}/api/tags", timeout=10)
            resp.raise_for_status()
            return "models" in resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Ollama health check failed: %s", e)
            return False
