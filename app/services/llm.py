"""Thin wrapper around the Gemini generateContent REST endpoint."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from app.core.config import Settings, get_settings
from app.core.errors import LLMError

logger = logging.getLogger(__name__)

PROBE_PROMPT = "Explain how AI works in a few words"


class GeminiClient:
    """Wrapper around the downstream LLM provider."""

    def __init__(
        self, settings: Optional[Settings] = None, client: Optional[httpx.Client] = None
    ) -> None:
        self.settings = settings or get_settings()
        self._client = client or httpx.Client(timeout=self.settings.gemini_timeout_seconds)

    @property
    def is_configured(self) -> bool:
        """Return True if a Gemini API key is available."""

        return bool(self.settings.gemini_api_key)

    @property
    def endpoint(self) -> str:
        base = self.settings.gemini_base_url.rstrip("/")
        return f"{base}/v1beta/models/{self.settings.gemini_model}:generateContent"

    def _post(self, prompt: str, timeout: float) -> httpx.Response:
        return self._client.post(
            self.endpoint,
            json={"contents": [{"parts": [{"text": prompt}]}]},
            headers={
                "Content-Type": "application/json",
                "X-goog-api-key": self.settings.gemini_api_key or "",
            },
            timeout=timeout,
        )

    def generate(self, prompt: str) -> str:
        """Send ``prompt`` and return the first candidate's text."""

        if not self.is_configured:
            raise LLMError("Gemini API key not configured.")

        try:
            response = self._post(prompt, self.settings.gemini_timeout_seconds)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise LLMError(f"Gemini request failed: {exc}") from exc
        except ValueError as exc:
            raise LLMError("Gemini response was not valid JSON.") from exc

        text = extract_candidate_text(payload)
        if not text:
            raise LLMError("Gemini response contained no text.")
        return text

    def probe(self) -> Dict[str, Any]:
        """Send a one-line prompt and report the raw outcome without raising."""

        if not self.is_configured:
            return {"success": False, "error": "Gemini API key not configured"}
        try:
            response = self._post(PROBE_PROMPT, 15.0)
            response.raise_for_status()
            return {"success": True, "response": response.json()}
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Gemini probe failed: %s", exc)
            return {"success": False, "error": "Gemini API test failed", "details": str(exc)}


def extract_candidate_text(payload: Any) -> Optional[str]:
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None
