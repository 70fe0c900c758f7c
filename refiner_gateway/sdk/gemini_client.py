"""
Gemini generateContent adapter.

Talks to the REST endpoint directly with requests; the caller's key (or the
server's shared key) goes in the x-goog-api-key header.
"""

from typing import Any, Optional

import requests

from ..log import get_logger
from .base import ProviderClient, ProviderError, ProviderErrorKind, kind_for_status

logger = get_logger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

_MESSAGES = {
    ProviderErrorKind.INVALID_CREDENTIAL: "Invalid or expired API key. Get a new one from aistudio.google.com",
    ProviderErrorKind.QUOTA_EXCEEDED: "API quota exceeded. Try again later or get a new key.",
    ProviderErrorKind.UPSTREAM_ERROR: "Gemini servers are down. Try again in a few minutes.",
}


class GeminiClient(ProviderClient):
    """Gemini text generation over plain HTTPS."""

    def __init__(
        self,
        model: str,
        timeout_seconds: float = 15.0,
        shared_key: Optional[str] = None,
        name: str = "gemini",
        base_url: str = GEMINI_BASE_URL,
    ):
        super().__init__(name=name, model=model, timeout_seconds=timeout_seconds, shared_key=shared_key)
        self.base_url = base_url.rstrip("/")

    @property
    def endpoint(self) -> str:
        model = self.model[7:] if self.model.startswith("models/") else self.model
        return f"{self.base_url}/models/{model}:generateContent"

    def generate(self, prompt: str, api_key: str) -> str:
        """Call generateContent and return the first candidate's text.

        Args:
            prompt: Complete prompt body
            api_key: Gemini API key

        Returns:
            Trimmed generated text

        Raises:
            ProviderError: On timeout, connection failure, non-2xx status or empty text
        """
        try:
            response = requests.post(
                self.endpoint,
                json={"contents": [{"parts": [{"text": prompt}]}]},
                headers={"Content-Type": "application/json", "x-goog-api-key": api_key},
                timeout=self.timeout_seconds,
            )
        except requests.Timeout as e:
            logger.warning("event=provider.timeout | provider=%s error=%s", self.name, e)
            raise ProviderError(ProviderErrorKind.UNAVAILABLE, "Gemini request timed out.") from e
        except requests.RequestException as e:
            logger.warning("event=provider.unreachable | provider=%s error=%s", self.name, e)
            raise ProviderError(ProviderErrorKind.UNAVAILABLE, "Network error. Check internet or try again.") from e

        if not 200 <= response.status_code < 300:
            kind = kind_for_status(response.status_code)
            logger.warning(
                "event=provider.http_error | provider=%s status=%d detail=%s",
                self.name, response.status_code, _error_detail(response)
            )
            raise ProviderError(kind, _MESSAGES[kind], status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            logger.warning("event=provider.bad_json | provider=%s error=%s", self.name, e)
            raise ProviderError(ProviderErrorKind.EMPTY_RESULT, "AI returned empty response") from e

        return self._require_text(extract_text(payload))


def extract_text(payload: Any) -> Optional[str]:
    """Read candidates[0].content.parts[0].text, None when any step is missing."""
    try:
        return payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return (response.text or "")[:200]
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return str(body["error"].get("message") or "")[:200]
    return str(body)[:200]
