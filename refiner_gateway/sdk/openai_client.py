"""
OpenAI-compatible chat completion adapter.

Used for Groq, whose API speaks the OpenAI protocol. SDK exceptions collapse
onto the same error kinds as the Gemini adapter.
"""

from typing import Optional

import openai
from openai import OpenAI

from ..log import get_logger
from .base import ProviderClient, ProviderError, ProviderErrorKind, kind_for_status

logger = get_logger(__name__)

GROQ_BASE_URL = "https://api.groq.com/openai/v1"


class OpenAICompatibleClient(ProviderClient):
    """Chat completion client for any OpenAI-compatible backend.

    A fresh SDK client is built per call because the key can differ between
    requests. SDK retries are disabled: the router's provider list is the only
    retry mechanism.
    """

    def __init__(
        self,
        model: str,
        timeout_seconds: float = 15.0,
        shared_key: Optional[str] = None,
        name: str = "groq",
        base_url: str = GROQ_BASE_URL,
    ):
        super().__init__(name=name, model=model, timeout_seconds=timeout_seconds, shared_key=shared_key)
        self.base_url = base_url

    def generate(self, prompt: str, api_key: str) -> str:
        """Send the prompt as a single user message.

        Args:
            prompt: Complete prompt body
            api_key: Key for the backend

        Returns:
            Trimmed assistant reply

        Raises:
            ProviderError: On any SDK failure or an empty reply
        """
        client = OpenAI(
            api_key=api_key,
            base_url=self.base_url,
            timeout=self.timeout_seconds,
            max_retries=0,
        )

        try:
            response = client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
            )
        except openai.APIConnectionError as e:
            # APITimeoutError is a subclass
            logger.warning("event=provider.unreachable | provider=%s error=%s", self.name, e)
            raise ProviderError(ProviderErrorKind.UNAVAILABLE, f"{self.name} is unreachable.") from e
        except openai.APIStatusError as e:
            kind = kind_for_status(e.status_code)
            logger.warning(
                "event=provider.http_error | provider=%s status=%d detail=%s",
                self.name, e.status_code, str(e)[:200]
            )
            raise ProviderError(kind, f"{self.name} request failed.", status_code=e.status_code) from e
        except openai.APIError as e:
            logger.warning("event=provider.api_error | provider=%s error=%s", self.name, e)
            raise ProviderError(ProviderErrorKind.UPSTREAM_ERROR, f"{self.name} request failed.") from e

        choices = getattr(response, "choices", None) or []
        if not choices:
            raise ProviderError(ProviderErrorKind.EMPTY_RESULT, "AI returned empty response")
        return self._require_text(choices[0].message.content)
