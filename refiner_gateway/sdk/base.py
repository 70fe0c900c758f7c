"""
Provider contract shared by every upstream adapter.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional


class ProviderErrorKind(Enum):
    """Failure categories every adapter maps its transport errors onto."""
    UNAVAILABLE = "unavailable"                # timeout, DNS, connection refused
    INVALID_CREDENTIAL = "invalid_credential"  # 400/401/403
    QUOTA_EXCEEDED = "quota_exceeded"          # upstream 429, not the gateway's own quota
    UPSTREAM_ERROR = "upstream_error"          # 5xx and anything else unexpected
    EMPTY_RESULT = "empty_result"              # 2xx with no usable text


class ProviderError(Exception):
    """Raised by adapters; the router only ever sees this type."""

    def __init__(self, kind: ProviderErrorKind, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code

    def __repr__(self) -> str:
        return f"ProviderError(kind={self.kind.value}, status={self.status_code}, message={str(self)!r})"


def kind_for_status(status_code: int) -> ProviderErrorKind:
    """Map a non-2xx HTTP status to an error kind."""
    if status_code in (400, 401, 403):
        return ProviderErrorKind.INVALID_CREDENTIAL
    if status_code == 429:
        return ProviderErrorKind.QUOTA_EXCEEDED
    return ProviderErrorKind.UPSTREAM_ERROR


class ProviderClient(ABC):
    """One upstream text-generation backend.

    Attributes:
        name: Identifier used in logs and notifications
        model: Upstream model name
        shared_key: Server-held key for free-tier traffic, if configured
    """

    def __init__(self, name: str, model: str, timeout_seconds: float, shared_key: Optional[str] = None):
        if not name or not name.strip():
            raise ValueError("name is required and cannot be empty")
        if not model or not model.strip():
            raise ValueError("model is required and cannot be empty")

        self.name = name
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.shared_key = shared_key

    @abstractmethod
    def generate(self, prompt: str, api_key: str) -> str:
        """Send a prompt and return the trimmed generated text.

        Raises:
            ProviderError: On any failure, including an empty result
        """

    @staticmethod
    def _require_text(text: Optional[str]) -> str:
        if not isinstance(text, str) or not text.strip():
            raise ProviderError(ProviderErrorKind.EMPTY_RESULT, "AI returned empty response")
        return text.strip()
