"""
Upstream provider adapters.

Every adapter implements ProviderClient.generate and raises ProviderError.
"""

import os
from typing import List, Mapping, Optional, Sequence

from ..config.loader import ProviderConfig, ProviderKind
from .base import ProviderClient, ProviderError, ProviderErrorKind
from .gemini_client import GeminiClient
from .openai_client import OpenAICompatibleClient

__all__ = [
    "ProviderClient",
    "ProviderError",
    "ProviderErrorKind",
    "GeminiClient",
    "OpenAICompatibleClient",
    "build_provider",
    "build_providers",
]


def build_provider(config: ProviderConfig, environ: Optional[Mapping[str, str]] = None) -> ProviderClient:
    """Instantiate the adapter for one configured provider."""
    env = os.environ if environ is None else environ
    shared_key = config.shared_key(env)
    if config.kind == ProviderKind.GEMINI:
        return GeminiClient(
            model=config.model,
            timeout_seconds=config.timeout_seconds,
            shared_key=shared_key,
            name=config.name,
        )
    if config.kind == ProviderKind.GROQ:
        return OpenAICompatibleClient(
            model=config.model,
            timeout_seconds=config.timeout_seconds,
            shared_key=shared_key,
            name=config.name,
        )
    raise ValueError(f"Unsupported provider kind: {config.kind}")


def build_providers(
    configs: Sequence[ProviderConfig],
    environ: Optional[Mapping[str, str]] = None
) -> List[ProviderClient]:
    """Instantiate adapters in configured order."""
    return [build_provider(config, environ) for config in configs]
