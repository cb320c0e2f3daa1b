# FILE: sitechat/providers/registry.py
"""
Vendor selection for embedding and generation adapters.

This is the only place that branches on a provider id.
"""

from typing import Dict, Type

from sitechat.config import ProviderSettings
from .base import EmbeddingProvider, GenerationProvider
from .gemini import GeminiEmbeddingProvider, GeminiGenerationProvider
from .openai_api import OpenAIEmbeddingProvider, OpenAIGenerationProvider


EMBEDDING_PROVIDERS: Dict[str, Type[EmbeddingProvider]] = {
    "google": GeminiEmbeddingProvider,
    "openai": OpenAIEmbeddingProvider,
}

GENERATION_PROVIDERS: Dict[str, Type[GenerationProvider]] = {
    "google": GeminiGenerationProvider,
    "openai": OpenAIGenerationProvider,
}


def build_embedding_provider(settings: ProviderSettings) -> EmbeddingProvider:
    cls = EMBEDDING_PROVIDERS.get(settings.provider_id)
    if cls is None:
        raise ValueError(f"Unknown embedding provider: {settings.provider_id}")
    return cls(settings)


def build_generation_provider(settings: ProviderSettings) -> GenerationProvider:
    cls = GENERATION_PROVIDERS.get(settings.provider_id)
    if cls is None:
        raise ValueError(f"Unknown generation provider: {settings.provider_id}")
    return cls(settings)


def is_provider_available(settings: ProviderSettings) -> bool:
    """Key present and SDK importable."""
    if not settings.api_key:
        return False
    try:
        if settings.provider_id == "openai":
            from openai import OpenAI  # noqa: F401
        elif settings.provider_id == "google":
            import google.generativeai  # noqa: F401
        else:
            return False
    except Exception:
        return False
    return True
