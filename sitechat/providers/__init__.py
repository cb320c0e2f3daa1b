"""
Embedding and generation provider adapters.

One implementation per vendor; pick one with build_*_provider(settings).
"""

from .base import (
    EmbeddingProvider,
    GenerationProvider,
    prepare_text,
    strip_markup,
)
from .registry import (
    build_embedding_provider,
    build_generation_provider,
    is_provider_available,
)

__all__ = [
    "EmbeddingProvider",
    "GenerationProvider",
    "prepare_text",
    "strip_markup",
    "build_embedding_provider",
    "build_generation_provider",
    "is_provider_available",
]
