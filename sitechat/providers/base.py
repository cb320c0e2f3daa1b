# FILE: sitechat/providers/base.py
"""
Provider adapter interfaces and shared text preparation.

Adapters are constructed with an explicit ProviderSettings and perform
exactly one upstream call per operation. They never retry; retry policy
belongs to the embedding queue processor.
"""

import re
from typing import Dict, List, Optional

from sitechat.config import ProviderSettings
from sitechat.errors import ProviderError

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")


def strip_markup(text: str) -> str:
    """Remove HTML tags and collapse whitespace."""
    if not text:
        return ""
    return _WS_RE.sub(" ", _TAG_RE.sub(" ", text)).strip()


def prepare_text(text: Optional[str], max_chars: int) -> str:
    """Markup-stripped, whitespace-normalized text cut to the provider's character budget."""
    clean = strip_markup(text or "")
    if max_chars and len(clean) > max_chars:
        clean = clean[:max_chars].rstrip()
    return clean


class EmbeddingProvider:
    """Turns text into a fixed-length vector."""

    provider_id = "base"

    def __init__(self, settings: ProviderSettings):
        self.settings = settings

    @property
    def dimensions(self) -> int:
        return self.settings.dimensions

    def embed(self, text: str) -> List[float]:
        clean = prepare_text(text, self.settings.max_input_chars)
        if not clean:
            raise ProviderError("No content to embed", provider=self.provider_id)
        if not self.settings.api_key:
            raise ProviderError("API key not configured", provider=self.provider_id)
        vector = self._embed(clean)
        return self._check_vector(vector)

    def _embed(self, text: str) -> List[float]:
        raise NotImplementedError

    def _check_vector(self, vector) -> List[float]:
        if not vector:
            raise ProviderError("No embedding values in response", provider=self.provider_id)
        values = [float(v) for v in vector]
        if len(values) != self.settings.dimensions:
            raise ProviderError(
                f"Embedding has {len(values)} dimensions, expected {self.settings.dimensions}",
                provider=self.provider_id,
            )
        return values


class GenerationProvider:
    """Turns a system prompt plus chat messages into a text completion."""

    provider_id = "base"

    def __init__(self, settings: ProviderSettings):
        self.settings = settings

    def generate(self, system_prompt: str, messages: List[Dict[str, str]]) -> str:
        if not self.settings.api_key:
            raise ProviderError("API key not configured", provider=self.provider_id)
        text = self._generate(system_prompt, messages)
        if not text or not text.strip():
            raise ProviderError("Empty response from model", provider=self.provider_id)
        return text.strip()

    def _generate(self, system_prompt: str, messages: List[Dict[str, str]]) -> str:
        raise NotImplementedError
