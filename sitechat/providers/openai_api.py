# FILE: sitechat/providers/openai_api.py
"""
OpenAI adapters (openai SDK).

The SDK's built-in retries are disabled (max_retries=0); a failed call
surfaces immediately as ProviderError and the queue decides what to do.
"""

import logging
from typing import Dict, List

from sitechat.errors import ProviderError
from .base import EmbeddingProvider, GenerationProvider

logger = logging.getLogger(__name__)


def _provider_error(exc: Exception) -> ProviderError:
    status = getattr(exc, "status_code", None)
    message = getattr(exc, "message", None) or str(exc) or exc.__class__.__name__
    return ProviderError(message, provider="openai", status_code=status)


def _client(settings):
    from openai import OpenAI

    return OpenAI(
        api_key=settings.api_key,
        timeout=settings.timeout_seconds,
        max_retries=0,
    )


class OpenAIEmbeddingProvider(EmbeddingProvider):
    provider_id = "openai"

    def _embed(self, text: str) -> List[float]:
        logger.debug("[openai] Embedding %d chars with %s", len(text), self.settings.model)
        try:
            resp = _client(self.settings).embeddings.create(
                model=self.settings.model,
                input=text,
                dimensions=self.settings.dimensions,
            )
        except Exception as e:
            raise _provider_error(e) from e

        if not resp.data:
            raise ProviderError("No embedding values in response", provider="openai")
        return resp.data[0].embedding


class OpenAIGenerationProvider(GenerationProvider):
    provider_id = "openai"

    def _generate(self, system_prompt: str, messages: List[Dict[str, str]]) -> str:
        chat = [{"role": "system", "content": system_prompt}]
        for m in messages:
            role = m.get("role")
            chat.append({
                "role": role if role in ("user", "assistant") else "user",
                "content": str(m.get("content", "")),
            })

        try:
            resp = _client(self.settings).chat.completions.create(
                model=self.settings.model,
                messages=chat,
                temperature=self.settings.temperature,
                max_tokens=self.settings.max_output_tokens,
            )
        except Exception as e:
            raise _provider_error(e) from e

        if not resp.choices:
            raise ProviderError("No choices in response", provider="openai")
        return resp.choices[0].message.content or ""
