# FILE: sitechat/providers/gemini.py
"""
Google Gemini adapters (google-generativeai SDK).

Embeddings: gemini-embedding-001 with output_dimensionality (768 by default).
Generation: GenerativeModel.generate_content with a per-call timeout.
"""

import logging
from typing import Dict, List

from sitechat.errors import ProviderError
from .base import EmbeddingProvider, GenerationProvider

logger = logging.getLogger(__name__)


def _provider_error(exc: Exception) -> ProviderError:
    # google.api_core exceptions carry an HTTP-ish code and a message
    code = getattr(exc, "code", None)
    status = code if isinstance(code, int) else None
    message = getattr(exc, "message", None) or str(exc) or exc.__class__.__name__
    return ProviderError(message, provider="google", status_code=status)


def _to_gemini_contents(messages: List[Dict[str, str]]) -> List[dict]:
    contents = []
    for m in messages:
        role = "model" if m.get("role") == "assistant" else "user"
        contents.append({"role": role, "parts": [str(m.get("content", ""))]})
    return contents


class GeminiEmbeddingProvider(EmbeddingProvider):
    provider_id = "google"

    def _embed(self, text: str) -> List[float]:
        import google.generativeai as genai

        genai.configure(api_key=self.settings.api_key)
        logger.debug("[gemini] Embedding %d chars with %s", len(text), self.settings.model)

        try:
            result = genai.embed_content(
                model=self.settings.model,
                content=text,
                output_dimensionality=self.settings.dimensions,
                request_options={"timeout": self.settings.timeout_seconds},
            )
        except Exception as e:
            raise _provider_error(e) from e

        try:
            return result["embedding"]
        except (KeyError, TypeError) as e:
            raise ProviderError("Malformed embedding response", provider="google") from e


class GeminiGenerationProvider(GenerationProvider):
    provider_id = "google"

    def _generate(self, system_prompt: str, messages: List[Dict[str, str]]) -> str:
        import google.generativeai as genai

        genai.configure(api_key=self.settings.api_key)
        model = genai.GenerativeModel(self.settings.model, system_instruction=system_prompt)

        try:
            resp = model.generate_content(
                _to_gemini_contents(messages),
                generation_config={
                    "temperature": self.settings.temperature,
                    "max_output_tokens": self.settings.max_output_tokens,
                },
                request_options={"timeout": self.settings.timeout_seconds},
            )
        except Exception as e:
            raise _provider_error(e) from e

        # resp.text raises ValueError when the candidate was blocked or empty
        try:
            return resp.text or ""
        except ValueError as e:
            raise ProviderError(f"No usable candidate: {e}", provider="google") from e
