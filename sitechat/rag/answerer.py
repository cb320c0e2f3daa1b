# FILE: sitechat/rag/answerer.py
"""
Grounded answer synthesis.

Takes the user's question plus retrieved articles and produces a short
answer constrained to those articles, with references back to them.

Never raises: no results gives the localized "no information" reply
(the model is not called), a model failure gives the localized apology.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from sitechat.config import RetrievalSettings
from sitechat.providers.base import GenerationProvider, strip_markup
from .prompts import (
    CONTEXT_HEADER,
    QUESTION_HEADER,
    SYSTEM_PROMPTS,
    apology_reply,
    no_information_reply,
    normalize_language,
)
from .schemas import ConversationTurn, Reference
from .search import SearchResult

logger = logging.getLogger(__name__)

REFERENCE_EXCERPT_CHARS = 150


@dataclass
class Answer:
    text: str
    references: List[Reference] = field(default_factory=list)
    grounded: bool = False


def article_url(site_base_url: str, slug: str) -> str:
    return f"{(site_base_url or '').rstrip('/')}/article/{slug}"


def build_reference(result: SearchResult, site_base_url: str) -> Reference:
    excerpt = (result.excerpt or "").strip()
    if not excerpt:
        excerpt = strip_markup(result.content or "")[:REFERENCE_EXCERPT_CHARS]
    return Reference(
        title=result.title,
        url=article_url(site_base_url, result.slug),
        excerpt=excerpt,
        category=result.category,
    )


def build_context(results: Sequence[SearchResult], excerpt_chars: int) -> str:
    """Numbered article blocks; content cut to excerpt_chars."""
    blocks = []
    for i, r in enumerate(results, start=1):
        content = strip_markup(r.content or "")[:excerpt_chars]
        lines = [f"[{i}] {r.title}"]
        if r.category:
            lines.append(f"Category: {r.category}")
        if r.excerpt:
            lines.append(f"Summary: {strip_markup(r.excerpt)}")
        if content:
            lines.append(f"Content: {content}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


class GroundedAnswerer:
    """Builds the constrained prompt and calls the generation provider once."""

    def __init__(self, generation_provider: Optional[GenerationProvider], settings: Optional[RetrievalSettings] = None):
        self.generation_provider = generation_provider
        self.settings = settings or RetrievalSettings()

    def build_messages(
        self,
        query: str,
        history: Sequence[ConversationTurn],
        results: Sequence[SearchResult],
        language: str,
    ) -> List[Dict[str, str]]:
        lang = normalize_language(language)
        messages = [
            {"role": turn.role, "content": turn.content}
            for turn in list(history)[-self.settings.history_turns:]
        ]
        context = build_context(results, self.settings.excerpt_chars)
        messages.append({
            "role": "user",
            "content": f"{CONTEXT_HEADER[lang]}\n\n{context}\n\n{QUESTION_HEADER[lang]} {query}",
        })
        return messages

    def answer(
        self,
        query: str,
        history: Optional[Sequence[ConversationTurn]],
        results: Sequence[SearchResult],
        language: str = "en",
    ) -> Answer:
        lang = normalize_language(language)
        if not results:
            return Answer(text=no_information_reply(lang))

        top = list(results)[: self.settings.context_results]
        if self.generation_provider is None:
            logger.error("[answerer] No generation provider configured")
            return Answer(text=apology_reply(lang))

        messages = self.build_messages(query, history or [], top, lang)
        try:
            text = self.generation_provider.generate(SYSTEM_PROMPTS[lang], messages)
        except Exception as e:
            logger.warning("[answerer] Generation failed: %s", e)
            return Answer(text=apology_reply(lang))

        if not text or not text.strip():
            return Answer(text=apology_reply(lang))

        references = [build_reference(r, self.settings.site_base_url) for r in top]
        logger.info("[answerer] Answered from %d article(s) in '%s'", len(top), lang)
        return Answer(text=text.strip(), references=references, grounded=True)
