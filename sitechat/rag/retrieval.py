# FILE: sitechat/rag/retrieval.py
"""
Hybrid retrieval: vector search first, keyword search as the fallback.

Fallback triggers:
- embedding provider failure (missing key, upstream error, timeout)
- empty vector index
- stored/query dimension mismatch
- vector search found nothing above the similarity threshold
"""

import logging
import re
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from sitechat.config import RetrievalSettings
from sitechat.errors import SiteChatError
from sitechat.providers.base import EmbeddingProvider
from .schemas import ConversationTurn
from .search import SearchResult, keyword_search, vector_search

logger = logging.getLogger(__name__)

# Bare follow-ups that carry no topic of their own
FOLLOW_UP_PATTERNS = [
    r"^tell me more\b",
    r"^more( please| info(rmation)?)?$",
    r"^(yes|yeah|yep|sure|ok|okay)( please)?$",
    r"^(please )?(continue|go on|elaborate|explain more|expand)$",
    r"^what else\b",
    r"^(and|so) then\??$",
    r"^ספר לי עוד",
    r"^(כן|בטח|אוקיי)( בבקשה)?$",
    r"^(עוד|המשך)( בבקשה)?$",
]
_FOLLOW_UP_RE = [re.compile(p, re.IGNORECASE) for p in FOLLOW_UP_PATTERNS]


def is_follow_up(query: str) -> bool:
    text = (query or "").strip().rstrip("?!. ").strip()
    return any(p.search(text) for p in _FOLLOW_UP_RE)


def resolve_search_query(query: str, history: Optional[Sequence[ConversationTurn]] = None) -> str:
    """
    Text to search with for this turn.

    A bare follow-up ("tell me more") is replaced by the last user turn, as
    long as the history holds at least one user and one assistant turn.
    """
    if not history or not is_follow_up(query):
        return query

    roles = {turn.role for turn in history}
    if not {"user", "assistant"} <= roles:
        return query

    for turn in reversed(history):
        if turn.role == "user" and turn.content.strip():
            logger.info("[retrieval] Follow-up %r resolved to previous question", query)
            return turn.content.strip()
    return query


class RetrievalOrchestrator:
    """Runs vector search, falling back to keyword search."""

    def __init__(self, embedding_provider: Optional[EmbeddingProvider], settings: Optional[RetrievalSettings] = None):
        self.embedding_provider = embedding_provider
        self.settings = settings or RetrievalSettings()

    def retrieve(self, db: Session, query: str, max_results: Optional[int] = None) -> List[SearchResult]:
        limit = max_results or self.settings.max_results

        results = self._vector(db, query, limit)
        if results:
            logger.info("[retrieval] Vector search returned %d result(s)", len(results))
            return results

        results = keyword_search(db, query, limit)
        if results:
            logger.info("[retrieval] Keyword search returned %d result(s)", len(results))
        else:
            logger.info("[retrieval] No results for query")
        return results

    def _vector(self, db: Session, query: str, limit: int) -> List[SearchResult]:
        if self.embedding_provider is None:
            logger.info("[retrieval] No embedding provider configured, using keyword search")
            return []
        try:
            query_vector = self.embedding_provider.embed(query)
            return vector_search(db, query_vector, limit, self.settings.similarity_threshold)
        except SiteChatError as e:
            logger.warning("[retrieval] Vector search unavailable (%s), falling back to keyword", e)
        except Exception as e:
            logger.exception("[retrieval] Vector search failed: %s, falling back to keyword", e)
        return []
