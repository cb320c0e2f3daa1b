# FILE: sitechat/rag/search.py
"""
Article search primitives: vector similarity and keyword fallback.

Both return SearchResult rows for published articles only.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

import numpy as np
from sqlalchemy.orm import Session

from sitechat.articles.models import Article, ArticleStatus
from sitechat.errors import NotFoundError, ProviderError

logger = logging.getLogger(__name__)

SEARCH_VECTOR = "vector"
SEARCH_KEYWORD = "keyword"
SEARCH_NONE = "none"

MAX_KEYWORD_TERMS = 5

# Per-field weights for the keyword relevance score
TITLE_WEIGHT = 10
EXCERPT_WEIGHT = 5
CONTENT_WEIGHT = 2

STOP_WORDS = frozenset({
    "the", "and", "for", "are", "but", "not", "you", "all", "can", "had",
    "her", "was", "one", "our", "out", "has", "his", "how", "its", "who",
    "did", "get", "may", "him", "new", "now", "old", "see", "two", "way",
    "what", "when", "where", "which", "why", "with", "about", "this", "that",
    "from", "they", "have", "there", "their", "would", "could", "should",
    "tell", "more", "does", "into", "your", "some", "any", "also",
})

_WORD_RE = re.compile(r"\w+", re.UNICODE)


@dataclass
class SearchResult:
    article_id: int
    title: str
    slug: str
    excerpt: Optional[str]
    content: Optional[str]
    category: Optional[str]
    published_date: Optional[datetime]
    similarity: float
    search_type: str


def _to_result(article: Article, score: float, search_type: str) -> SearchResult:
    return SearchResult(
        article_id=article.id,
        title=article.title,
        slug=article.slug,
        excerpt=article.excerpt,
        content=article.content,
        category=article.category,
        published_date=article.published_date,
        similarity=float(score),
        search_type=search_type,
    )


def cosine_similarities(query: Sequence[float], matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of one query vector against every row of matrix (zero rows score 0)."""
    q = np.asarray(query, dtype=np.float64)
    q_norm = np.linalg.norm(q)
    row_norms = np.linalg.norm(matrix, axis=1)
    denom = row_norms * q_norm
    dots = matrix @ q
    with np.errstate(divide="ignore", invalid="ignore"):
        sims = np.where(denom > 0, dots / denom, 0.0)
    return sims


# ============================================================================
# VECTOR SEARCH
# ============================================================================

def vector_search(
    db: Session,
    query_vector: Sequence[float],
    max_results: int,
    threshold: float,
) -> List[SearchResult]:
    """
    Nearest published articles by cosine similarity.

    Only hits strictly above threshold are returned, best first.

    Raises:
        NotFoundError: no published article has a vector yet
        ProviderError: a stored vector's dimension differs from the query's
    """
    articles = db.query(Article).filter(
        Article.status == ArticleStatus.PUBLISHED.value,
        Article.embedding.isnot(None),
    ).all()
    articles = [a for a in articles if a.embedding]

    if not articles:
        raise NotFoundError("No embedded articles available for vector search")

    dims = len(query_vector)
    for article in articles:
        if len(article.embedding) != dims:
            raise ProviderError(
                f"Article {article.id} has a {len(article.embedding)}-dimension vector, query has {dims}",
                provider="vector_index",
            )

    matrix = np.asarray([a.embedding for a in articles], dtype=np.float64)
    sims = cosine_similarities(query_vector, matrix)

    order = np.argsort(-sims, kind="stable")
    results: List[SearchResult] = []
    for idx in order:
        score = float(sims[idx])
        if score <= threshold:
            break
        results.append(_to_result(articles[idx], score, SEARCH_VECTOR))
        if len(results) >= max_results:
            break

    logger.debug("[search] Vector search: %d/%d articles above %.2f", len(results), len(articles), threshold)
    return results


# ============================================================================
# KEYWORD SEARCH
# ============================================================================

def search_terms(query: str) -> List[str]:
    """The whole query plus up to five significant words, case-folded and de-duplicated."""
    phrase = (query or "").strip().casefold()
    if not phrase:
        return []

    terms = [phrase]
    for word in _WORD_RE.findall(phrase):
        if len(terms) > MAX_KEYWORD_TERMS:
            break
        if len(word) <= 2 or word in STOP_WORDS or word in terms:
            continue
        terms.append(word)
    return terms


def _folded_fields(article: Article):
    return (
        (article.title or "").casefold(),
        (article.excerpt or "").casefold(),
        (article.content or "").casefold(),
    )


def keyword_score(article: Article, terms: Sequence[str]) -> float:
    """Weighted term hits (title > excerpt > content) normalised to [0, 1]."""
    if not terms:
        return 0.0
    title, excerpt, content = _folded_fields(article)

    hits = 0
    for term in terms:
        if term in title:
            hits += TITLE_WEIGHT
        if term in excerpt:
            hits += EXCERPT_WEIGHT
        if term in content:
            hits += CONTENT_WEIGHT

    best = len(terms) * (TITLE_WEIGHT + EXCERPT_WEIGHT + CONTENT_WEIGHT)
    return hits / best


def keyword_search(db: Session, query: str, max_results: int) -> List[SearchResult]:
    """Case-insensitive substring match over published articles, newest first."""
    terms = search_terms(query)
    if not terms:
        return []

    # Folding happens in Python: SQLite lower() only folds ASCII
    candidates = db.query(Article).filter(
        Article.status == ArticleStatus.PUBLISHED.value,
    ).order_by(
        Article.published_date.desc().nullslast(),
        Article.created_at.desc(),
    ).yield_per(200)

    results: List[SearchResult] = []
    for article in candidates:
        fields = _folded_fields(article)
        if not any(term in field for term in terms for field in fields):
            continue
        results.append(_to_result(article, keyword_score(article, terms), SEARCH_KEYWORD))
        if len(results) >= max_results:
            break

    logger.debug("[search] Keyword search for %r: %d hit(s)", terms, len(results))
    return results
