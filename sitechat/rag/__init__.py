"""
Retrieval and grounded answering over published articles.
"""

from .search import SearchResult, vector_search, keyword_search
from .retrieval import RetrievalOrchestrator, resolve_search_query
from .answerer import Answer, GroundedAnswerer

__all__ = [
    "SearchResult",
    "vector_search",
    "keyword_search",
    "RetrievalOrchestrator",
    "resolve_search_query",
    "Answer",
    "GroundedAnswerer",
]
