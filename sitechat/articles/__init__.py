"""
Article store: the published corpus the chat assistant answers from.
"""

from .models import Article, ArticleStatus
from .service import (
    get_article,
    create_article,
    update_article,
    set_article_embedding,
)

__all__ = [
    "Article",
    "ArticleStatus",
    "get_article",
    "create_article",
    "update_article",
    "set_article_embedding",
]
