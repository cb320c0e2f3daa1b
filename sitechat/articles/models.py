# FILE: sitechat/articles/models.py
"""
SQLAlchemy model for articles.
"""

from datetime import datetime
from enum import Enum
from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, Index
from sitechat.db import Base


class ArticleStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class Article(Base):
    """
    A site article.

    Only published articles are embedded and retrievable.
    embedding: JSON-encoded float array of fixed dimension, NULL until the
    embedding queue first processes the article.
    """
    __tablename__ = "articles"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(500), nullable=False)
    slug = Column(String(500), nullable=False, unique=True)
    excerpt = Column(Text, nullable=True)
    content = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    author_name = Column(String(200), nullable=True)

    status = Column(String(20), default=ArticleStatus.DRAFT.value, nullable=False, index=True)
    published_date = Column(DateTime, nullable=True)

    embedding = Column(JSON(none_as_null=True), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('ix_articles_status_published', 'status', 'published_date'),
    )

    @property
    def is_published(self) -> bool:
        return self.status == ArticleStatus.PUBLISHED.value

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)
