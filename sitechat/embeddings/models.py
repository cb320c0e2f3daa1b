# FILE: sitechat/embeddings/models.py
"""
SQLAlchemy model for the embedding work queue.
"""

from datetime import datetime
from enum import Enum
from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey, Index, text
from sqlalchemy.orm import relationship
from sitechat.db import Base


class QueueStatus(str, Enum):
    """Queue item lifecycle: pending -> processing -> completed | failed; failed -> pending on retry."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# Statuses that still represent open work for an article (at most one row each)
OPEN_STATUSES = (QueueStatus.PENDING.value, QueueStatus.PROCESSING.value, QueueStatus.FAILED.value)

_OPEN_STATUS_SQL = text("status IN ('pending', 'processing', 'failed')")


class EmbeddingQueueItem(Base):
    """
    One unit of (re)embedding work for an article.

    error_message is kept verbatim from the provider for diagnosis; completed
    items may also carry an informational message ("Embedding already exists").
    processed_at is stamped on claim and again on completion/failure.
    """
    __tablename__ = "embedding_queue"

    id = Column(Integer, primary_key=True, index=True)
    article_id = Column(Integer, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False, index=True)

    status = Column(String(20), default=QueueStatus.PENDING.value, nullable=False, index=True)
    retry_count = Column(Integer, default=0, nullable=False)
    force_update = Column(Boolean, default=False, nullable=False)
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    processed_at = Column(DateTime, nullable=True)

    article = relationship("Article", backref="embedding_queue_items")

    __table_args__ = (
        # Duplicate enqueues must merge; the DB backs that up for racing writers
        Index(
            'uq_embedding_queue_open_article',
            'article_id',
            unique=True,
            sqlite_where=_OPEN_STATUS_SQL,
            postgresql_where=_OPEN_STATUS_SQL,
        ),
    )

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES
