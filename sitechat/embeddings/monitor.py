# FILE: sitechat/embeddings/monitor.py
"""
Read-only queue statistics for the admin dashboard.

Holds no state; the dashboard polls these on a short interval.
"""

from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from sitechat.articles.models import Article
from sitechat.errors import ValidationError
from . import queue
from .models import EmbeddingQueueItem, QueueStatus
from .schemas import QueueItemOut, QueueStats


def get_queue_stats(db: Session) -> QueueStats:
    """Counts per status (all four always present), total and completion percentage."""
    rows = db.query(
        EmbeddingQueueItem.status,
        func.count(EmbeddingQueueItem.id).label("count"),
    ).group_by(
        EmbeddingQueueItem.status
    ).all()

    counts: Dict[str, int] = {s.value: 0 for s in QueueStatus}
    for status, count in rows:
        counts[status] = counts.get(status, 0) + count

    total = sum(counts.values())
    completion = round(counts[QueueStatus.COMPLETED.value] / total * 100, 1) if total else 0.0

    return QueueStats(
        pending=counts[QueueStatus.PENDING.value],
        processing=counts[QueueStatus.PROCESSING.value],
        completed=counts[QueueStatus.COMPLETED.value],
        failed=counts[QueueStatus.FAILED.value],
        total=total,
        completion_percentage=completion,
    )


def list_queue_items(db: Session, limit: int = 50, status: Optional[str] = None) -> List[QueueItemOut]:
    """Most recent queue items with their article's title and status."""
    if status is not None and status not in [s.value for s in QueueStatus]:
        raise ValidationError([f"Invalid status filter '{status}'"])

    query = db.query(EmbeddingQueueItem, Article.title, Article.status).join(
        Article, Article.id == EmbeddingQueueItem.article_id
    )
    if status:
        query = query.filter(EmbeddingQueueItem.status == status)

    rows = query.order_by(
        EmbeddingQueueItem.created_at.desc(),
        EmbeddingQueueItem.id.desc(),
    ).limit(limit).all()

    return [
        QueueItemOut(
            id=item.id,
            article_id=item.article_id,
            article_title=title,
            article_status=article_status,
            status=item.status,
            retry_count=item.retry_count,
            force_update=item.force_update,
            error_message=item.error_message,
            created_at=item.created_at,
            processed_at=item.processed_at,
        )
        for item, title, article_status in rows
    ]


def retry_item(db: Session, article_id: int, max_retries: Optional[int] = None) -> QueueItemOut:
    """Dashboard 'retry' button: failed -> pending via the queue store."""
    item = queue.retry(db, article_id, max_retries=max_retries)
    article = db.query(Article).filter(Article.id == article_id).first()
    return QueueItemOut(
        id=item.id,
        article_id=item.article_id,
        article_title=article.title if article else None,
        article_status=article.status if article else None,
        status=item.status,
        retry_count=item.retry_count,
        force_update=item.force_update,
        error_message=item.error_message,
        created_at=item.created_at,
        processed_at=item.processed_at,
    )
