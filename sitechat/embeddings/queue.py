# FILE: sitechat/embeddings/queue.py
"""
Embedding queue store: enqueue, claim, state transitions, retry.

State machine:
    pending -> processing -> completed | failed
    failed  -> pending      (retry: manual, merging enqueue, or scheduled auto-retry)
    completed is terminal.

Concurrency:
    claim() is a conditional UPDATE (status must still be 'pending'), so two
    processors racing on the same row cannot both win. enqueue() merges into
    the open row and falls back on the partial unique index if two writers
    insert at once.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from sitechat.errors import NotFoundError, PersistenceError
from .models import EmbeddingQueueItem, QueueStatus, OPEN_STATUSES

logger = logging.getLogger(__name__)


def find_open_item(db: Session, article_id: int) -> Optional[EmbeddingQueueItem]:
    """Return the article's pending/processing/failed item, if any."""
    return db.query(EmbeddingQueueItem).filter(
        EmbeddingQueueItem.article_id == article_id,
        EmbeddingQueueItem.status.in_(OPEN_STATUSES),
    ).order_by(EmbeddingQueueItem.created_at.desc()).first()


def get_item(db: Session, item_id: int) -> Optional[EmbeddingQueueItem]:
    return db.query(EmbeddingQueueItem).filter(EmbeddingQueueItem.id == item_id).first()


def _commit(db: Session, what: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"Failed to {what}: {e}") from e


def _merge(db: Session, item: EmbeddingQueueItem, force_update: bool) -> EmbeddingQueueItem:
    item.force_update = bool(item.force_update or force_update)
    if item.status == QueueStatus.FAILED.value:
        # An article write is new work: reopen with a fresh retry budget
        item.status = QueueStatus.PENDING.value
        item.retry_count = 0
        item.error_message = None
        item.processed_at = None
    _commit(db, f"merge enqueue into queue item {item.id}")
    db.refresh(item)
    return item


def enqueue(db: Session, article_id: int, force_update: bool = False) -> EmbeddingQueueItem:
    """
    Queue an article for (re)embedding.

    Idempotent: if the article already has an open item, that item's
    force_update flag is OR-ed with the new one and no row is created.
    """
    existing = find_open_item(db, article_id)
    if existing:
        logger.debug("[queue] Article %s already queued (item %s, %s), merging", article_id, existing.id, existing.status)
        return _merge(db, existing, force_update)

    item = EmbeddingQueueItem(
        article_id=article_id,
        status=QueueStatus.PENDING.value,
        retry_count=0,
        force_update=force_update,
    )
    db.add(item)
    try:
        db.commit()
    except IntegrityError:
        # Lost an insert race against another writer: merge into the winner
        db.rollback()
        existing = find_open_item(db, article_id)
        if existing is None:
            raise PersistenceError(f"Failed to enqueue article {article_id}: integrity error with no open item")
        return _merge(db, existing, force_update)
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"Failed to enqueue article {article_id}: {e}") from e

    db.refresh(item)
    logger.info("[queue] Enqueued article %s as item %s (force=%s)", article_id, item.id, force_update)
    return item


def select_due(db: Session, batch_size: int, max_retries: int) -> List[EmbeddingQueueItem]:
    """Oldest pending items still under the retry cap."""
    return db.query(EmbeddingQueueItem).filter(
        EmbeddingQueueItem.status == QueueStatus.PENDING.value,
        EmbeddingQueueItem.retry_count < max_retries,
    ).order_by(
        EmbeddingQueueItem.created_at.asc(),
        EmbeddingQueueItem.id.asc(),
    ).limit(batch_size).all()


def claim(db: Session, item_id: int) -> bool:
    """
    Atomically move an item pending -> processing.

    Returns True only for the caller whose UPDATE actually changed the row.
    """
    try:
        changed = db.query(EmbeddingQueueItem).filter(
            EmbeddingQueueItem.id == item_id,
            EmbeddingQueueItem.status == QueueStatus.PENDING.value,
        ).update(
            {
                EmbeddingQueueItem.status: QueueStatus.PROCESSING.value,
                EmbeddingQueueItem.processed_at: datetime.utcnow(),
            },
            synchronize_session=False,
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"Failed to claim queue item {item_id}: {e}") from e
    return changed == 1


def mark_completed(db: Session, item: EmbeddingQueueItem, message: Optional[str] = None) -> None:
    item.status = QueueStatus.COMPLETED.value
    item.error_message = message
    item.force_update = False
    item.processed_at = datetime.utcnow()
    _commit(db, f"mark queue item {item.id} completed")


def mark_failed(db: Session, item: EmbeddingQueueItem, message: str) -> None:
    item.status = QueueStatus.FAILED.value
    item.error_message = message
    item.retry_count = (item.retry_count or 0) + 1
    item.processed_at = datetime.utcnow()
    _commit(db, f"mark queue item {item.id} failed")


def retry(db: Session, article_id: int, max_retries: Optional[int] = None) -> EmbeddingQueueItem:
    """
    Manually return an article's failed item to pending.

    Items at or above max_retries get their retry_count reset, since the
    processor would otherwise never select them again.
    """
    item = db.query(EmbeddingQueueItem).filter(
        EmbeddingQueueItem.article_id == article_id,
        EmbeddingQueueItem.status == QueueStatus.FAILED.value,
    ).first()
    if not item:
        raise NotFoundError(f"No failed queue item for article {article_id}")

    item.status = QueueStatus.PENDING.value
    if max_retries is not None and item.retry_count >= max_retries:
        item.retry_count = 0
    item.processed_at = None
    _commit(db, f"retry queue item {item.id}")
    db.refresh(item)

    logger.info("[queue] Manual retry: item %s (article %s) back to pending", item.id, article_id)
    return item


def backoff_delay(retry_count: int, base_seconds: float) -> timedelta:
    """Exponential delay before a failed item is auto-scheduled again."""
    if retry_count <= 0 or base_seconds <= 0:
        return timedelta(0)
    return timedelta(seconds=base_seconds * (2 ** (retry_count - 1)))


def requeue_failed(
    db: Session,
    max_retries: int,
    backoff_seconds: float,
    now: Optional[datetime] = None,
) -> int:
    """Auto-retry pass: failed items under the cap whose backoff has elapsed go back to pending."""
    now = now or datetime.utcnow()
    candidates = db.query(EmbeddingQueueItem).filter(
        EmbeddingQueueItem.status == QueueStatus.FAILED.value,
        EmbeddingQueueItem.retry_count < max_retries,
    ).all()

    requeued = 0
    for item in candidates:
        failed_at = item.processed_at or item.created_at
        if failed_at + backoff_delay(item.retry_count, backoff_seconds) > now:
            continue
        item.status = QueueStatus.PENDING.value
        requeued += 1

    if requeued:
        _commit(db, "requeue failed items")
        logger.info("[queue] Auto-retry: %d failed item(s) back to pending", requeued)
    return requeued


def fail_stale(db: Session, stale_after_seconds: float, now: Optional[datetime] = None) -> int:
    """Fail items left in 'processing' by a crashed or timed-out processor."""
    now = now or datetime.utcnow()
    cutoff = now - timedelta(seconds=stale_after_seconds)
    stale = db.query(EmbeddingQueueItem).filter(
        EmbeddingQueueItem.status == QueueStatus.PROCESSING.value,
        EmbeddingQueueItem.processed_at < cutoff,
    ).all()

    for item in stale:
        item.status = QueueStatus.FAILED.value
        item.error_message = "Processing timed out"
        item.retry_count = (item.retry_count or 0) + 1
        item.processed_at = now

    if stale:
        _commit(db, "fail stale processing items")
        logger.warning("[queue] %d stale processing item(s) marked failed", len(stale))
    return len(stale)


def trigger_embedding(db: Session, article_id: int):
    """
    Manual re-embed of a published article (admin action).

    Returns (article, queue_item). Raises NotFoundError if the article is
    missing or not published.
    """
    from sitechat.articles.models import Article, ArticleStatus

    article = db.query(Article).filter(
        Article.id == article_id,
        Article.status == ArticleStatus.PUBLISHED.value,
    ).first()
    if not article:
        raise NotFoundError(f"Article {article_id} not found or not published")

    item = enqueue(db, article_id, force_update=True)
    return article, item
