# FILE: sitechat/articles/service.py
"""
Article write path.

Editorial CRUD lives elsewhere; this module only covers the writes that
matter to the chat pipeline: every publish or content change of a
published article enqueues embedding work, and the queue processor
stores vectors through set_article_embedding().
"""

import logging
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sitechat.errors import NotFoundError, PersistenceError, ValidationError
from .models import Article, ArticleStatus

logger = logging.getLogger(__name__)

# Fields whose change makes a stored vector stale
EMBEDDED_FIELDS = ("title", "excerpt", "content")

EDITABLE_FIELDS = ("title", "slug", "excerpt", "content", "category", "author_name", "status", "published_date")


def get_article(db: Session, article_id: int) -> Optional[Article]:
    return db.query(Article).filter(Article.id == article_id).first()


def _validate_status(status: str) -> None:
    valid = [s.value for s in ArticleStatus]
    if status not in valid:
        raise ValidationError([f"Invalid status '{status}'. Must be one of: {valid}"])


def create_article(db: Session, title: str, slug: str, **fields: Any) -> Article:
    """Create an article; publishing it on creation enqueues an embedding."""
    if not title or not title.strip():
        raise ValidationError(["title is required"])
    if not slug or not slug.strip():
        raise ValidationError(["slug is required"])

    unknown = [k for k in fields if k not in EDITABLE_FIELDS]
    if unknown:
        raise ValidationError([f"Unknown article field(s): {', '.join(unknown)}"])

    status = fields.pop("status", ArticleStatus.DRAFT.value)
    _validate_status(status)

    article = Article(title=title, slug=slug, status=status, **fields)
    if article.is_published and article.published_date is None:
        article.published_date = datetime.utcnow()

    try:
        db.add(article)
        db.commit()
        db.refresh(article)
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"Failed to create article '{slug}': {e}") from e

    if article.is_published:
        _enqueue_embedding(db, article, force_update=False)

    return article


def update_article(db: Session, article_id: int, **changes: Any) -> Article:
    """
    Apply changes to an article.

    Enqueue rules (mirrors the auto-embedding trigger):
    - draft/archived -> published: enqueue, no force
    - published article whose title/excerpt/content changed: enqueue with force_update
    """
    article = get_article(db, article_id)
    if not article:
        raise NotFoundError(f"Article {article_id} not found")

    unknown = [k for k in changes if k not in EDITABLE_FIELDS]
    if unknown:
        raise ValidationError([f"Unknown article field(s): {', '.join(unknown)}"])
    if "status" in changes:
        _validate_status(changes["status"])

    was_published = article.is_published
    content_changed = any(
        k in changes and changes[k] != getattr(article, k) for k in EMBEDDED_FIELDS
    )

    for key, value in changes.items():
        setattr(article, key, value)

    if article.is_published and article.published_date is None:
        article.published_date = datetime.utcnow()

    try:
        db.commit()
        db.refresh(article)
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"Failed to update article {article_id}: {e}") from e

    if article.is_published and not was_published:
        _enqueue_embedding(db, article, force_update=False)
    elif article.is_published and content_changed:
        _enqueue_embedding(db, article, force_update=True)

    return article


def set_article_embedding(db: Session, article_id: int, embedding: List[float]) -> None:
    """Persist a vector on an article. Raises PersistenceError on failure."""
    try:
        updated = db.query(Article).filter(Article.id == article_id).update(
            {Article.embedding: list(embedding)},
            synchronize_session=False,
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"Failed to store embedding for article {article_id}: {e}") from e

    if updated == 0:
        raise PersistenceError(f"Article {article_id} disappeared before its embedding was stored")


def _enqueue_embedding(db: Session, article: Article, force_update: bool) -> None:
    from sitechat.embeddings.queue import enqueue

    item = enqueue(db, article.id, force_update=force_update)
    logger.info(
        "[articles] Article %s queued for embedding (queue item %s, force=%s)",
        article.id, item.id, item.force_update,
    )
