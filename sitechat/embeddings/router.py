# FILE: sitechat/embeddings/router.py
"""
FastAPI routes for the embedding queue.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from sitechat.config import Settings, get_settings
from sitechat.db import get_db
from sitechat.errors import NotFoundError, SiteChatError, ValidationError
from sitechat.providers import build_embedding_provider

from . import monitor, queue
from .processor import EmbeddingQueueProcessor
from .schemas import (
    ProcessQueueRequest,
    ProcessQueueResponse,
    QueueItemOut,
    QueueStats,
    TriggerEmbeddingResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/embeddings",
    tags=["embeddings"],
)


def get_processor(settings: Settings = Depends(get_settings)) -> EmbeddingQueueProcessor:
    """Processor wired to the configured embedding provider (overridable in tests)."""
    return EmbeddingQueueProcessor(build_embedding_provider(settings.embedding), settings.queue)


@router.post("/process-queue", response_model=ProcessQueueResponse)
def process_queue(
    req: Optional[ProcessQueueRequest] = Body(default=None),
    db: Session = Depends(get_db),
    processor: EmbeddingQueueProcessor = Depends(get_processor),
):
    """
    Process one batch of pending queue items.
    Meant to be called on a schedule (cron, admin button).
    """
    batch_size = req.batch_size if req else None
    try:
        result = processor.process_batch(db, batch_size=batch_size)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except SiteChatError as e:
        logger.error("[embeddings] process-queue failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))

    if result.total == 0:
        message = "No pending items in queue"
    else:
        message = f"Processed {result.processed}, skipped {result.skipped}, failed {result.failed}"

    return ProcessQueueResponse(
        processed=result.processed,
        failed=result.failed,
        skipped=result.skipped,
        total=result.total,
        errors=result.errors,
        message=message,
    )


@router.post("/trigger/{article_id}", response_model=TriggerEmbeddingResponse)
def trigger_article_embedding(article_id: int, db: Session = Depends(get_db)):
    """Force re-embedding of a published article."""
    try:
        article, item = queue.trigger_embedding(db, article_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SiteChatError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return TriggerEmbeddingResponse(
        success=True,
        article_id=article.id,
        article_title=article.title,
        queue_id=item.id,
    )


@router.get("/queue/stats", response_model=QueueStats)
def queue_stats(db: Session = Depends(get_db)):
    return monitor.get_queue_stats(db)


@router.get("/queue", response_model=List[QueueItemOut])
def queue_items(
    limit: int = Query(default=50, ge=1, le=500),
    status: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
):
    try:
        return monitor.list_queue_items(db, limit=limit, status=status)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/queue/{article_id}/retry", response_model=QueueItemOut)
def retry_queue_item(
    article_id: int,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Return an article's failed item to pending."""
    try:
        return monitor.retry_item(db, article_id, max_retries=settings.queue.max_retries)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SiteChatError as e:
        raise HTTPException(status_code=500, detail=str(e))
