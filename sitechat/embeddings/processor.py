# FILE: sitechat/embeddings/processor.py
"""
Embedding queue processor.

A discrete batch job, triggered from outside (HTTP endpoint, CLI, cron):
each call processes at most batch_size items and returns.

Per batch:
1. Fail items stuck in 'processing' past stale_after_seconds (crash recovery)
2. Return failed items under the retry cap to 'pending' once their backoff elapsed
3. Select the oldest pending items under the cap, claim each atomically,
   embed sequentially with a delay between provider calls

Per item:
- article missing            -> failed
- article not published      -> completed, "Article not published" (no provider call)
- vector exists, no force    -> completed, "Embedding already exists" (no provider call)
- provider / store error     -> failed, retry_count + 1, error kept verbatim
- otherwise                  -> vector written to article, completed

One item's failure never aborts the batch.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from sitechat.articles.models import Article
from sitechat.articles.service import get_article, set_article_embedding
from sitechat.config import QueueSettings
from sitechat.errors import NotFoundError, SiteChatError, ValidationError
from sitechat.providers.base import EmbeddingProvider
from . import queue
from .models import EmbeddingQueueItem

logger = logging.getLogger(__name__)

SKIP_NOT_PUBLISHED = "Article not published"
SKIP_ALREADY_EMBEDDED = "Embedding already exists"


@dataclass
class ItemResult:
    queue_id: int
    article_id: int
    success: bool
    skipped: bool = False
    message: Optional[str] = None
    dimensions: Optional[int] = None


@dataclass
class BatchResult:
    processed: int = 0
    failed: int = 0
    skipped: int = 0
    requeued: int = 0
    stale: int = 0
    errors: List[str] = field(default_factory=list)
    results: List[ItemResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.processed + self.failed + self.skipped


def compose_article_text(article: Article) -> str:
    """Title, excerpt and content joined for embedding (markup stripped later by the adapter)."""
    return " ".join([article.title or "", article.excerpt or "", article.content or ""])


class EmbeddingQueueProcessor:
    """Pulls due queue items, embeds their articles and records the outcome."""

    def __init__(
        self,
        provider: EmbeddingProvider,
        settings: Optional[QueueSettings] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.provider = provider
        self.settings = settings or QueueSettings()
        self._sleep = sleep

    def _resolve_batch_size(self, batch_size: Optional[int]) -> int:
        size = self.settings.batch_size if batch_size is None else batch_size
        if size < 1 or size > self.settings.max_batch_size:
            raise ValidationError([f"batchSize must be between 1 and {self.settings.max_batch_size}"])
        return size

    def process_batch(self, db: Session, batch_size: Optional[int] = None) -> BatchResult:
        size = self._resolve_batch_size(batch_size)
        result = BatchResult()

        result.stale = queue.fail_stale(db, self.settings.stale_after_seconds)
        result.requeued = queue.requeue_failed(
            db,
            max_retries=self.settings.max_retries,
            backoff_seconds=self.settings.retry_backoff_seconds,
        )

        items = queue.select_due(db, size, self.settings.max_retries)
        if not items:
            logger.info("[processor] No pending queue items")
            return result

        logger.info("[processor] Processing %d queue item(s)", len(items))
        item_ids = [(item.id, item.article_id) for item in items]

        for index, (item_id, article_id) in enumerate(item_ids):
            try:
                claimed = queue.claim(db, item_id)
            except SiteChatError as e:
                logger.error("[processor] Could not claim item %s: %s", item_id, e)
                continue
            if not claimed:
                logger.info("[processor] Item %s claimed by another processor, skipping", item_id)
                continue

            item = queue.get_item(db, item_id)
            if item is None:
                continue
            outcome, called_provider = self._process_item(db, item)
            result.results.append(outcome)

            if not outcome.success:
                result.failed += 1
                result.errors.append(f"item {item_id} (article {article_id}): {outcome.message}")
            elif outcome.skipped:
                result.skipped += 1
            else:
                result.processed += 1

            # Sequential calls with a pause keep us under upstream rate limits
            if called_provider and index < len(item_ids) - 1 and self.settings.rate_limit_delay > 0:
                self._sleep(self.settings.rate_limit_delay)

        logger.info(
            "[processor] Batch done: %d processed, %d skipped, %d failed",
            result.processed, result.skipped, result.failed,
        )
        return result

    def _process_item(self, db: Session, item: EmbeddingQueueItem):
        """Returns (ItemResult, whether the provider was called)."""
        called_provider = False
        try:
            article = get_article(db, item.article_id)
            if article is None:
                raise NotFoundError(f"Article {item.article_id} not found")

            if not article.is_published:
                queue.mark_completed(db, item, SKIP_NOT_PUBLISHED)
                return ItemResult(item.id, item.article_id, True, skipped=True, message=SKIP_NOT_PUBLISHED), False

            if article.has_embedding and not item.force_update:
                queue.mark_completed(db, item, SKIP_ALREADY_EMBEDDED)
                return ItemResult(item.id, item.article_id, True, skipped=True, message=SKIP_ALREADY_EMBEDDED), False

            called_provider = True
            vector = self.provider.embed(compose_article_text(article))
            set_article_embedding(db, article.id, vector)
            queue.mark_completed(db, item)

            logger.info("[processor] Embedded article %s (item %s, %d dims)", article.id, item.id, len(vector))
            return ItemResult(item.id, item.article_id, True, dimensions=len(vector)), called_provider

        except SiteChatError as e:
            message = str(e)
            logger.warning("[processor] Item %s (article %s) failed: %s", item.id, item.article_id, message)
        except Exception as e:
            message = f"{e.__class__.__name__}: {e}"
            logger.exception("[processor] Unexpected error on item %s (article %s)", item.id, item.article_id)

        self._record_failure(db, item, message)
        return ItemResult(item.id, item.article_id, False, message=message), called_provider

    def _record_failure(self, db: Session, item: EmbeddingQueueItem, message: str) -> None:
        try:
            queue.mark_failed(db, item, message)
        except SiteChatError as e:
            # Stale-claim recovery picks the row up on a later batch
            logger.error("[processor] Could not record failure for item %s: %s", item.id, e)
