# FILE: sitechat/embeddings/__init__.py
"""
Embedding queue for SiteChat.
Durable work queue of articles awaiting (re)embedding, its batch processor
and the read-only monitor used by the admin dashboard.
"""

from .models import EmbeddingQueueItem, QueueStatus

from .queue import (
    enqueue,
    claim,
    retry,
    trigger_embedding,
)

from .processor import (
    EmbeddingQueueProcessor,
    BatchResult,
    ItemResult,
)

from .monitor import (
    get_queue_stats,
    list_queue_items,
    retry_item,
)

from .schemas import (
    ProcessQueueRequest,
    ProcessQueueResponse,
    TriggerEmbeddingResponse,
    QueueStats,
    QueueItemOut,
)


__all__ = [
    # Models
    "EmbeddingQueueItem",
    "QueueStatus",
    # Queue store
    "enqueue",
    "claim",
    "retry",
    "trigger_embedding",
    # Processor
    "EmbeddingQueueProcessor",
    "BatchResult",
    "ItemResult",
    # Monitor
    "get_queue_stats",
    "list_queue_items",
    "retry_item",
    # Schemas
    "ProcessQueueRequest",
    "ProcessQueueResponse",
    "TriggerEmbeddingResponse",
    "QueueStats",
    "QueueItemOut",
]
