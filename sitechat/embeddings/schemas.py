# FILE: sitechat/embeddings/schemas.py
"""
Pydantic schemas for embedding queue endpoints.

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProcessQueueRequest(_CamelModel):
    batch_size: Optional[int] = Field(default=None, ge=1, le=50)


class ProcessQueueResponse(_CamelModel):
    success: bool = True
    processed: int
    failed: int
    skipped: int = 0
    total: int = 0
    errors: List[str] = Field(default_factory=list)
    message: Optional[str] = None


class TriggerEmbeddingResponse(_CamelModel):
    success: bool
    article_id: int
    article_title: str
    queue_id: int
    message: str = "Embedding queued manually"


class QueueStats(_CamelModel):
    pending: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0
    total: int = 0
    completion_percentage: float = 0.0


class QueueItemOut(_CamelModel):
    id: int
    article_id: int
    article_title: Optional[str] = None
    article_status: Optional[str] = None
    status: str
    retry_count: int
    force_update: bool
    error_message: Optional[str] = None
    created_at: datetime
    processed_at: Optional[datetime] = None
