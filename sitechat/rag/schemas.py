# FILE: sitechat/rag/schemas.py
"""
Pydantic schemas for the chat endpoint.
"""

from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ConversationTurn(_CamelModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(_CamelModel):
    query: str
    language: str = "en"
    max_results: int = Field(default=5, ge=1, le=20)
    conversation_history: List[ConversationTurn] = Field(default_factory=list)

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("query must not be empty")
        return v

    @field_validator("language")
    @classmethod
    def normalize_language(cls, v: str) -> str:
        return (v or "en").strip().lower()


class Reference(_CamelModel):
    title: str
    url: str
    excerpt: str
    category: Optional[str] = None


class ChatResponse(_CamelModel):
    success: bool
    answer: str
    references: List[Reference] = Field(default_factory=list)
    results_count: int = 0
    search_type: str = "none"
    language: str = "en"
    error: Optional[str] = None
