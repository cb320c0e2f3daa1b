# FILE: tests/conftest.py
"""
Pytest configuration for SiteChat test suite.

Configures:
- pytest-asyncio for async test support
- in-memory SQLite session shared across threads (TestClient runs sync
  endpoints in a worker thread)
- fake embedding/generation providers injected through constructors
"""
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from sitechat.db import Base
from sitechat.articles.models import Article, ArticleStatus
from sitechat.embeddings.models import EmbeddingQueueItem  # noqa: F401
from sitechat.config import ProviderSettings, QueueSettings, RetrievalSettings
from sitechat.errors import ProviderError
from sitechat.providers.base import EmbeddingProvider, GenerationProvider

# Configure pytest-asyncio to use auto mode
pytest_plugins = ["pytest_asyncio"]

DIMS = 4


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    """Create in-memory database for testing."""
    session = session_factory()
    yield session
    session.close()


# ============================================================================
# FAKE PROVIDERS
# ============================================================================

def provider_settings(provider_id: str = "fake", dimensions: int = DIMS, api_key: Optional[str] = "test-key") -> ProviderSettings:
    return ProviderSettings(
        provider_id=provider_id,
        api_key=api_key,
        model="fake-model",
        dimensions=dimensions,
        max_input_chars=12000,
        timeout_seconds=5.0,
    )


class FakeEmbeddingProvider(EmbeddingProvider):
    """
    Deterministic embedder.

    vectors maps a substring to the vector returned for any text containing
    it; other texts get `default`. Texts containing a key of `errors` raise.
    """

    provider_id = "fake"

    def __init__(self, vectors: Optional[Dict[str, List[float]]] = None, default: Optional[List[float]] = None,
                 errors: Optional[Dict[str, str]] = None, dimensions: int = DIMS):
        super().__init__(provider_settings(dimensions=dimensions))
        self.vectors = vectors or {}
        self.default = default or [1.0] + [0.0] * (dimensions - 1)
        self.errors = errors or {}
        self.calls: List[str] = []

    def _embed(self, text: str) -> List[float]:
        self.calls.append(text)
        for needle, message in self.errors.items():
            if needle in text:
                raise ProviderError(message, provider=self.provider_id, status_code=429)
        for needle, vector in self.vectors.items():
            if needle in text:
                return vector
        return self.default


class FakeGenerationProvider(GenerationProvider):
    provider_id = "fake"

    def __init__(self, reply: str = "Grounded answer.", error: Optional[Exception] = None):
        super().__init__(provider_settings())
        self.reply = reply
        self.error = error
        self.calls: List[dict] = []

    def _generate(self, system_prompt, messages) -> str:
        self.calls.append({"system_prompt": system_prompt, "messages": messages})
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def fake_embedder():
    return FakeEmbeddingProvider()


@pytest.fixture
def fake_generator():
    return FakeGenerationProvider()


@pytest.fixture
def queue_settings():
    """No inter-call delay and immediate auto-retry."""
    return QueueSettings(batch_size=5, max_retries=3, rate_limit_delay=0.0, retry_backoff_seconds=0.0)


@pytest.fixture
def retrieval_settings():
    return RetrievalSettings(similarity_threshold=0.7, site_base_url="https://example.com")


# ============================================================================
# ARTICLE FACTORY
# ============================================================================

@pytest.fixture
def make_article(db_session):
    """Insert an article row directly (no enqueue side effects)."""
    counter = {"n": 0}

    def _make(title="Article", status=ArticleStatus.PUBLISHED.value, embedding=None,
              excerpt=None, content="Body text", category="general", published_days_ago=0, slug=None):
        counter["n"] += 1
        article = Article(
            title=title,
            slug=slug or f"article-{counter['n']}",
            excerpt=excerpt,
            content=content,
            category=category,
            status=status,
            embedding=embedding,
            published_date=(datetime.utcnow() - timedelta(days=published_days_ago))
            if status == ArticleStatus.PUBLISHED.value else None,
        )
        db_session.add(article)
        db_session.commit()
        db_session.refresh(article)
        return article

    return _make
