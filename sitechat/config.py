"""
SiteChat configuration.

All tunables in one place. Values are read from the process environment
once (load_settings) and then passed explicitly into the components that
need them, so tests can build their own Settings without touching os.environ.
"""

import os
from dataclasses import dataclass, field
from typing import Optional


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else default


# ============================================================================
# PROVIDER DEFAULTS
# ============================================================================

# Vendor -> (env var holding the key, default embedding model, default chat model, input char budget)
PROVIDER_DEFAULTS = {
    "google": ("GOOGLE_API_KEY", "models/gemini-embedding-001", "gemini-1.5-flash", 12000),
    "openai": ("OPENAI_API_KEY", "text-embedding-3-small", "gpt-4o-mini", 30000),
}

EMBEDDING_DIMENSIONS = 768


@dataclass
class ProviderSettings:
    """Everything an adapter needs; adapters never read the environment themselves."""
    provider_id: str
    api_key: Optional[str]
    model: str
    dimensions: int = EMBEDDING_DIMENSIONS
    max_input_chars: int = 12000
    timeout_seconds: float = 30.0
    temperature: float = 0.3
    max_output_tokens: int = 500


# ============================================================================
# QUEUE / RETRIEVAL
# ============================================================================

@dataclass
class QueueSettings:
    """Configuration for the embedding queue processor."""
    batch_size: int = 5
    max_batch_size: int = 50
    max_retries: int = 3
    rate_limit_delay: float = 0.5  # seconds between provider calls
    retry_backoff_seconds: float = 60.0  # base for exponential auto-retry backoff
    stale_after_seconds: float = 600.0  # processing items older than this are failed


@dataclass
class RetrievalSettings:
    similarity_threshold: float = 0.7
    max_results: int = 5
    context_results: int = 3  # results forwarded to the prompt / references
    excerpt_chars: int = 500
    history_turns: int = 10
    site_base_url: str = ""


@dataclass
class Settings:
    embedding: ProviderSettings
    generation: ProviderSettings
    queue: QueueSettings = field(default_factory=QueueSettings)
    retrieval: RetrievalSettings = field(default_factory=RetrievalSettings)


def provider_settings_from_env(provider_id: str, model: Optional[str] = None, kind: str = "embedding") -> ProviderSettings:
    """Build ProviderSettings for a vendor, filling gaps from PROVIDER_DEFAULTS."""
    provider_id = provider_id.strip().lower()
    if provider_id == "gemini":
        provider_id = "google"
    if provider_id not in PROVIDER_DEFAULTS:
        raise ValueError(f"Unknown provider '{provider_id}'. Must be one of: {sorted(PROVIDER_DEFAULTS)}")

    key_env, embed_model, chat_model, max_chars = PROVIDER_DEFAULTS[provider_id]
    default_model = embed_model if kind == "embedding" else chat_model

    return ProviderSettings(
        provider_id=provider_id,
        api_key=os.getenv(key_env, "").strip() or None,
        model=model or default_model,
        dimensions=_env_int("SITECHAT_EMBEDDING_DIMENSIONS", EMBEDDING_DIMENSIONS),
        max_input_chars=_env_int("SITECHAT_EMBEDDING_MAX_CHARS", max_chars),
        timeout_seconds=_env_float("SITECHAT_PROVIDER_TIMEOUT", 30.0),
        temperature=_env_float("SITECHAT_GENERATION_TEMPERATURE", 0.3),
        max_output_tokens=_env_int("SITECHAT_GENERATION_MAX_TOKENS", 500),
    )


def load_settings() -> Settings:
    """Read the process environment once. Call after load_dotenv()."""
    embedding = provider_settings_from_env(
        os.getenv("SITECHAT_EMBEDDING_PROVIDER", "google"),
        model=os.getenv("SITECHAT_EMBEDDING_MODEL") or None,
        kind="embedding",
    )
    generation = provider_settings_from_env(
        os.getenv("SITECHAT_GENERATION_PROVIDER", embedding.provider_id),
        model=os.getenv("SITECHAT_GENERATION_MODEL") or None,
        kind="generation",
    )

    queue = QueueSettings(
        batch_size=_env_int("SITECHAT_EMBEDDING_BATCH_SIZE", 5),
        max_retries=_env_int("SITECHAT_EMBEDDING_MAX_RETRIES", 3),
        rate_limit_delay=_env_float("SITECHAT_EMBEDDING_RATE_DELAY", 0.5),
        retry_backoff_seconds=_env_float("SITECHAT_RETRY_BACKOFF", 60.0),
        stale_after_seconds=_env_float("SITECHAT_STALE_AFTER", 600.0),
    )
    if queue.max_retries < 1:
        raise ValueError("SITECHAT_EMBEDDING_MAX_RETRIES must be >= 1")

    retrieval = RetrievalSettings(
        similarity_threshold=_env_float("SITECHAT_SIMILARITY_THRESHOLD", 0.7),
        site_base_url=os.getenv("SITECHAT_SITE_URL", "").rstrip("/"),
    )

    return Settings(embedding=embedding, generation=generation, queue=queue, retrieval=retrieval)


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
