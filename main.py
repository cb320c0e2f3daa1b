# FILE: main.py
"""
SiteChat Backend - FastAPI Application
Version: 0.3.0

Features:
- Site chat assistant answering only from published articles
- Hybrid retrieval: vector similarity with keyword fallback
- Durable embedding queue with retry, backoff and atomic claims
- Queue monitor endpoints for the admin dashboard
"""
import os
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

# Load .env FIRST before any other imports that might need env vars
load_dotenv()

from sitechat import __version__
from sitechat.config import get_settings
from sitechat.db import init_db
from sitechat.embeddings.router import router as embeddings_router
from sitechat.providers import is_provider_available
from sitechat.rag.router import router as chat_router

logging.basicConfig(
    level=os.getenv("SITECHAT_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="SiteChat",
    version=__version__,
    description="Retrieval-augmented chat assistant for a content site",
)

# ====== CORS ======

_cors_origins = os.getenv("SITECHAT_CORS_ORIGINS", "")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in _cors_origins.split(",") if o.strip()] or [
        "http://localhost:5173",
        "http://localhost:8000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:8000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ====== STARTUP ======

@app.on_event("startup")
def on_startup():
    os.makedirs("data", exist_ok=True)
    init_db()

    settings = get_settings()

    # Verify provider configuration
    print("[startup] Checking providers...")
    for kind, provider, impact in (
        ("embedding", settings.embedding, "chat will use keyword search only"),
        ("generation", settings.generation, "chat answers will fail"),
    ):
        if is_provider_available(provider):
            print(f"[startup] {kind}: [OK] {provider.provider_id} / {provider.model}")
        else:
            print(f"[startup] {kind}: [X] {provider.provider_id} NOT AVAILABLE - {impact}")

    print(f"[startup] Similarity threshold: {settings.retrieval.similarity_threshold}")
    print(f"[startup] Queue: batch={settings.queue.batch_size} max_retries={settings.queue.max_retries}")
    if not settings.retrieval.site_base_url:
        print("[startup] SITECHAT_SITE_URL not set - references will use relative URLs")


# ====== ROUTERS ======

app.include_router(chat_router)
app.include_router(embeddings_router)


@app.get("/health")
def health():
    return {"status": "ok", "version": __version__}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=os.getenv("SITECHAT_HOST", "127.0.0.1"),
        port=int(os.getenv("SITECHAT_PORT", "8000")),
        reload=False,
    )
