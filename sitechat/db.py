# FILE: sitechat/db.py
import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

# Database path: ./data/sitechat.db relative to project root
# Override with SITECHAT_DATABASE_URL env var (e.g. a Postgres DSN)
DATABASE_URL = os.getenv("SITECHAT_DATABASE_URL", "sqlite:///./data/sitechat.db")


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}  # Required for SQLite
    return {}


engine = create_engine(
    DATABASE_URL,
    connect_args=_connect_args(DATABASE_URL),
    echo=False,  # Set True to log SQL statements for debugging
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency that yields a DB session and closes it after the request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create all tables. Call once at startup."""
    # Import models so Base.metadata knows about them
    from sitechat.articles import models as article_models  # noqa: F401
    from sitechat.embeddings import models as queue_models  # noqa: F401
    Base.metadata.create_all(bind=engine)
