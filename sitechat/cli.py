# FILE: sitechat/cli.py
"""
Command-line entry for scheduled and admin queue operations.

Usage:
    python -m sitechat.cli process-queue [--batch-size N]
    python -m sitechat.cli queue-stats
    python -m sitechat.cli list-queue [--status failed] [--limit 20]
    python -m sitechat.cli retry ARTICLE_ID
    python -m sitechat.cli trigger ARTICLE_ID
    python -m sitechat.cli init-db
"""

import argparse
import logging
import os
import sys

from dotenv import load_dotenv

# Load .env before sitechat imports read the environment
load_dotenv()

from sitechat.config import get_settings
from sitechat.db import SessionLocal, init_db
from sitechat.embeddings import monitor, queue
from sitechat.embeddings.processor import EmbeddingQueueProcessor
from sitechat.errors import NotFoundError, SiteChatError
from sitechat.providers import build_embedding_provider


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sitechat",
        description="SiteChat embedding queue tools",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("process-queue", help="Process one batch of pending embedding work")
    p.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Items to process (1-50, default from SITECHAT_EMBEDDING_BATCH_SIZE)",
    )

    sub.add_parser("queue-stats", help="Show queue counts per status")

    p = sub.add_parser("list-queue", help="List recent queue items")
    p.add_argument("--status", default=None, help="pending | processing | completed | failed")
    p.add_argument("--limit", type=int, default=20)

    p = sub.add_parser("retry", help="Return an article's failed item to pending")
    p.add_argument("article_id", type=int)

    p = sub.add_parser("trigger", help="Force re-embedding of a published article")
    p.add_argument("article_id", type=int)

    sub.add_parser("init-db", help="Create database tables")
    return parser


def _process_queue(db, args) -> int:
    settings = get_settings()
    processor = EmbeddingQueueProcessor(build_embedding_provider(settings.embedding), settings.queue)
    result = processor.process_batch(db, batch_size=args.batch_size)

    print("Embedding queue")
    print("=" * 50)
    print(f"  Processed: {result.processed}")
    print(f"  Skipped:   {result.skipped}")
    print(f"  Failed:    {result.failed}")
    if result.requeued or result.stale:
        print(f"  Auto-retried: {result.requeued}, timed out: {result.stale}")
    for err in result.errors:
        print(f"    - {err}")
    return 1 if result.failed else 0


def _queue_stats(db, args) -> int:
    stats = monitor.get_queue_stats(db)
    print(f"pending={stats.pending} processing={stats.processing} "
          f"completed={stats.completed} failed={stats.failed} "
          f"total={stats.total} ({stats.completion_percentage}% complete)")
    return 0


def _list_queue(db, args) -> int:
    items = monitor.list_queue_items(db, limit=args.limit, status=args.status)
    if not items:
        print("Queue is empty")
        return 0
    for item in items:
        line = f"#{item.id} article={item.article_id} [{item.status}] retries={item.retry_count} {item.article_title or ''}"
        if item.error_message:
            line += f" :: {item.error_message}"
        print(line)
    return 0


def _retry(db, args) -> int:
    item = monitor.retry_item(db, args.article_id, max_retries=get_settings().queue.max_retries)
    print(f"Queue item {item.id} for article {item.article_id} is {item.status}")
    return 0


def _trigger(db, args) -> int:
    article, item = queue.trigger_embedding(db, args.article_id)
    print(f"Queued '{article.title}' (article {article.id}) as item {item.id}")
    return 0


COMMANDS = {
    "process-queue": _process_queue,
    "queue-stats": _queue_stats,
    "list-queue": _list_queue,
    "retry": _retry,
    "trigger": _trigger,
}


def main(argv=None) -> int:
    logging.basicConfig(
        level=os.getenv("SITECHAT_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = _build_parser().parse_args(argv)

    if args.command == "init-db":
        init_db()
        print("Database tables created")
        return 0

    db = SessionLocal()
    try:
        return COMMANDS[args.command](db, args)
    except NotFoundError as e:
        print(f"Not found: {e}")
        return 2
    except SiteChatError as e:
        print(f"Error: {e}")
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
