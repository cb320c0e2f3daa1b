# FILE: tests/test_monitor.py
"""
Tests for sitechat/embeddings/monitor.py
Read-only queue statistics and item listing.
"""

import pytest

from sitechat.embeddings import monitor, queue
from sitechat.errors import NotFoundError, ValidationError


class TestQueueStats:

    def test_empty_queue(self, db_session):
        stats = monitor.get_queue_stats(db_session)
        assert (stats.pending, stats.processing, stats.completed, stats.failed) == (0, 0, 0, 0)
        assert stats.total == 0
        assert stats.completion_percentage == 0.0

    def test_counts_and_percentage(self, db_session, make_article):
        items = [queue.enqueue(db_session, make_article().id) for _ in range(3)]
        queue.mark_completed(db_session, items[0])
        queue.mark_failed(db_session, items[1], "x")

        stats = monitor.get_queue_stats(db_session)
        assert stats.pending == 1
        assert stats.completed == 1
        assert stats.failed == 1
        assert stats.processing == 0
        assert stats.total == 3
        assert stats.completion_percentage == 33.3


class TestListing:

    def test_joins_article_and_orders_newest_first(self, db_session, make_article):
        first = queue.enqueue(db_session, make_article(title="First").id)
        second = queue.enqueue(db_session, make_article(title="Second").id)

        items = monitor.list_queue_items(db_session)
        assert [i.id for i in items] == [second.id, first.id]
        assert items[0].article_title == "Second"
        assert items[0].article_status == "published"

    def test_status_filter(self, db_session, make_article):
        a = queue.enqueue(db_session, make_article().id)
        queue.enqueue(db_session, make_article().id)
        queue.mark_failed(db_session, a, "boom")

        failed = monitor.list_queue_items(db_session, status="failed")
        assert [i.id for i in failed] == [a.id]
        assert failed[0].error_message == "boom"

    def test_invalid_status(self, db_session):
        with pytest.raises(ValidationError):
            monitor.list_queue_items(db_session, status="stuck")

    def test_camel_case_on_the_wire(self, db_session, make_article):
        queue.enqueue(db_session, make_article().id)
        dumped = monitor.list_queue_items(db_session)[0].model_dump(by_alias=True)
        assert "articleId" in dumped
        assert "retryCount" in dumped


class TestRetryItem:

    def test_retry_failed(self, db_session, make_article):
        item = queue.enqueue(db_session, make_article(title="Retry me").id)
        queue.mark_failed(db_session, item, "x")
        out = monitor.retry_item(db_session, item.article_id, max_retries=3)
        assert out.status == "pending"
        assert out.article_title == "Retry me"

    def test_retry_nothing_failed(self, db_session, make_article):
        with pytest.raises(NotFoundError):
            monitor.retry_item(db_session, make_article().id)
