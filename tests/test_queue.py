# FILE: tests/test_queue.py
"""
Tests for sitechat/embeddings/queue.py
Queue store - enqueue merging, atomic claim, state transitions, retry.
"""

from datetime import datetime, timedelta

import pytest

from sitechat.embeddings import queue
from sitechat.embeddings.models import EmbeddingQueueItem, QueueStatus
from sitechat.errors import NotFoundError


def _count(db, article_id):
    return db.query(EmbeddingQueueItem).filter(EmbeddingQueueItem.article_id == article_id).count()


class TestEnqueue:
    """Duplicate enqueues merge into the open item."""

    def test_creates_pending_item(self, db_session, make_article):
        article = make_article()
        item = queue.enqueue(db_session, article.id)
        assert item.status == QueueStatus.PENDING.value
        assert item.retry_count == 0
        assert item.force_update is False

    def test_second_enqueue_is_merged(self, db_session, make_article):
        article = make_article()
        first = queue.enqueue(db_session, article.id)
        second = queue.enqueue(db_session, article.id)
        assert first.id == second.id
        assert _count(db_session, article.id) == 1

    def test_force_flag_is_ored(self, db_session, make_article):
        article = make_article()
        queue.enqueue(db_session, article.id, force_update=False)
        merged = queue.enqueue(db_session, article.id, force_update=True)
        assert merged.force_update is True
        again = queue.enqueue(db_session, article.id, force_update=False)
        assert again.force_update is True

    def test_merge_reopens_failed_item(self, db_session, make_article):
        article = make_article()
        item = queue.enqueue(db_session, article.id)
        queue.claim(db_session, item.id)
        queue.mark_failed(db_session, item, "boom")
        queue.mark_failed(db_session, item, "boom")

        reopened = queue.enqueue(db_session, article.id, force_update=True)
        assert reopened.id == item.id
        assert reopened.status == QueueStatus.PENDING.value
        assert reopened.retry_count == 0
        assert reopened.error_message is None
        assert reopened.force_update is True

    def test_completed_item_does_not_block_new_work(self, db_session, make_article):
        article = make_article()
        item = queue.enqueue(db_session, article.id)
        queue.mark_completed(db_session, item)
        fresh = queue.enqueue(db_session, article.id)
        assert fresh.id != item.id
        assert _count(db_session, article.id) == 2

    def test_unique_index_rejects_second_open_row(self, db_session, make_article):
        """The partial index backs the merge rule for racing writers."""
        from sqlalchemy.exc import IntegrityError

        article = make_article()
        queue.enqueue(db_session, article.id)
        db_session.add(EmbeddingQueueItem(article_id=article.id, status=QueueStatus.PENDING.value))
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()


class TestClaim:
    """Atomic pending -> processing."""

    def test_claim_succeeds_once(self, db_session, make_article):
        item = queue.enqueue(db_session, make_article().id)
        assert queue.claim(db_session, item.id) is True
        assert queue.claim(db_session, item.id) is False

        db_session.refresh(item)
        assert item.status == QueueStatus.PROCESSING.value
        assert item.processed_at is not None

    def test_two_sessions_race(self, session_factory, db_session, make_article):
        item = queue.enqueue(db_session, make_article().id)
        a, b = session_factory(), session_factory()
        try:
            results = [queue.claim(a, item.id), queue.claim(b, item.id)]
        finally:
            a.close()
            b.close()
        assert sorted(results) == [False, True]


class TestTransitions:

    def test_mark_failed_increments_retry(self, db_session, make_article):
        item = queue.enqueue(db_session, make_article().id)
        queue.claim(db_session, item.id)
        queue.mark_failed(db_session, item, "gemini error (429): quota")
        assert item.status == QueueStatus.FAILED.value
        assert item.retry_count == 1
        assert item.error_message == "gemini error (429): quota"

    def test_mark_completed_clears_force(self, db_session, make_article):
        item = queue.enqueue(db_session, make_article().id, force_update=True)
        queue.mark_completed(db_session, item)
        assert item.status == QueueStatus.COMPLETED.value
        assert item.force_update is False
        assert item.error_message is None

    def test_select_due_orders_oldest_first_and_respects_cap(self, db_session, make_article):
        a1, a2, a3 = make_article(), make_article(), make_article()
        i1 = queue.enqueue(db_session, a1.id)
        i2 = queue.enqueue(db_session, a2.id)
        i3 = queue.enqueue(db_session, a3.id)
        i3.retry_count = 3
        db_session.commit()

        due = queue.select_due(db_session, batch_size=10, max_retries=3)
        assert [i.id for i in due] == [i1.id, i2.id]

        assert len(queue.select_due(db_session, batch_size=1, max_retries=3)) == 1


class TestRetry:

    def test_retry_without_failed_item_raises(self, db_session, make_article):
        article = make_article()
        with pytest.raises(NotFoundError):
            queue.retry(db_session, article.id)

    def test_retry_keeps_count_below_cap(self, db_session, make_article):
        item = queue.enqueue(db_session, make_article().id)
        queue.mark_failed(db_session, item, "x")
        retried = queue.retry(db_session, item.article_id, max_retries=3)
        assert retried.status == QueueStatus.PENDING.value
        assert retried.retry_count == 1

    def test_retry_resets_capped_item(self, db_session, make_article):
        item = queue.enqueue(db_session, make_article().id)
        for _ in range(3):
            queue.mark_failed(db_session, item, "x")
        retried = queue.retry(db_session, item.article_id, max_retries=3)
        assert retried.status == QueueStatus.PENDING.value
        assert retried.retry_count == 0


class TestAutoRetry:

    def test_backoff_doubles(self):
        assert queue.backoff_delay(0, 60) == timedelta(0)
        assert queue.backoff_delay(1, 60) == timedelta(seconds=60)
        assert queue.backoff_delay(2, 60) == timedelta(seconds=120)
        assert queue.backoff_delay(3, 60) == timedelta(seconds=240)

    def test_requeue_waits_for_backoff(self, db_session, make_article):
        item = queue.enqueue(db_session, make_article().id)
        queue.mark_failed(db_session, item, "x")
        failed_at = item.processed_at

        assert queue.requeue_failed(db_session, 3, 60, now=failed_at + timedelta(seconds=30)) == 0
        assert queue.requeue_failed(db_session, 3, 60, now=failed_at + timedelta(seconds=61)) == 1
        db_session.refresh(item)
        assert item.status == QueueStatus.PENDING.value
        assert item.retry_count == 1

    def test_requeue_skips_capped_items(self, db_session, make_article):
        item = queue.enqueue(db_session, make_article().id)
        for _ in range(3):
            queue.mark_failed(db_session, item, "x")
        later = datetime.utcnow() + timedelta(days=1)
        assert queue.requeue_failed(db_session, 3, 0, now=later) == 0
        db_session.refresh(item)
        assert item.status == QueueStatus.FAILED.value


class TestStaleRecovery:

    def test_stale_processing_item_is_failed(self, db_session, make_article):
        item = queue.enqueue(db_session, make_article().id)
        queue.claim(db_session, item.id)
        db_session.refresh(item)

        later = item.processed_at + timedelta(seconds=601)
        assert queue.fail_stale(db_session, 600, now=later) == 1
        db_session.refresh(item)
        assert item.status == QueueStatus.FAILED.value
        assert item.retry_count == 1
        assert item.error_message == "Processing timed out"

    def test_recent_processing_item_untouched(self, db_session, make_article):
        item = queue.enqueue(db_session, make_article().id)
        queue.claim(db_session, item.id)
        assert queue.fail_stale(db_session, 600) == 0


class TestTriggerEmbedding:

    def test_trigger_published_article(self, db_session, make_article):
        article = make_article(title="Implants")
        found, item = queue.trigger_embedding(db_session, article.id)
        assert found.id == article.id
        assert item.force_update is True
        assert item.status == QueueStatus.PENDING.value

    def test_trigger_draft_raises(self, db_session, make_article):
        article = make_article(status="draft")
        with pytest.raises(NotFoundError):
            queue.trigger_embedding(db_session, article.id)

    def test_trigger_missing_raises(self, db_session):
        with pytest.raises(NotFoundError):
            queue.trigger_embedding(db_session, 999)
