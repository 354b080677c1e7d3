"""Unit tests for RetryStore."""

from datetime import timedelta
from unittest.mock import patch

from django.db import DatabaseError
from django.utils import timezone

from core.exceptions import MaxAttemptsReachedError, StorageError
from core.models import RetryRecord
from core.repositories import RetryStore
from tests.base import BaseUnitTest
from tests.factories import create_retry_record, retry_record_fields


class TestRetryStoreEnqueue(BaseUnitTest):
    """Tests for the atomic upsert."""

    def setUp(self):
        """Set up test fixtures."""
        super().setUp()
        self.store = RetryStore(max_attempts=5)

    def test_enqueue_creates_record(self):
        """Test that a first failure creates one record."""
        fields = retry_record_fields(attempt_count=1)

        stored = self.store.enqueue(RetryRecord(**fields))

        self.assertIsNotNone(stored.pk)
        self.assertEqual(stored.attempt_count, 1)
        self.assertEqual(RetryRecord.objects.count(), 1)

    def test_enqueue_twice_keeps_one_record_with_latest_state(self):
        """Test that enqueue is idempotent per (recipient, message type)."""
        fields = retry_record_fields(attempt_count=1)
        later = timezone.now() + timedelta(minutes=5)

        self.store.enqueue(RetryRecord(**fields))
        self.store.enqueue(
            RetryRecord(
                **{
                    **fields,
                    "attempt_count": 2,
                    "last_error": "Service unavailable",
                    "next_retry_at": later,
                }
            )
        )

        records = RetryRecord.objects.filter(
            recipient_address=fields["recipient_address"],
            message_type=fields["message_type"],
        )
        self.assertEqual(records.count(), 1)
        record = records.get()
        self.assertEqual(record.attempt_count, 2)
        self.assertEqual(record.last_error, "Service unavailable")
        self.assertEqual(record.next_retry_at, later)

    def test_upsert_keeps_original_send_time(self):
        """Test that original_send_time keeps its first value."""
        fields = retry_record_fields()
        first = self.store.enqueue(RetryRecord(**fields))

        second = self.store.enqueue(
            RetryRecord(
                **{
                    **fields,
                    "attempt_count": 2,
                    "original_send_time": timezone.now() + timedelta(hours=1),
                }
            )
        )

        self.assertEqual(second.original_send_time, first.original_send_time)

    def test_different_message_types_are_separate_records(self):
        """Test that the key includes the message type."""
        fields = retry_record_fields()
        self.store.enqueue(RetryRecord(**fields))
        self.store.enqueue(RetryRecord(**{**fields, "message_type": "welcome"}))

        self.assertEqual(RetryRecord.objects.count(), 2)

    def test_enqueue_rejects_record_at_max_attempts(self):
        """Test that nothing is stored once max_attempts is reached."""
        with self.assertRaises(MaxAttemptsReachedError) as ctx:
            self.store.enqueue(RetryRecord(**retry_record_fields(attempt_count=5)))

        self.assertEqual(ctx.exception.attempt_count, 5)
        self.assertEqual(ctx.exception.max_attempts, 5)
        self.assertEqual(RetryRecord.objects.count(), 0)

    def test_enqueue_accepts_replayed_record(self):
        """Test that attempt_count 0 is accepted."""
        stored = self.store.enqueue(RetryRecord(**retry_record_fields(attempt_count=0)))

        self.assertEqual(stored.attempt_count, 0)

    def test_enqueue_database_error_raises_storage_error(self):
        """Test that database failures surface as StorageError."""
        with (
            patch.object(
                RetryRecord.objects, "bulk_create", side_effect=DatabaseError("down")
            ),
            self.assertRaises(StorageError) as ctx,
        ):
            self.store.enqueue(RetryRecord(**retry_record_fields()))

        self.assertEqual(ctx.exception.operation, "enqueue")


class TestRetryStoreQueries(BaseUnitTest):
    """Tests for reads, removal and summaries."""

    def setUp(self):
        """Set up test fixtures."""
        super().setUp()
        self.store = RetryStore(max_attempts=5)
        self.now = timezone.now()

    def test_get_returns_record_or_none(self):
        """Test lookup by key."""
        record = create_retry_record()

        self.assertEqual(
            self.store.get(record.recipient_address, record.message_type).pk,
            record.pk,
        )
        self.assertIsNone(self.store.get("nobody@example.com", record.message_type))

    def test_dequeue_due_returns_due_records_oldest_first(self):
        """Test that only due records are returned, in next_retry_at order."""
        later_due = create_retry_record(next_retry_at=self.now - timedelta(seconds=10))
        earlier_due = create_retry_record(
            next_retry_at=self.now - timedelta(minutes=10)
        )
        create_retry_record(next_retry_at=self.now + timedelta(minutes=10))

        due = self.store.dequeue_due(self.now)

        self.assertEqual([r.pk for r in due], [earlier_due.pk, later_due.pk])

    def test_dequeue_due_without_cutoff_returns_everything(self):
        """Test that due_before=None selects all pending records."""
        create_retry_record(next_retry_at=self.now + timedelta(hours=1))
        create_retry_record(next_retry_at=self.now - timedelta(hours=1))

        self.assertEqual(len(self.store.dequeue_due(None)), 2)

    def test_dequeue_due_respects_limit_and_category(self):
        """Test limit and category filters."""
        for _ in range(3):
            create_retry_record(next_retry_at=self.now - timedelta(minutes=1))
        create_retry_record(
            category="digest", next_retry_at=self.now - timedelta(minutes=1)
        )

        self.assertEqual(len(self.store.dequeue_due(self.now, limit=2)), 2)
        digest = self.store.dequeue_due(self.now, category="digest")
        self.assertEqual([r.category for r in digest], ["digest"])

    def test_remove(self):
        """Test that remove reports whether a record existed."""
        record = create_retry_record()

        self.assertTrue(self.store.remove(record.recipient_address, record.message_type))
        self.assertFalse(
            self.store.remove(record.recipient_address, record.message_type)
        )
        self.assertEqual(RetryRecord.objects.count(), 0)

    def test_queue_summary(self):
        """Test total, oldest retry and attempt breakdown."""
        oldest = self.now - timedelta(minutes=30)
        create_retry_record(attempt_count=1, next_retry_at=oldest)
        create_retry_record(attempt_count=1)
        create_retry_record(attempt_count=3)

        summary = self.store.queue_summary()

        self.assertEqual(summary["total"], 3)
        self.assertEqual(summary["oldest_retry"], oldest)
        self.assertEqual(summary["by_attempt_count"], {1: 2, 3: 1})

    def test_queue_summary_empty(self):
        """Test the summary of an empty queue."""
        self.assertEqual(
            self.store.queue_summary(),
            {"total": 0, "oldest_retry": None, "by_attempt_count": {}},
        )
