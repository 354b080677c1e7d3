"""Repository for the retry_queue table."""

from datetime import datetime

from django.db import DatabaseError, transaction
from django.db.models import Count, Min

import structlog

from core.exceptions import MaxAttemptsReachedError, StorageError
from core.models import RetryRecord

logger = structlog.get_logger(__name__)

# Columns refreshed when a retry collapses into an existing record.
# created_at and original_send_time keep their first-seen values.
UPSERT_FIELDS = [
    "recipient_user_id",
    "subject",
    "category",
    "payload",
    "tags",
    "attempt_count",
    "last_error",
    "next_retry_at",
    "updated_at",
]


class RetryStore:
    """Durable record of in-flight retries, one per (recipient, message type).

    All reads go to the database; nothing is cached between calls since
    workers for the same key may run in other processes.
    """

    def __init__(self, max_attempts: int) -> None:
        """Initialize the store.

        Args:
            max_attempts: Policy maximum; records at or above it are rejected.
        """
        self.max_attempts = max_attempts

    def enqueue(self, record: RetryRecord) -> RetryRecord:
        """Insert or update the pending retry for the record's key.

        Uses a single INSERT ... ON CONFLICT (recipient_address, message_type)
        DO UPDATE statement, so concurrent failures for the same message
        leave exactly one row holding the latest attempt.

        Args:
            record: Unsaved record carrying the new attempt state.

        Returns:
            The stored record as read back after the upsert.

        Raises:
            MaxAttemptsReachedError: If attempt_count >= max_attempts. Nothing
                is written; the caller must dead-letter the message.
            StorageError: If the database write fails.
        """
        if record.attempt_count >= self.max_attempts:
            raise MaxAttemptsReachedError(record.attempt_count, self.max_attempts)

        try:
            with transaction.atomic():
                RetryRecord.objects.bulk_create(
                    [record],
                    update_conflicts=True,
                    unique_fields=["recipient_address", "message_type"],
                    update_fields=UPSERT_FIELDS,
                )
                return RetryRecord.objects.get(
                    recipient_address=record.recipient_address,
                    message_type=record.message_type,
                )
        except DatabaseError as e:
            logger.critical(
                "retry_store_enqueue_failed",
                recipient_address=record.recipient_address,
                message_type=record.message_type,
                attempt_count=record.attempt_count,
                error=str(e),
            )
            raise StorageError(
                f"Failed to enqueue retry for {record.recipient_address}: {e}",
                operation="enqueue",
            ) from e

    def get(self, recipient_address: str, message_type: str) -> RetryRecord | None:
        """Read the pending retry for a key.

        Returns:
            The record, or None if no retry is pending.
        """
        try:
            return RetryRecord.objects.filter(
                recipient_address=recipient_address,
                message_type=message_type,
            ).first()
        except DatabaseError as e:
            raise StorageError(
                f"Failed to read retry for {recipient_address}: {e}",
                operation="get",
            ) from e

    def dequeue_due(
        self,
        due_before: datetime | None,
        limit: int = 100,
        category: str | None = None,
    ) -> list[RetryRecord]:
        """List pending retries whose next_retry_at has passed.

        Used by polling sweeps. Records stay in the store; the worker removes
        them once the attempt resolves.

        Args:
            due_before: Cut-off time; None selects every pending record.
            limit: Maximum number of records to return.
            category: Restrict to one delivery category.

        Returns:
            Records ordered by next_retry_at, oldest first.
        """
        queryset = RetryRecord.objects.all()
        if due_before is not None:
            queryset = queryset.filter(next_retry_at__lte=due_before)
        if category is not None:
            queryset = queryset.filter(category=category)

        try:
            return list(queryset.order_by("next_retry_at")[:limit])
        except DatabaseError as e:
            raise StorageError(
                f"Failed to list due retries: {e}", operation="dequeue_due"
            ) from e

    def remove(self, recipient_address: str, message_type: str) -> bool:
        """Delete the pending retry for a key.

        Returns:
            True if a record was deleted.
        """
        try:
            deleted, _ = RetryRecord.objects.filter(
                recipient_address=recipient_address,
                message_type=message_type,
            ).delete()
        except DatabaseError as e:
            logger.critical(
                "retry_store_remove_failed",
                recipient_address=recipient_address,
                message_type=message_type,
                error=str(e),
            )
            raise StorageError(
                f"Failed to remove retry for {recipient_address}: {e}",
                operation="remove",
            ) from e
        return deleted > 0

    def queue_summary(self) -> dict:
        """Aggregate queue depth for statistics.

        Returns:
            Dict with total, oldest_retry and by_attempt_count.
        """
        try:
            totals = RetryRecord.objects.aggregate(
                total=Count("id"),
                oldest_retry=Min("next_retry_at"),
            )
            rows = (
                RetryRecord.objects.values("attempt_count")
                .annotate(count=Count("id"))
                .order_by("attempt_count")
            )
            by_attempt_count = {row["attempt_count"]: row["count"] for row in rows}
        except DatabaseError as e:
            raise StorageError(
                f"Failed to summarise retry queue: {e}", operation="summary"
            ) from e

        return {
            "total": totals["total"],
            "oldest_retry": totals["oldest_retry"],
            "by_attempt_count": by_attempt_count,
        }
