"""Repository for the dead_letter_queue table."""

from uuid import UUID

from django.db import DatabaseError

import structlog

from core.exceptions import DeadLetterNotFoundError, StorageError
from core.models import DeadLetterRecord

logger = structlog.get_logger(__name__)


class DeadLetterStore:
    """Append-only store of permanently failed messages.

    Records are never updated. delete() exists only for the replay path.
    """

    def append(self, record: DeadLetterRecord) -> DeadLetterRecord:
        """Insert a dead letter record.

        Raises:
            StorageError: If the insert fails. The caller decides whether to
                retry; a lost record makes the failure invisible.
        """
        try:
            record.save(force_insert=True)
        except DatabaseError as e:
            logger.error(
                "dead_letter_store_append_failed",
                dead_letter_id=str(record.dead_letter_id),
                recipient_address=record.recipient_address,
                message_type=record.message_type,
                error=str(e),
            )
            raise StorageError(
                f"Failed to append dead letter for {record.recipient_address}: {e}",
                operation="append",
            ) from e
        return record

    def list(self, limit: int = 100, offset: int = 0) -> list[DeadLetterRecord]:
        """Return dead letters ordered by failed_at, newest first."""
        try:
            return list(
                DeadLetterRecord.objects.order_by("-failed_at", "-created_at")[
                    offset : offset + limit
                ]
            )
        except DatabaseError as e:
            raise StorageError(
                f"Failed to list dead letters: {e}", operation="list"
            ) from e

    def count(self) -> int:
        """Return the number of dead letter records."""
        try:
            return DeadLetterRecord.objects.count()
        except DatabaseError as e:
            raise StorageError(
                f"Failed to count dead letters: {e}", operation="count"
            ) from e

    def get(self, dead_letter_id: UUID | str) -> DeadLetterRecord:
        """Read one dead letter record.

        Raises:
            DeadLetterNotFoundError: If no record has this ID.
        """
        try:
            return DeadLetterRecord.objects.get(dead_letter_id=dead_letter_id)
        except DeadLetterRecord.DoesNotExist as e:
            raise DeadLetterNotFoundError(dead_letter_id) from e
        except DatabaseError as e:
            raise StorageError(
                f"Failed to read dead letter {dead_letter_id}: {e}", operation="get"
            ) from e

    def delete(self, dead_letter_id: UUID | str) -> bool:
        """Delete one dead letter record after a successful replay.

        Returns:
            True if a record was deleted.
        """
        try:
            deleted, _ = DeadLetterRecord.objects.filter(
                dead_letter_id=dead_letter_id
            ).delete()
        except DatabaseError as e:
            raise StorageError(
                f"Failed to delete dead letter {dead_letter_id}: {e}",
                operation="delete",
            ) from e
        return deleted > 0
