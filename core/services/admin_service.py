"""Admin service for operator actions on the retry and dead letter queues."""

from typing import Any
from uuid import UUID

import structlog

from core.constants import DEFAULT_DEAD_LETTER_PAGE_SIZE, DEFAULT_SWEEP_LIMIT
from core.repositories import DeadLetterStore
from core.services.engine_factory import build_engine, build_metrics

logger = structlog.get_logger(__name__)


class AdminService:
    """Service for operator-triggered recovery and inspection.

    Provides high-level API for the operator surface: dead letter review and
    replay, retry statistics, sweeps and purges. Engines are built per call
    so settings changes apply without a restart.
    """

    def __init__(self, dead_letter_store: DeadLetterStore | None = None) -> None:
        self.dead_letter_store = dead_letter_store or DeadLetterStore()

    def list_dead_letters(
        self,
        limit: int = DEFAULT_DEAD_LETTER_PAGE_SIZE,
        offset: int = 0,
    ) -> dict[str, Any]:
        """List dead letter records, newest first.

        Args:
            limit: Page size
            offset: Number of records to skip

        Returns:
            Dict with results, total, limit and offset.
        """
        results = self.dead_letter_store.list(limit=limit, offset=offset)
        total = self.dead_letter_store.count()

        logger.info(
            "dead_letters_listed",
            returned=len(results),
            total=total,
            limit=limit,
            offset=offset,
        )

        return {
            "results": results,
            "total": total,
            "limit": limit,
            "offset": offset,
        }

    def replay_dead_letters(self, dead_letter_ids: list[UUID | str]) -> dict[str, Any]:
        """Re-inject dead letters into the retry queue.

        Returns:
            Dict with the replayed, not_found and failed IDs.
        """
        logger.info(
            "dead_letter_replay_requested",
            requested=len(dead_letter_ids),
        )
        return build_engine().replay(dead_letter_ids)

    def get_retry_stats(self) -> dict[str, Any]:
        """Get retry queue statistics.

        Returns:
            Dict containing:
            - total_in_queue: Pending retry records
            - by_attempt_count: Pending records per attempt count
            - oldest_retry: Earliest pending next_retry_at
            - retry_rate: Retry success percentage over the trailing window
            - dead_letter_total: Records in the dead letter queue
            - dead_lettered_today: Messages dead-lettered in the last day
        """
        return build_metrics().stats()

    def sweep_retry_queue(
        self,
        immediate: bool = False,
        limit: int = DEFAULT_SWEEP_LIMIT,
    ) -> dict[str, Any]:
        """Queue pending retries for immediate execution.

        Args:
            immediate: Also queue records that are not yet due
            limit: Maximum number of records to queue

        Returns:
            Dict with scheduled_count, immediate and message.
        """
        scheduled_count = build_engine().sweep(immediate=immediate, limit=limit)

        scope = "pending" if immediate else "due"
        return {
            "scheduled_count": scheduled_count,
            "immediate": immediate,
            "message": f"Queued {scheduled_count} {scope} retries for processing",
        }

    def purge_retry_record(
        self, recipient_address: str, message_type: str
    ) -> dict[str, Any]:
        """Drop one pending retry.

        Returns:
            Dict with removed, recipient_address and message_type.
        """
        removed = build_engine().purge_record(recipient_address, message_type)
        return {
            "removed": removed,
            "recipient_address": recipient_address,
            "message_type": message_type,
        }


# Singleton instance
admin_service = AdminService()
