"""Background jobs run by the email-retry queue workers."""

import structlog
from rq import get_current_job

from core.logging import bind_job_context
from core.services.engine_factory import build_engine, build_metrics

logger = structlog.get_logger(__name__)


def process_retry_job(
    category: str,
    recipient_address: str,
    message_type: str,
    attempt_count: int,
) -> str:
    """Run one retry attempt for a pending RetryRecord.

    Scheduled by RQRetryScheduler at the record's next_retry_at. The record is
    read fresh from the store; a job for an attempt that was superseded or
    already resolved is skipped.

    Args:
        category: Delivery category of the record.
        recipient_address: Recipient of the record.
        message_type: Message type of the record.
        attempt_count: Attempt count the job was scheduled for.

    Returns:
        The DeliveryOutcome value.

    Raises:
        StorageError: If the stores fail; the record stays pending and RQ
            keeps the job in its failed registry.
    """
    job = get_current_job()

    with bind_job_context(
        job.id if job else None,
        message_type=message_type,
        category=category,
        attempt_count=attempt_count,
    ):
        outcome = build_engine(category).process(
            recipient_address, message_type, attempt_count
        )

        logger.info(
            "retry_job_completed",
            recipient_address=recipient_address,
            outcome=outcome.value,
        )
        return outcome.value


def purge_retry_metrics_job() -> int:
    """Delete retry metric events older than the retention window.

    Returns:
        Number of deleted events.
    """
    job = get_current_job()

    with bind_job_context(job.id if job else None):
        return build_metrics().purge_expired()
