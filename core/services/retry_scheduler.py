"""Delayed-job scheduling of retry attempts on RQ."""

import hashlib
from datetime import timedelta

import django_rq
import structlog
from redis.exceptions import RedisError

from core.constants import PROCESS_RETRY_JOB
from core.exceptions import SchedulerError
from core.models import RetryRecord

logger = structlog.get_logger(__name__)


def build_job_id(record: RetryRecord, suffix: str = "") -> str:
    """Return the deterministic RQ job ID for a record's current attempt.

    The same (recipient, message type, attempt) always maps to the same job,
    so scheduling twice for one attempt replaces the job instead of adding a
    second timer.
    """
    key = f"{record.recipient_address}|{record.message_type}".encode()
    digest = hashlib.sha1(key, usedforsecurity=False).hexdigest()[:20]
    job_id = f"retry-{digest}-{record.attempt_count}"
    return f"{job_id}-{suffix}" if suffix else job_id


class RQRetryScheduler:
    """Push-based scheduler firing process_retry_job at next_retry_at.

    Delayed jobs go through rq-scheduler; immediate jobs (operator sweeps)
    go straight onto the queue.
    """

    def __init__(self, queue_name: str = "email-retry") -> None:
        """Initialize the scheduler.

        Args:
            queue_name: RQ queue (from RQ_QUEUES) the retry workers consume.
        """
        self.queue_name = queue_name

    def schedule(self, record: RetryRecord, delay: timedelta) -> str:
        """Schedule the next attempt for a stored record.

        Args:
            record: Stored retry record.
            delay: Delay until the attempt should run.

        Returns:
            The RQ job ID.

        Raises:
            SchedulerError: If Redis cannot be reached.
        """
        job_id = build_job_id(record)
        try:
            scheduler = django_rq.get_scheduler(self.queue_name)
            scheduler.enqueue_in(
                delay,
                PROCESS_RETRY_JOB,
                record.category,
                record.recipient_address,
                record.message_type,
                record.attempt_count,
                job_id=job_id,
            )
        except RedisError as e:
            raise SchedulerError(f"Failed to schedule retry job {job_id}: {e}") from e

        logger.debug(
            "retry_job_scheduled",
            job_id=job_id,
            delay_seconds=delay.total_seconds(),
        )
        return job_id

    def schedule_now(self, record: RetryRecord) -> str:
        """Queue an attempt for immediate execution, bypassing the delay.

        Raises:
            SchedulerError: If Redis cannot be reached.
        """
        job_id = build_job_id(record, suffix="sweep")
        try:
            queue = django_rq.get_queue(self.queue_name)
            queue.enqueue(
                PROCESS_RETRY_JOB,
                record.category,
                record.recipient_address,
                record.message_type,
                record.attempt_count,
                job_id=job_id,
            )
        except RedisError as e:
            raise SchedulerError(f"Failed to queue retry job {job_id}: {e}") from e
        return job_id
