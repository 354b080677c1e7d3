"""Background job for the original delivery attempt of an email.

Callers enqueue ``send_email_job`` on the default queue. Failed sends are
handed to the reliable delivery engine as attempt 1 and continue in
``core.jobs.retry_jobs``.
"""

from typing import Any

import structlog
from rq import get_current_job

from core.logging import bind_job_context
from core.services.engine_factory import build_engine

logger = structlog.get_logger(__name__)


def send_email_job(
    recipient_address: str,
    subject: str,
    message_type: str,
    payload: dict[str, Any] | None = None,
    tags: dict[str, Any] | None = None,
    recipient_user_id: str | None = None,
    category: str = "default",
) -> str:
    """Send an email and enter the retry lifecycle on failure.

    This job is executed by RQ workers. Send failures never fail the job;
    only storage failures (the message could not be recorded anywhere) do,
    leaving it in RQ's failed job registry.

    Args:
        recipient_address: Recipient email address.
        subject: Email subject line.
        message_type: Template identifier.
        payload: Template context.
        tags: Observability tags.
        recipient_user_id: Optional recipient user ID.
        category: Delivery category selecting the retry policy.

    Returns:
        The DeliveryOutcome value.
    """
    job = get_current_job()

    with bind_job_context(
        job.id if job else None,
        message_type=message_type,
        category=category,
    ):
        engine = build_engine(category)
        outcome = engine.deliver(
            recipient_address=recipient_address,
            subject=subject,
            message_type=message_type,
            payload=payload,
            tags=tags,
            recipient_user_id=recipient_user_id,
        )

        logger.info(
            "send_email_job_completed",
            recipient_address=recipient_address,
            outcome=outcome.value,
        )
        return outcome.value
