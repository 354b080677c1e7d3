"""RetryRecord model for messages awaiting another delivery attempt.

One row exists per (recipient_address, message_type). Every write goes
through an INSERT ... ON CONFLICT DO UPDATE on that pair, so concurrent
failures for the same logical message collapse into a single pending retry.
"""

from typing import ClassVar

from django.db import models


class RetryRecord(models.Model):
    """Pending retry for a message whose last send failed transiently.

    Attributes:
        recipient_address: Email address the message is sent to.
        recipient_user_id: Optional ID of the recipient in the user service.
        subject: Email subject line.
        message_type: Template/kind identifier of the message.
        category: Delivery category selecting the retry policy.
        payload: Template variables needed to re-render the message.
        tags: Observability tags forwarded to the send client.
        attempt_count: Failed attempts so far (0 only after a manual replay).
        last_error: Error message of the most recent failure.
        next_retry_at: When the next attempt is due.
        original_send_time: When the message was first handed to the engine.
        created_at: When the record was created.
        updated_at: When the record was last updated.
    """

    recipient_address = models.CharField(
        max_length=255,
        help_text="Email address the message is sent to",
    )
    recipient_user_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        help_text="Recipient user ID, if known",
    )
    subject = models.CharField(
        max_length=500,
        help_text="Email subject line",
    )
    message_type = models.CharField(
        max_length=100,
        help_text="Template/kind identifier of the message",
    )
    category = models.CharField(
        max_length=50,
        default="default",
        help_text="Delivery category selecting the retry policy",
    )
    payload = models.JSONField(
        default=dict,
        blank=True,
        help_text="Template variables for re-rendering the message",
    )
    tags = models.JSONField(
        default=dict,
        blank=True,
        help_text="Observability tags forwarded to the send client",
    )
    attempt_count = models.PositiveIntegerField(
        default=1,
        help_text="Number of failed delivery attempts so far",
    )
    last_error = models.TextField(
        blank=True,
        default="",
        help_text="Error message of the most recent failure",
    )
    next_retry_at = models.DateTimeField(
        help_text="When the next delivery attempt is due",
    )
    original_send_time = models.DateTimeField(
        help_text="When the message was first handed to the engine",
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        help_text="When the record was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the record was last updated",
    )

    class Meta:
        """Django model metadata."""

        db_table = "retry_queue"
        ordering: ClassVar[list[str]] = ["next_retry_at"]
        constraints: ClassVar[list] = [
            models.UniqueConstraint(
                fields=["recipient_address", "message_type"],
                name="retry_queue_recipient_message_type_uniq",
            ),
        ]
        indexes: ClassVar[list] = [
            models.Index(fields=["next_retry_at"], name="retry_queue_next_retry_idx"),
            models.Index(fields=["attempt_count"], name="retry_queue_attempt_idx"),
        ]

    def __str__(self) -> str:
        """Return string representation of the retry record."""
        return f"{self.message_type} to {self.recipient_address}"

    def __repr__(self) -> str:
        """Return detailed representation of the retry record."""
        return (
            f"<RetryRecord(recipient={self.recipient_address}, "
            f"type={self.message_type}, "
            f"attempt={self.attempt_count}, "
            f"next_retry_at={self.next_retry_at})>"
        )
