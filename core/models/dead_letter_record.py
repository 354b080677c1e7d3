"""DeadLetterRecord model for messages the engine gave up on.

Rows are written once and never updated. The only deletion path is an
operator-triggered replay that re-injects the message as a fresh retry.
"""

import uuid
from typing import ClassVar

from django.db import models


class DeadLetterRecord(models.Model):
    """Terminal record of a permanently failed message.

    Attributes:
        dead_letter_id: Unique identifier used by operators for replay.
        recipient_address: Email address the message was sent to.
        recipient_user_id: Optional ID of the recipient in the user service.
        subject: Email subject line.
        message_type: Template/kind identifier of the message.
        category: Delivery category the message belonged to.
        payload: Template variables needed to re-render the message.
        tags: Observability tags of the original send.
        final_error: Error that caused the message to be dead-lettered.
        attempt_count: Attempt count when the message was dead-lettered.
        failed_at: When the message was dead-lettered.
        created_at: When the record was written.
    """

    dead_letter_id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the dead letter record",
    )
    recipient_address = models.CharField(max_length=255)
    recipient_user_id = models.CharField(max_length=64, null=True, blank=True)
    subject = models.CharField(max_length=500)
    message_type = models.CharField(max_length=100)
    category = models.CharField(max_length=50, default="default")
    payload = models.JSONField(default=dict, blank=True)
    tags = models.JSONField(default=dict, blank=True)
    final_error = models.TextField(
        help_text="Error that caused the message to be dead-lettered",
    )
    attempt_count = models.PositiveIntegerField(default=0)
    failed_at = models.DateTimeField(
        help_text="When the message was dead-lettered",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        """Django model metadata."""

        db_table = "dead_letter_queue"
        ordering: ClassVar[list[str]] = ["-failed_at"]
        indexes: ClassVar[list] = [
            models.Index(fields=["-failed_at"], name="dead_letter_failed_at_idx"),
            models.Index(
                fields=["recipient_address", "message_type"],
                name="dead_letter_recipient_idx",
            ),
        ]

    def __str__(self) -> str:
        """Return string representation of the dead letter record."""
        return f"{self.message_type} to {self.recipient_address} (dead-lettered)"

    def __repr__(self) -> str:
        """Return detailed representation of the dead letter record."""
        return (
            f"<DeadLetterRecord(id={self.dead_letter_id}, "
            f"recipient={self.recipient_address}, "
            f"type={self.message_type})>"
        )
