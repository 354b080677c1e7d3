"""Create retry_queue, dead_letter_queue and retry_metric_events tables."""

import uuid

import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="RetryRecord",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "recipient_address",
                    models.CharField(
                        help_text="Email address the message is sent to",
                        max_length=255,
                    ),
                ),
                (
                    "recipient_user_id",
                    models.CharField(
                        blank=True,
                        help_text="Recipient user ID, if known",
                        max_length=64,
                        null=True,
                    ),
                ),
                (
                    "subject",
                    models.CharField(help_text="Email subject line", max_length=500),
                ),
                (
                    "message_type",
                    models.CharField(
                        help_text="Template/kind identifier of the message",
                        max_length=100,
                    ),
                ),
                (
                    "category",
                    models.CharField(
                        default="default",
                        help_text="Delivery category selecting the retry policy",
                        max_length=50,
                    ),
                ),
                (
                    "payload",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Template variables for re-rendering the message",
                    ),
                ),
                (
                    "tags",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Observability tags forwarded to the send client",
                    ),
                ),
                (
                    "attempt_count",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Number of failed delivery attempts so far",
                    ),
                ),
                (
                    "last_error",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Error message of the most recent failure",
                    ),
                ),
                (
                    "next_retry_at",
                    models.DateTimeField(
                        help_text="When the next delivery attempt is due",
                    ),
                ),
                (
                    "original_send_time",
                    models.DateTimeField(
                        help_text="When the message was first handed to the engine",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True, help_text="When the record was created"
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True, help_text="When the record was last updated"
                    ),
                ),
            ],
            options={
                "db_table": "retry_queue",
                "ordering": ["next_retry_at"],
                "indexes": [
                    models.Index(
                        fields=["next_retry_at"], name="retry_queue_next_retry_idx"
                    ),
                    models.Index(
                        fields=["attempt_count"], name="retry_queue_attempt_idx"
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("recipient_address", "message_type"),
                        name="retry_queue_recipient_message_type_uniq",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="DeadLetterRecord",
            fields=[
                (
                    "dead_letter_id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for the dead letter record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("recipient_address", models.CharField(max_length=255)),
                (
                    "recipient_user_id",
                    models.CharField(blank=True, max_length=64, null=True),
                ),
                ("subject", models.CharField(max_length=500)),
                ("message_type", models.CharField(max_length=100)),
                ("category", models.CharField(default="default", max_length=50)),
                ("payload", models.JSONField(blank=True, default=dict)),
                ("tags", models.JSONField(blank=True, default=dict)),
                (
                    "final_error",
                    models.TextField(
                        help_text="Error that caused the message to be dead-lettered"
                    ),
                ),
                ("attempt_count", models.PositiveIntegerField(default=0)),
                (
                    "failed_at",
                    models.DateTimeField(
                        help_text="When the message was dead-lettered"
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "db_table": "dead_letter_queue",
                "ordering": ["-failed_at"],
                "indexes": [
                    models.Index(
                        fields=["-failed_at"], name="dead_letter_failed_at_idx"
                    ),
                    models.Index(
                        fields=["recipient_address", "message_type"],
                        name="dead_letter_recipient_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="RetryMetricEvent",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "metric_type",
                    models.CharField(
                        choices=[("success", "success"), ("failed", "failed")],
                        max_length=10,
                    ),
                ),
                ("attempt_count", models.PositiveIntegerField()),
                (
                    "created_at",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
            ],
            options={
                "db_table": "retry_metric_events",
                "indexes": [
                    models.Index(
                        fields=["created_at"], name="retry_metric_created_idx"
                    ),
                ],
            },
        ),
    ]
