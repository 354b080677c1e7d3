"""Test data builders for delivery models.

Each builder returns a saved model instance populated with Faker data;
keyword arguments override individual fields.
"""

from datetime import timedelta

from django.utils import timezone

from faker import Faker

from core.models import DeadLetterRecord, RetryMetricEvent, RetryRecord

fake = Faker()


def retry_record_fields(**overrides):
    """Return field values for an unsaved RetryRecord."""
    now = timezone.now()
    fields = {
        "recipient_address": fake.unique.email(),
        "recipient_user_id": str(fake.uuid4()),
        "subject": fake.sentence(nb_words=5),
        "message_type": "password_reset",
        "category": "default",
        "payload": {"username": fake.user_name(), "reset_url": fake.url()},
        "tags": {"campaign": fake.slug()},
        "attempt_count": 1,
        "last_error": "Connection timeout",
        "next_retry_at": now + timedelta(seconds=60),
        "original_send_time": now,
    }
    fields.update(overrides)
    return fields


def create_retry_record(**overrides) -> RetryRecord:
    """Create and save a RetryRecord."""
    return RetryRecord.objects.create(**retry_record_fields(**overrides))


def create_dead_letter(**overrides) -> DeadLetterRecord:
    """Create and save a DeadLetterRecord."""
    fields = {
        "recipient_address": fake.unique.email(),
        "recipient_user_id": str(fake.uuid4()),
        "subject": fake.sentence(nb_words=5),
        "message_type": "welcome",
        "category": "default",
        "payload": {"username": fake.user_name()},
        "tags": {},
        "final_error": "Failed after 5 attempts: Service unavailable",
        "attempt_count": 5,
        "failed_at": timezone.now(),
    }
    fields.update(overrides)
    return DeadLetterRecord.objects.create(**fields)


def create_metric_events(metric_type: str, count: int, age=timedelta(0)) -> None:
    """Create ``count`` retry metric events of one type, ``age`` in the past."""
    created_at = timezone.now() - age
    RetryMetricEvent.objects.bulk_create(
        RetryMetricEvent(
            metric_type=metric_type, attempt_count=1, created_at=created_at
        )
        for _ in range(count)
    )
