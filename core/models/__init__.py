"""Database models for core application."""

from core.models.dead_letter_record import DeadLetterRecord
from core.models.retry_metric_event import RetryMetricEvent
from core.models.retry_record import RetryRecord

__all__ = ["DeadLetterRecord", "RetryMetricEvent", "RetryRecord"]
