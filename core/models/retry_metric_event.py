"""RetryMetricEvent model: one row per retry attempt outcome."""

from typing import ClassVar

from django.db import models
from django.utils import timezone

from core.enums import MetricType


class RetryMetricEvent(models.Model):
    """Outcome of a single retry attempt, used for success-rate statistics.

    Rows older than the retention window are purged by
    ``MetricsAggregator.purge_expired``.
    """

    metric_type = models.CharField(
        max_length=10,
        choices=[(metric.value, metric.value) for metric in MetricType],
    )
    attempt_count = models.PositiveIntegerField()
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        """Django model metadata."""

        db_table = "retry_metric_events"
        indexes: ClassVar[list] = [
            models.Index(fields=["created_at"], name="retry_metric_created_idx"),
        ]

    def __str__(self) -> str:
        """Return string representation of the metric event."""
        return f"{self.metric_type} at attempt {self.attempt_count}"
