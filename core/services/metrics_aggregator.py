"""Retry outcome metrics and retry queue statistics."""

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from django.core.cache import cache
from django.db import DatabaseError
from django.db.models import Count, Q
from django.utils import timezone

import structlog
from redis.exceptions import RedisError

from core.constants import (
    DEAD_LETTER_COUNTER_KEY,
    DEAD_LETTER_COUNTER_TTL,
    RETRY_RATE_CACHE_KEY,
)
from core.enums import MetricType
from core.exceptions import StorageError
from core.models import RetryMetricEvent
from core.repositories import DeadLetterStore, RetryStore

logger = structlog.get_logger(__name__)


class MetricsAggregator:
    """Records per-attempt outcomes and reports retry queue health.

    The success rate is read far more often than events arrive, so it is
    cached for ``cache_ttl`` seconds. Counts of pending records are always
    read fresh.
    """

    CACHE_TTL = 300  # 5 minutes

    def __init__(
        self,
        retry_store: RetryStore,
        dead_letter_store: DeadLetterStore | None = None,
        window: timedelta = timedelta(hours=24),
        cache_ttl: int = CACHE_TTL,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        """Initialize the aggregator.

        Args:
            retry_store: Store used for queue depth figures.
            dead_letter_store: Store used for the dead letter total.
            window: Trailing window for the success rate and retention.
            cache_ttl: Seconds to cache the success rate.
            clock: Time source, injectable for tests.
        """
        self.retry_store = retry_store
        self.dead_letter_store = dead_letter_store or DeadLetterStore()
        self.window = window
        self.cache_ttl = cache_ttl
        self._clock = clock

    def record_outcome(self, metric_type: MetricType, attempt_count: int) -> None:
        """Append a retry outcome event.

        Failures are logged and swallowed; metrics never break a retry.
        """
        try:
            RetryMetricEvent.objects.create(
                metric_type=MetricType(metric_type).value,
                attempt_count=attempt_count,
                created_at=self._clock(),
            )
        except DatabaseError as e:
            logger.error(
                "retry_metric_record_failed",
                metric_type=str(metric_type),
                attempt_count=attempt_count,
                error=str(e),
            )

    def record_dead_letter(self) -> int:
        """Increment the daily dead letter counter used for alerting.

        A cache outage is logged and reported as 0; the counter never
        breaks dead-lettering.

        Returns:
            The counter value after incrementing.
        """
        try:
            cache.add(DEAD_LETTER_COUNTER_KEY, 0, DEAD_LETTER_COUNTER_TTL)
            try:
                return cache.incr(DEAD_LETTER_COUNTER_KEY)
            except ValueError:
                # Key expired between add() and incr()
                cache.set(DEAD_LETTER_COUNTER_KEY, 1, DEAD_LETTER_COUNTER_TTL)
                return 1
        except RedisError as e:
            logger.error("dead_letter_counter_failed", error=str(e))
            return 0

    def retry_rate(self) -> float:
        """Return the retry success percentage over the trailing window.

        ``successes / (successes + failures) * 100``, or 0.0 without events.
        """
        cached_rate = cache.get(RETRY_RATE_CACHE_KEY)
        if cached_rate is not None:
            return cached_rate

        since = self._clock() - self.window
        try:
            counts = RetryMetricEvent.objects.filter(created_at__gt=since).aggregate(
                successes=Count("id", filter=Q(metric_type=MetricType.SUCCESS.value)),
                failures=Count("id", filter=Q(metric_type=MetricType.FAILED.value)),
            )
        except DatabaseError as e:
            raise StorageError(
                f"Failed to compute retry rate: {e}", operation="retry_rate"
            ) from e
        total = counts["successes"] + counts["failures"]
        rate = round(counts["successes"] / total * 100, 2) if total > 0 else 0.0

        cache.set(RETRY_RATE_CACHE_KEY, rate, self.cache_ttl)
        return rate

    def stats(self) -> dict[str, Any]:
        """Return retry queue statistics.

        Returns:
            Dict containing:
            - total_in_queue: Pending retry records
            - by_attempt_count: Pending records keyed by attempt count
            - oldest_retry: Earliest next_retry_at, or None
            - retry_rate: Success percentage over the trailing window
            - dead_letter_total: Records in the dead letter queue
            - dead_lettered_today: Daily dead letter counter
        """
        summary = self.retry_store.queue_summary()
        rate = self.retry_rate()

        stats = {
            "total_in_queue": summary["total"],
            "by_attempt_count": summary["by_attempt_count"],
            "oldest_retry": summary["oldest_retry"],
            "retry_rate": rate,
            "dead_letter_total": self.dead_letter_store.count(),
            "dead_lettered_today": cache.get(DEAD_LETTER_COUNTER_KEY, 0),
        }

        logger.info(
            "retry_stats_computed",
            total_in_queue=stats["total_in_queue"],
            retry_rate=rate,
        )
        return stats

    def purge_expired(self) -> int:
        """Delete metric events older than the trailing window.

        Returns:
            Number of deleted events.
        """
        cutoff = self._clock() - self.window
        try:
            deleted, _ = RetryMetricEvent.objects.filter(
                created_at__lte=cutoff
            ).delete()
        except DatabaseError as e:
            raise StorageError(
                f"Failed to purge retry metrics: {e}", operation="purge_expired"
            ) from e

        logger.info(
            "retry_metrics_purged",
            deleted=deleted,
            cutoff=cutoff.isoformat(),
        )
        return deleted
