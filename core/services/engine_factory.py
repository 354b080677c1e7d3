"""Construction of delivery engines from Django settings."""

from datetime import timedelta

from django.conf import settings

from core.repositories import DeadLetterStore, RetryStore
from core.schemas.delivery import RetryPolicy
from core.services.delivery_engine import ReliableDeliveryEngine
from core.services.email_service import EmailSendClient, SendClient
from core.services.metrics_aggregator import MetricsAggregator
from core.services.retry_scheduler import RQRetryScheduler

DEFAULT_CATEGORY = "default"


def get_delivery_settings() -> dict:
    """Return the RELIABLE_DELIVERY settings dictionary."""
    return getattr(settings, "RELIABLE_DELIVERY", {})


def get_policy(category: str = DEFAULT_CATEGORY) -> RetryPolicy:
    """Return the retry policy for a delivery category.

    Category entries override the "default" entry field by field; unknown
    categories use the default policy.

    Raises:
        pydantic.ValidationError: If the configured policy is invalid.
    """
    policies = get_delivery_settings().get("POLICIES", {})
    values = {
        **policies.get(DEFAULT_CATEGORY, {}),
        **policies.get(category, {}),
    }
    return RetryPolicy(**values)


def build_metrics(retry_store: RetryStore | None = None) -> MetricsAggregator:
    """Return a metrics aggregator configured from settings."""
    config = get_delivery_settings()
    return MetricsAggregator(
        retry_store or RetryStore(max_attempts=get_policy().max_attempts),
        DeadLetterStore(),
        window=timedelta(hours=config.get("METRICS_RETENTION_HOURS", 24)),
        cache_ttl=config.get("STATS_CACHE_TTL_SECONDS", MetricsAggregator.CACHE_TTL),
    )


def build_engine(
    category: str = DEFAULT_CATEGORY,
    send_client: SendClient | None = None,
) -> ReliableDeliveryEngine:
    """Build a delivery engine for one category.

    Args:
        category: Delivery category whose policy the engine applies.
        send_client: Send client; defaults to the SMTP EmailSendClient.

    Returns:
        A fully wired ReliableDeliveryEngine.
    """
    config = get_delivery_settings()
    policy = get_policy(category)
    timeout = config.get("SEND_TIMEOUT_SECONDS", 30.0)
    retry_store = RetryStore(max_attempts=policy.max_attempts)

    return ReliableDeliveryEngine(
        send_client=send_client or EmailSendClient(timeout=timeout),
        scheduler=RQRetryScheduler(config.get("QUEUE_NAME", "email-retry")),
        policy=policy,
        retry_store=retry_store,
        dead_letter_store=DeadLetterStore(),
        metrics=build_metrics(retry_store),
        category=category,
        send_timeout_seconds=timeout,
        dead_letter_append_attempts=config.get("DEAD_LETTER_APPEND_ATTEMPTS", 3),
    )
