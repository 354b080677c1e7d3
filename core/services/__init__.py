"""Services for the core app."""

from core.services.delivery_engine import ReliableDeliveryEngine
from core.services.email_service import EmailSendClient, SendClient
from core.services.engine_factory import build_engine, get_policy
from core.services.metrics_aggregator import MetricsAggregator
from core.services.retry_scheduler import RQRetryScheduler

# Note: admin_service is not exported here; its singleton is created at import
# time. Import directly from core.services.admin_service.

__all__ = [
    "EmailSendClient",
    "MetricsAggregator",
    "RQRetryScheduler",
    "ReliableDeliveryEngine",
    "SendClient",
    "build_engine",
    "get_policy",
]
