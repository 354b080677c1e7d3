"""Delivery-related enumerations.

This module contains the enums shared by the failure classifier, the retry
worker and the metrics aggregator.
"""

from enum import Enum


class FailureKind(str, Enum):
    """Classification of a failed send attempt."""

    RETRYABLE = "RETRYABLE"
    PERMANENT = "PERMANENT"


class MetricType(str, Enum):
    """Outcome recorded for each retry attempt."""

    SUCCESS = "success"
    FAILED = "failed"


class DeliveryOutcome(str, Enum):
    """Result of handing a message to the delivery engine.

    SENT and RETRY_SCHEDULED and DEAD_LETTERED mirror the retry worker's
    terminal and non-terminal states. SKIPPED marks a job that found no
    matching pending record (already delivered or superseded).
    """

    SENT = "SENT"
    RETRY_SCHEDULED = "RETRY_SCHEDULED"
    DEAD_LETTERED = "DEAD_LETTERED"
    SKIPPED = "SKIPPED"
