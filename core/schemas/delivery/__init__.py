"""Schemas for the reliable delivery engine."""

from core.schemas.delivery.dead_letter_entry import (
    DeadLetterEntry,
    DeadLetterListResponse,
)
from core.schemas.delivery.replay import ReplayRequest, ReplayResponse
from core.schemas.delivery.retry_policy import RetryPolicy
from core.schemas.delivery.retry_statistics import RetryStatistics
from core.schemas.delivery.send_result import SendResult
from core.schemas.delivery.sweep import PurgeRetryResponse, SweepResponse

__all__ = [
    "DeadLetterEntry",
    "DeadLetterListResponse",
    "PurgeRetryResponse",
    "ReplayRequest",
    "ReplayResponse",
    "RetryPolicy",
    "RetryStatistics",
    "SendResult",
    "SweepResponse",
]
