"""Schemas for the core app."""

from core.schemas.delivery import (
    DeadLetterEntry,
    DeadLetterListResponse,
    PurgeRetryResponse,
    ReplayRequest,
    ReplayResponse,
    RetryPolicy,
    RetryStatistics,
    SendResult,
    SweepResponse,
)

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
