"""Exception handling utilities for the delivery service."""

from core.exceptions.delivery_exceptions import (
    DeadLetterNotFoundError,
    DeliveryError,
    MaxAttemptsReachedError,
    PermanentError,
    RetryableError,
    SchedulerError,
    SendTimeoutError,
    StorageError,
    UnclassifiedError,
)
from core.exceptions.handlers import custom_exception_handler

__all__ = [
    "DeadLetterNotFoundError",
    "DeliveryError",
    "MaxAttemptsReachedError",
    "PermanentError",
    "RetryableError",
    "SchedulerError",
    "SendTimeoutError",
    "StorageError",
    "UnclassifiedError",
    "custom_exception_handler",
]
