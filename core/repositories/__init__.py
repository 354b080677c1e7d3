"""Repositories for the retry and dead letter queues."""

from core.repositories.dead_letter_store import DeadLetterStore
from core.repositories.retry_store import RetryStore

__all__ = ["DeadLetterStore", "RetryStore"]
