"""Exception taxonomy for the reliable delivery engine.

Send failures derive from DeliveryError and carry an optional HTTP-like
status code for the failure classifier. Storage and scheduling failures are
separate roots: they concern the engine's own bookkeeping, never the message.
"""

from uuid import UUID


class DeliveryError(Exception):
    """Base exception for a failed send attempt."""

    def __init__(self, message: str, status_code: int | None = None):
        """Initialize delivery error.

        Args:
            message: Human-readable error message
            status_code: HTTP-like status code if the provider returned one
        """
        self.status_code = status_code
        super().__init__(message)


class RetryableError(DeliveryError):
    """Transient failure: network, timeout, rate limit, 5xx or 429."""


class SendTimeoutError(RetryableError):
    """Send client call did not complete within the configured timeout."""

    def __init__(self, timeout_seconds: float):
        """Initialize send timeout error.

        Args:
            timeout_seconds: Timeout that was exceeded
        """
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Send client timeout after {timeout_seconds:g}s")


class PermanentError(DeliveryError):
    """Failure that will not resolve on retry (bad address, suppressed, auth)."""


class UnclassifiedError(DeliveryError):
    """Failure reported without a recognisable reason; retried by default."""


class StorageError(Exception):
    """Failure reading or writing the retry or dead letter store."""

    def __init__(self, message: str, operation: str | None = None):
        """Initialize storage error.

        Args:
            message: Error message
            operation: Store operation that failed (e.g. "enqueue", "append")
        """
        self.operation = operation
        super().__init__(message)


class SchedulerError(Exception):
    """Failure handing a retry to the delayed-job queue."""


class MaxAttemptsReachedError(Exception):
    """Retry rejected because the record reached the policy maximum."""

    def __init__(self, attempt_count: int, max_attempts: int):
        """Initialize max attempts error.

        Args:
            attempt_count: Attempt count carried by the rejected record
            max_attempts: Policy maximum
        """
        self.attempt_count = attempt_count
        self.max_attempts = max_attempts
        super().__init__(
            f"Attempt {attempt_count} reached max attempts ({max_attempts})"
        )


class DeadLetterNotFoundError(Exception):
    """Dead letter record does not exist (404)."""

    def __init__(self, dead_letter_id: UUID | str):
        """Initialize dead letter not found error.

        Args:
            dead_letter_id: ID of the dead letter record that was not found
        """
        self.dead_letter_id = dead_letter_id
        super().__init__(f"Dead letter record {dead_letter_id} not found")
