"""Request and job context for structured logging."""

import threading
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import structlog

# Thread-local storage for request context
_request_context = threading.local()


def set_request_id(request_id: str) -> None:
    """Store the request ID in thread-local storage.

    Args:
        request_id: The unique request identifier to store.
    """
    _request_context.request_id = request_id


def get_request_id() -> str | None:
    """Retrieve the request ID from thread-local storage.

    Returns:
        The current request ID, or None if not set.
    """
    return getattr(_request_context, "request_id", None)


def clear_request_id() -> None:
    """Clear the request ID from thread-local storage."""
    if hasattr(_request_context, "request_id"):
        delattr(_request_context, "request_id")


@contextmanager
def bind_job_context(
    job_id: str | None,
    **extra_context: Any,
) -> Generator[None, None, None]:
    """Bind a background job's identity to all logs within the block.

    The RQ job ID becomes the correlation ID, so every log line of one retry
    attempt can be found from the job.

    Args:
        job_id: RQ job ID, or None when running outside a worker.
        **extra_context: Additional key-value pairs to include in logs.
    """
    context: dict[str, Any] = {"correlation_id": job_id or "no-job-id"}
    context.update({k: v for k, v in extra_context.items() if v is not None})

    structlog.contextvars.bind_contextvars(**context)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*context.keys())
