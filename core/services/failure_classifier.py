"""Classification of send failures into retryable and permanent.

Rules are evaluated in order and the first match wins:

1. Non-retryable text patterns (bad address, suppression, bounces, credentials)
2. Retryable text patterns (rate limits, timeouts, network and DNS failures)
3. The engine's own error taxonomy and well-known transient exception types
4. HTTP-like status code: 5xx and 429 are retryable, other 4xx permanent
5. Anything else is retryable

Non-retryable patterns are checked first so a message such as
"Invalid email address (rate limit headers attached)" is never retried.
"""

import re
import socket

from core.enums import FailureKind
from core.exceptions import PermanentError, RetryableError

NON_RETRYABLE_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"invalid.*e-?mail",
        r"invalid.*recipient",
        r"invalid.*address",
        r"suppressed",
        r"unsubscribed",
        r"bounced",
        r"invalid.*api.*key",
        r"invalid.*credential",
        r"authentication",
        r"permission",
    )
)

RETRYABLE_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"rate.*limit",
        r"too many requests",
        r"timeout",
        r"timed out",
        r"network",
        r"connection",
        r"unavailable",
        r"temporar",
        r"\bdns\b",
        r"name resolution",
        r"ECONNREFUSED",
        r"ECONNRESET",
        r"ETIMEDOUT",
        r"ENOTFOUND",
    )
)

RETRYABLE_ERROR_NAMES = frozenset({"NetworkError", "TimeoutError", "ConnectionError"})

RETRYABLE_ERROR_TYPES = (ConnectionError, TimeoutError, socket.gaierror)


def error_message(error: BaseException | str) -> str:
    """Return the human-readable message of an error."""
    if isinstance(error, str):
        return error
    return str(error) or type(error).__name__


def error_status_code(error: BaseException | str) -> int | None:
    """Return the HTTP-like status code carried by an error, if any.

    Looks at ``status_code``, ``status`` and ``response.status_code``, the
    attribute names used by common HTTP client exceptions.
    """
    if isinstance(error, str):
        return None

    candidates = (
        getattr(error, "status_code", None),
        getattr(error, "status", None),
        getattr(getattr(error, "response", None), "status_code", None),
    )
    for candidate in candidates:
        if isinstance(candidate, int) and not isinstance(candidate, bool):
            return candidate
    return None


def classify(error: BaseException | str) -> FailureKind:
    """Decide whether a failed send is worth retrying.

    Args:
        error: Exception raised by (or built from) the send client, or a bare
            error message.

    Returns:
        FailureKind.PERMANENT or FailureKind.RETRYABLE.
    """
    message = error_message(error)

    if any(pattern.search(message) for pattern in NON_RETRYABLE_PATTERNS):
        return FailureKind.PERMANENT

    if any(pattern.search(message) for pattern in RETRYABLE_PATTERNS):
        return FailureKind.RETRYABLE

    if isinstance(error, PermanentError):
        return FailureKind.PERMANENT

    if isinstance(error, (RetryableError, *RETRYABLE_ERROR_TYPES)):
        return FailureKind.RETRYABLE

    if not isinstance(error, str) and type(error).__name__ in RETRYABLE_ERROR_NAMES:
        return FailureKind.RETRYABLE

    status_code = error_status_code(error)
    if status_code is not None:
        if status_code == 429 or 500 <= status_code < 600:
            return FailureKind.RETRYABLE
        if 400 <= status_code < 500:
            return FailureKind.PERMANENT

    return FailureKind.RETRYABLE
