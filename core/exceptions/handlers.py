"""DRF exception handler for the operator API.

Errors raised by the delivery engine reach operators through this handler:
a missing dead letter is a 404, an unreachable store or job queue is a 503,
anything else unexpected is a 500. All of them share one response body.
"""

import logging
import traceback
from datetime import UTC, datetime
from typing import Any

from django.conf import settings
from django.http import Http404

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.constants import REQUEST_ID_HEADER
from core.exceptions.delivery_exceptions import (
    DeadLetterNotFoundError,
    SchedulerError,
    StorageError,
)
from core.logging.context import get_request_id

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "Delivery storage is temporarily unavailable."
INTERNAL_ERROR_MESSAGE = "An internal server error occurred."


def custom_exception_handler(
    exc: Exception, context: dict[str, Any]
) -> Response | None:
    """Render engine and framework exceptions as {status, message, request_id, timestamp}.

    Args:
        exc: The exception that was raised.
        context: Context dictionary containing request and view information.

    Returns:
        A Response object with the error details.
    """
    view = context.get("view")
    request = view.request if view else None
    request_id = get_request_id()

    response = exception_handler(exc, context)
    if response is None:
        status_code, message = _status_for(exc)
        response = Response(
            _create_error_response(status_code, message, request_id),
            status=status_code,
        )

    if request_id:
        response[REQUEST_ID_HEADER] = request_id

    _log_exception(exc, request, response)
    return response


def _status_for(exc: Exception) -> tuple[int, str]:
    """Return the HTTP status and client-safe message for a non-DRF exception."""
    if isinstance(exc, DeadLetterNotFoundError):
        return status.HTTP_404_NOT_FOUND, str(exc)
    if isinstance(exc, Http404):
        return status.HTTP_404_NOT_FOUND, "The requested resource was not found."
    if isinstance(exc, (StorageError, SchedulerError)):
        return status.HTTP_503_SERVICE_UNAVAILABLE, UNAVAILABLE_MESSAGE
    return status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE


def _create_error_response(
    status_code: int, message: str, request_id: str | None
) -> dict[str, Any]:
    return {
        "status": status_code,
        "message": message,
        "request_id": request_id,
        "timestamp": datetime.now(UTC).isoformat(),
    }


def _log_level_for(exc: Exception) -> int:
    # A store outage means messages may be going unrecorded
    if isinstance(exc, StorageError):
        return logging.CRITICAL
    if isinstance(exc, DeadLetterNotFoundError):
        return logging.WARNING
    if isinstance(exc, (Http404, APIException)):
        code = getattr(exc, "status_code", status.HTTP_404_NOT_FOUND)
        return logging.WARNING if 400 <= code < 500 else logging.ERROR
    return logging.ERROR


def _log_exception(exc: Exception, request: Any, response: Response) -> None:
    """Log the failed request; stack traces are included in DEBUG mode."""
    method = getattr(request, "method", "unknown")
    path = getattr(request, "path", "unknown")

    log_message = (
        f"{method} {path} failed with {response.status_code}: "
        f"{type(exc).__name__}: {exc}"
    )
    if settings.DEBUG:
        log_message += "\n" + "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )

    logger.log(_log_level_for(exc), log_message)
