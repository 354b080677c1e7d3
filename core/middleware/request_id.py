"""Request ID middleware for tracing operator requests."""

import uuid
from collections.abc import Callable

from django.http import HttpRequest, HttpResponse

import structlog

from core.constants import REQUEST_ID_HEADER
from core.logging.context import clear_request_id, set_request_id


class RequestIDMiddleware:
    """Attach a request ID to every request, its logs and its response.

    An incoming X-Request-ID header is reused; otherwise a UUID is generated.
    The path and method are bound to the structlog context for the duration
    of the request.
    """

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())

        set_request_id(request_id)
        request.request_id = request_id  # type: ignore[attr-defined]
        structlog.contextvars.bind_contextvars(
            request_path=request.path,
            request_method=request.method,
        )

        try:
            response = self.get_response(request)
            response[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            structlog.contextvars.unbind_contextvars("request_path", "request_method")
            clear_request_id()
