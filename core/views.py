"""Operator API views for the retry and dead letter queues."""

import structlog
from pydantic import ValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from core.constants import (
    DEFAULT_DEAD_LETTER_PAGE_SIZE,
    DEFAULT_SWEEP_LIMIT,
    MAX_DEAD_LETTER_PAGE_SIZE,
)
from core.schemas.delivery import (
    DeadLetterEntry,
    DeadLetterListResponse,
    PurgeRetryResponse,
    ReplayRequest,
    ReplayResponse,
    RetryStatistics,
    SweepResponse,
)
from core.services.admin_service import admin_service

logger = structlog.get_logger(__name__)


def _bad_request(message: str, detail: str | list) -> Response:
    """Build a 400 response in the API's error format."""
    body = {"error": "bad_request", "message": message}
    body["errors" if isinstance(detail, list) else "detail"] = detail
    return Response(body, status=status.HTTP_400_BAD_REQUEST)


def _parse_int_param(
    request, name: str, default: int, minimum: int, maximum: int
) -> int:
    """Parse a bounded integer query parameter.

    Raises:
        ValueError: If the value is not an integer within [minimum, maximum].
    """
    raw_value = request.query_params.get(name)
    if raw_value in (None, ""):
        return default

    value = int(raw_value)
    if not minimum <= value <= maximum:
        raise ValueError(f"{name} must be between {minimum} and {maximum}")
    return value


class DeadLetterListView(APIView):
    """API endpoint for reviewing dead letters.

    GET: List dead letter records, newest first
    """

    def get(self, request):
        """List dead letter records.

        Query Parameters:
        - limit (optional): Page size (1-1000, default: 100)
        - offset (optional): Records to skip (default: 0)

        Returns:
            200 OK with DeadLetterListResponse
            400 Bad Request if parameters are invalid
            503 Service Unavailable if the store is unreachable
        """
        try:
            limit = _parse_int_param(
                request,
                "limit",
                DEFAULT_DEAD_LETTER_PAGE_SIZE,
                1,
                MAX_DEAD_LETTER_PAGE_SIZE,
            )
            offset = _parse_int_param(request, "offset", 0, 0, 2**31 - 1)
        except ValueError as e:
            logger.warning("invalid_dead_letter_list_params", error=str(e))
            return _bad_request("Invalid pagination parameters", str(e))

        page = admin_service.list_dead_letters(limit=limit, offset=offset)
        response = DeadLetterListResponse(
            results=[DeadLetterEntry.model_validate(r) for r in page["results"]],
            total=page["total"],
            limit=page["limit"],
            offset=page["offset"],
        )
        return Response(response.model_dump(), status=status.HTTP_200_OK)


class DeadLetterReplayView(APIView):
    """API endpoint for replaying dead letters.

    POST: Re-inject dead letters as fresh retries
    """

    def post(self, request):
        """Replay a set of dead letter records.

        Request body: {"ids": ["<uuid>", ...]}

        Returns:
            202 Accepted with ReplayResponse (per-id outcome)
            400 Bad Request if the body is invalid
            503 Service Unavailable if the store is unreachable
        """
        try:
            replay_request = ReplayRequest.model_validate(request.data)
        except ValidationError as e:
            logger.warning(
                "invalid_replay_request",
                validation_errors=e.errors(include_url=False, include_context=False),
            )
            return _bad_request(
                "Invalid request parameters",
                e.errors(include_url=False, include_context=False),
            )

        result = admin_service.replay_dead_letters(replay_request.ids)
        response = ReplayResponse(**result)

        logger.info(
            "dead_letter_replay_completed",
            replayed=len(response.replayed),
            not_found=len(response.not_found),
            failed=len(response.failed),
        )
        return Response(response.model_dump(), status=status.HTTP_202_ACCEPTED)


class RetryStatsView(APIView):
    """API endpoint for retry queue statistics.

    GET: Queue depth, attempt breakdown, oldest retry and success rate
    """

    def get(self, _request):
        """Return retry statistics.

        Returns:
            200 OK with RetryStatistics
            503 Service Unavailable if the store is unreachable
        """
        stats = RetryStatistics(**admin_service.get_retry_stats())
        return Response(stats.model_dump(), status=status.HTTP_200_OK)


class RetrySweepView(APIView):
    """API endpoint for an immediate retry queue sweep.

    POST: Queue due (or, with immediate=true, all) retries for processing now
    """

    def post(self, request):
        """Sweep the retry queue.

        Query Parameters:
        - immediate (optional): "true" to include records not yet due
        - limit (optional): Maximum records to queue (1-1000, default: 100)

        Returns:
            202 Accepted with SweepResponse
            400 Bad Request if parameters are invalid
            503 Service Unavailable if Redis or the store is unreachable
        """
        immediate = request.query_params.get("immediate", "false").lower() == "true"

        try:
            limit = _parse_int_param(
                request, "limit", DEFAULT_SWEEP_LIMIT, 1, MAX_DEAD_LETTER_PAGE_SIZE
            )
        except ValueError as e:
            logger.warning("invalid_sweep_params", error=str(e))
            return _bad_request("Invalid limit parameter", str(e))

        result = admin_service.sweep_retry_queue(immediate=immediate, limit=limit)
        return Response(
            SweepResponse(**result).model_dump(), status=status.HTTP_202_ACCEPTED
        )


class RetryPurgeView(APIView):
    """API endpoint for dropping a single pending retry.

    DELETE: Remove the RetryRecord for a recipient and message type
    """

    def delete(self, request):
        """Purge one pending retry.

        Query Parameters:
        - recipient_address (required)
        - message_type (required)

        Returns:
            200 OK with PurgeRetryResponse if a record was removed
            404 Not Found if no retry is pending for the key
            400 Bad Request if a parameter is missing
        """
        recipient_address = request.query_params.get("recipient_address", "").strip()
        message_type = request.query_params.get("message_type", "").strip()
        if not recipient_address or not message_type:
            return _bad_request(
                "Missing required parameters",
                "recipient_address and message_type are required",
            )

        result = PurgeRetryResponse(
            **admin_service.purge_retry_record(recipient_address, message_type)
        )
        response_status = (
            status.HTTP_200_OK if result.removed else status.HTTP_404_NOT_FOUND
        )
        return Response(result.model_dump(), status=response_status)
