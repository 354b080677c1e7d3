"""Unit tests for RequestIDMiddleware."""

import unittest
import uuid

from django.http import HttpRequest, HttpResponse

import structlog

from core.constants import REQUEST_ID_HEADER
from core.logging.context import get_request_id
from core.middleware.request_id import RequestIDMiddleware


class TestRequestIDMiddleware(unittest.TestCase):
    """Test cases for RequestIDMiddleware."""

    def setUp(self):
        """Set up test fixtures."""
        self.seen = {}

        def get_response(request):
            self.seen["request_id"] = get_request_id()
            self.seen["context"] = structlog.contextvars.get_contextvars()
            return HttpResponse("OK")

        self.middleware = RequestIDMiddleware(get_response)

    def _create_request(self, headers=None):
        """Helper to create a test request."""
        request = HttpRequest()
        request.method = "POST"
        request.path = "/api/v1/delivery/dead-letters/replay"
        for key, value in (headers or {}).items():
            request.META[f"HTTP_{key.upper().replace('-', '_')}"] = value
        return request

    def test_generates_request_id_when_not_present(self):
        """Test that a UUID is generated when no header is sent."""
        request = self._create_request()

        response = self.middleware(request)

        uuid.UUID(request.request_id)
        self.assertEqual(response[REQUEST_ID_HEADER], request.request_id)

    def test_reuses_incoming_request_id(self):
        """Test that an incoming X-Request-ID is propagated."""
        request = self._create_request({REQUEST_ID_HEADER: "upstream-id"})

        response = self.middleware(request)

        self.assertEqual(response[REQUEST_ID_HEADER], "upstream-id")
        self.assertEqual(self.seen["request_id"], "upstream-id")

    def test_binds_request_context_during_request(self):
        """Test that path and method reach structlog while the view runs."""
        self.middleware(self._create_request())

        self.assertEqual(
            self.seen["context"]["request_path"],
            "/api/v1/delivery/dead-letters/replay",
        )
        self.assertEqual(self.seen["context"]["request_method"], "POST")

    def test_clears_context_after_request(self):
        """Test that nothing leaks into the next request."""
        self.middleware(self._create_request({REQUEST_ID_HEADER: "id-1"}))

        self.assertIsNone(get_request_id())
        self.assertNotIn("request_path", structlog.contextvars.get_contextvars())

    def test_clears_context_when_view_raises(self):
        """Test cleanup on exceptions."""

        def failing_response(_request):
            raise RuntimeError("boom")

        middleware = RequestIDMiddleware(failing_response)

        with self.assertRaises(RuntimeError):
            middleware(self._create_request({REQUEST_ID_HEADER: "id-2"}))

        self.assertIsNone(get_request_id())


if __name__ == "__main__":
    unittest.main()
