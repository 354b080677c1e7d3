"""Middleware components for the delivery service."""

from core.middleware.request_id import RequestIDMiddleware

__all__ = [
    "RequestIDMiddleware",
]
