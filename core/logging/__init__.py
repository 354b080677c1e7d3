"""Logging utilities for the delivery service."""

from core.logging.config import setup_logging
from core.logging.context import bind_job_context, get_request_id, set_request_id

__all__ = [
    "bind_job_context",
    "get_request_id",
    "set_request_id",
    "setup_logging",
]
