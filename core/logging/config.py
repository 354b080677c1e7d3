"""Structlog configuration shared by the API, RQ workers and sweep commands.

Every process writes JSON lines to a rotating file and colored lines to the
console. Retry attempts run outside any HTTP request, so the processor chain
merges structlog contextvars first: that is where bind_job_context puts the
RQ job's correlation_id.
"""

import logging
import logging.handlers
import os
from pathlib import Path

import structlog

from core.logging.processors import (
    add_process_info,
    add_request_context,
    add_service_context,
    console_renderer,
)

DEFAULT_LOG_FILE = "./logs/delivery-service.log"
MAX_LOG_FILE_BYTES = 100 * 1024 * 1024
LOG_FILE_BACKUPS = 240

# Pre-chain for records emitted by rq, rq-scheduler and django through stdlib
FOREIGN_PRE_CHAIN = [
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    add_request_context,
]


def _json_file_handler(path: str, level: int) -> logging.Handler:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=MAX_LOG_FILE_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=[*FOREIGN_PRE_CHAIN, add_service_context, add_process_info],
        )
    )
    return handler


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=console_renderer,
            foreign_pre_chain=FOREIGN_PRE_CHAIN,
        )
    )
    return handler


def setup_logging(
    log_file_path: str | None = None,
    log_level: str | None = None,
) -> None:
    """Configure structlog with JSON file output and colored console output.

    Args:
        log_file_path: Log file; defaults to LOG_FILE_PATH or
            ./logs/delivery-service.log.
        log_level: Level name; defaults to LOG_LEVEL or INFO.

    SERVICE_NAME and ENVIRONMENT are read by the service context processor.
    """
    log_file_path = log_file_path or os.getenv("LOG_FILE_PATH", DEFAULT_LOG_FILE)
    log_level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, log_level, logging.INFO)

    logging.basicConfig(format="%(message)s", level=level, handlers=[])

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            add_request_context,
            add_service_context,
            add_process_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(_json_file_handler(log_file_path, level))
    root_logger.addHandler(_console_handler(level))

    structlog.get_logger(__name__).info(
        "logging_configured",
        log_file=log_file_path,
        log_level=log_level,
    )
