"""Observability module for mailcapture.

Provides structured logging, correlation IDs, metrics and request middleware.
"""

from .logging_config import configure_logging, get_logger
from .metrics import (
    index_updates_total,
    ingest_duration_seconds,
    messages_ingested_total,
    recipients_total,
)
from .middleware import RequestIDMiddleware
from .request_id import generate_request_id, get_request_id, request_id_var, set_request_id

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    # Metrics
    "index_updates_total",
    "ingest_duration_seconds",
    "messages_ingested_total",
    "recipients_total",
    # Request ID
    "request_id_var",
    "get_request_id",
    "set_request_id",
    "generate_request_id",
    # Middleware
    "RequestIDMiddleware",
]
