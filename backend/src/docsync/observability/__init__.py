"""Observability module for DocuSync.

Provides structured logging, metrics, request correlation and health checks.
"""

from .logging_config import configure_logging, get_logger
from .request_id import (
    correlation_scope,
    generate_request_id,
    get_request_id,
    request_id_var,
    set_request_id,
)

__all__ = [
    "configure_logging",
    "correlation_scope",
    "generate_request_id",
    "get_logger",
    "get_request_id",
    "request_id_var",
    "set_request_id",
]
