"""
Observability for the agenda service: request-scoped context and logging.
"""

from .context import (
    RequestContext,
    RequestInfo,
    current_request,
    generate_request_id,
    get_request_id,
)
from .logging import CorrelationIdMiddleware, configure_logging

__all__ = [
    "RequestContext",
    "RequestInfo",
    "current_request",
    "generate_request_id",
    "get_request_id",
    "CorrelationIdMiddleware",
    "configure_logging",
]
