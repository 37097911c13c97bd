"""
HTTP middleware.
"""

from .logging import LoggingMiddleware
from .request_id import RequestIdMiddleware, add_request_id, get_request_id

__all__ = [
    "LoggingMiddleware",
    "RequestIdMiddleware",
    "add_request_id",
    "get_request_id",
]
