"""
Middleware components for request processing.

This package contains middleware for:
- Request context (request ID bound into the log context)
"""

from subscriber_sync.middleware.request_context import RequestContextMiddleware

__all__ = [
    "RequestContextMiddleware",
]
