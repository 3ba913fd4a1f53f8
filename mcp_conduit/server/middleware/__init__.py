"""Pure ASGI middleware wrapping every request.

Order, outermost first: request logging, body size limit, security, rate
limiting, metrics.
"""

from mcp_conduit.server.middleware.body_limit import BodySizeLimitMiddleware
from mcp_conduit.server.middleware.metrics import MetricsMiddleware
from mcp_conduit.server.middleware.ratelimit import (
    RateLimitDecision,
    RateLimitEntry,
    RateLimiter,
    RateLimitMiddleware,
)
from mcp_conduit.server.middleware.request_log import RequestLoggingMiddleware
from mcp_conduit.server.middleware.security import SECURITY_HEADERS, SecurityMiddleware

__all__ = [
    "SECURITY_HEADERS",
    "BodySizeLimitMiddleware",
    "MetricsMiddleware",
    "RateLimitDecision",
    "RateLimitEntry",
    "RateLimitMiddleware",
    "RateLimiter",
    "RequestLoggingMiddleware",
    "SecurityMiddleware",
]
