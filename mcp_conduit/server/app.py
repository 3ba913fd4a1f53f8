"""Starlette ASGI application factory."""

import logging
from typing import Optional

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware

from mcp_conduit.config import ConduitConfig, load_config
from mcp_conduit.constants import SERVER_NAME, SESSION_HEADER
from mcp_conduit.runtime.service import ConduitService
from mcp_conduit.server.endpoints import handle_unexpected_error
from mcp_conduit.server.lifespan import app_lifespan
from mcp_conduit.server.middleware import (
    BodySizeLimitMiddleware,
    MetricsMiddleware,
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    SecurityMiddleware,
)
from mcp_conduit.server.routes import conduit_routes

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[ConduitConfig] = None,
    service: Optional[ConduitService] = None,
) -> Starlette:
    """Create and return the Starlette ASGI application.

    *service* wins over *config*; with neither, configuration is loaded
    from the file named by ``CONDUIT_CONFIG`` or discovered in the
    working directory.
    """
    if service is None:
        service = ConduitService(config if config is not None else load_config())
    config = service.config

    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=config.server.cors_origins,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["*"],
            expose_headers=[SESSION_HEADER],
        ),
        Middleware(RequestLoggingMiddleware),
        Middleware(BodySizeLimitMiddleware, max_bytes=config.server.max_body_bytes),
        Middleware(
            SecurityMiddleware,
            api_key=config.server.api_key,
            guarded=config.guarded,
        ),
        Middleware(RateLimitMiddleware, limiter=service.rate_limiter, enabled=config.guarded),
        Middleware(MetricsMiddleware, collector=service.metrics),
    ]

    application = Starlette(
        routes=conduit_routes,
        middleware=middleware,
        exception_handlers={Exception: handle_unexpected_error},
        lifespan=app_lifespan,
    )
    application.state.conduit_service = service
    logger.info(
        "Starlette ASGI app '%s' created (mode=%s, guarded=%s).",
        SERVER_NAME,
        config.server.mode,
        config.guarded,
    )
    return application
