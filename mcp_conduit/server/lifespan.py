"""Application lifespan management - startup and shutdown sequences.

This module provides the Starlette ``lifespan`` async context manager that
delegates lifecycle management to :class:`~mcp_conduit.runtime.service.ConduitService`.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from starlette.applications import Starlette

from mcp_conduit.constants import SERVER_NAME, SERVER_VERSION
from mcp_conduit.errors import BackendError, ConfigurationError
from mcp_conduit.runtime.service import ConduitService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: Starlette) -> AsyncIterator[None]:
    """Start the service stored on ``app.state`` and stop it on shutdown."""
    service: ConduitService = app.state.conduit_service
    logger.info("Server '%s' v%s startup sequence started...", SERVER_NAME, SERVER_VERSION)

    startup_ok = False
    try:
        await service.start()
        startup_ok = True
        logger.info(
            "Server ready: %d operations, mode=%s.",
            len(service.registry),
            service.config.server.mode,
        )
        yield
    except ConfigurationError as e_cfg:
        logger.exception("Configuration error: %s", e_cfg)
        raise
    except BackendError as e_backend:
        logger.exception("Backend error: %s", e_backend)
        raise
    except Exception as e_exc:
        logger.exception("Unexpected error during lifespan startup: %s", e_exc)
        raise
    finally:
        logger.info("Server '%s' shutdown sequence started...", SERVER_NAME)
        await service.stop()
        if startup_ok:
            logger.info("Server shut down normally.")
        else:
            logger.error(
                "Server exited abnormally - Error: %s", service.error_message or "unknown"
            )
