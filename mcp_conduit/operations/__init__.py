"""Operations catalog.

:func:`build_registry` registers every operation module against one backend
client and returns the frozen registry.
"""

import logging

from mcp_conduit.backend.client import FrappeClient
from mcp_conduit.operations import documents, doctypes, helpers, reports, system
from mcp_conduit.operations.categories import CATEGORIES
from mcp_conduit.server.registry import OperationRegistry

logger = logging.getLogger(__name__)

_MODULES = (system, documents, doctypes, helpers, reports)


def build_registry(client: FrappeClient) -> OperationRegistry:
    """Build and freeze the full operation registry."""
    registry = OperationRegistry(CATEGORIES)
    for module in _MODULES:
        module.register(registry, client)
    registry.freeze()
    logger.info(
        "Registered %d operation(s) across %d categories.", len(registry), len(CATEGORIES)
    )
    return registry


__all__ = ["CATEGORIES", "build_registry"]
