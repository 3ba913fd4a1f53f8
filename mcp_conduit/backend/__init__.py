"""Backend REST client."""

from mcp_conduit.backend.client import FrappeClient

__all__ = ["FrappeClient"]
