"""Session management for per-client JSON-RPC sessions."""

from mcp_conduit.server.session.manager import SessionStore, SweepResult
from mcp_conduit.server.session.models import Session

__all__ = ["Session", "SessionStore", "SweepResult"]
