"""
MCP Conduit - a Model Context Protocol server for Frappe / ERPNext.

MCP Conduit exposes a catalog of typed Frappe operations, documentation
resources and prompt templates to MCP clients over a streamable-HTTP
JSON-RPC endpoint.
"""

from mcp_conduit.constants import SERVER_NAME, SERVER_VERSION

__version__ = SERVER_VERSION
__app_name__ = SERVER_NAME

__all__ = [
    "SERVER_NAME",
    "SERVER_VERSION",
    "__version__",
    "__app_name__",
]
