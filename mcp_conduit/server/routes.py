"""Route table for the Conduit HTTP surface."""

from starlette.routing import Route

from mcp_conduit.constants import RPC_PATH
from mcp_conduit.server.endpoints import (
    handle_health,
    handle_info,
    handle_metrics,
    handle_prompts,
    handle_resources,
    handle_rpc,
    handle_stream,
    handle_tools,
)

conduit_routes = [
    Route(RPC_PATH, endpoint=handle_rpc, methods=["POST"]),
    Route(RPC_PATH, endpoint=handle_stream, methods=["GET"]),
    Route("/health", endpoint=handle_health, methods=["GET"]),
    Route("/info", endpoint=handle_info, methods=["GET"]),
    Route("/metrics", endpoint=handle_metrics, methods=["GET"]),
    Route("/tools", endpoint=handle_tools, methods=["GET"]),
    Route("/resources", endpoint=handle_resources, methods=["GET"]),
    Route("/prompts", endpoint=handle_prompts, methods=["GET"]),
]
