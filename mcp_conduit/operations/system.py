"""System operations: ``ping``, ``version``, ``call_method``."""

from typing import Any, Dict, Optional

from pydantic import Field

from mcp_conduit.backend.client import FrappeClient
from mcp_conduit.constants import SERVER_TITLE, SERVER_VERSION
from mcp_conduit.operations.base import OperationArgs, json_content, text_content
from mcp_conduit.operations.categories import SYSTEM
from mcp_conduit.server.registry import OperationRegistry


class NoArgs(OperationArgs):
    pass


class CallMethodArgs(OperationArgs):
    method: str = Field(min_length=1, description="Dotted path of a whitelisted method")
    params: Optional[Dict[str, Any]] = Field(default=None, description="Keyword arguments")


def register(registry: OperationRegistry, client: FrappeClient) -> None:
    @registry.operation(
        "ping",
        "A simple tool to check if the server is responding.",
        NoArgs,
        SYSTEM,
    )
    async def ping(args: NoArgs) -> Dict[str, Any]:
        return text_content("pong")

    @registry.operation(
        "version",
        "Get version information for the MCP server",
        NoArgs,
        SYSTEM,
    )
    async def version(args: NoArgs) -> Dict[str, Any]:
        return text_content(f"{SERVER_TITLE} version {SERVER_VERSION}")

    @registry.operation(
        "call_method",
        "Execute a whitelisted Frappe method",
        CallMethodArgs,
        SYSTEM,
    )
    async def call_method(args: CallMethodArgs) -> Dict[str, Any]:
        return json_content(await client.call_method(args.method, args.params or {}))
