"""Small helpers shared by the pure ASGI middleware stages."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from starlette.responses import JSONResponse
from starlette.types import Receive, Scope, Send

from mcp_conduit.errors import RpcError
from mcp_conduit.server.schemas import error_envelope


def header_value(scope: Scope, name: str) -> str:
    """Return the first value of header *name* (lower-case) or ``""``."""
    key = name.encode("latin-1")
    for raw_key, raw_value in scope.get("headers", []):
        if raw_key == key:
            return raw_value.decode("latin-1")
    return ""


def client_identity(scope: Scope) -> str:
    """Identify the caller: peer address, else first forwarded-for hop."""
    client = scope.get("client")
    if client and client[0]:
        return str(client[0])
    forwarded = header_value(scope, "x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return "unknown"


async def drain_body(receive: Receive) -> bytes:
    """Read the complete request body from *receive*."""
    chunks = []
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            break
        chunks.append(message.get("body", b""))
        if not message.get("more_body", False):
            break
    return b"".join(chunks)


def peek_request_id(body: bytes) -> Any:
    """Best-effort extraction of the JSON-RPC ``id`` from a raw body."""
    try:
        payload = json.loads(body)
    except ValueError:
        return None
    if isinstance(payload, dict):
        return payload.get("id")
    return None


async def send_rpc_error(
    error: RpcError,
    scope: Scope,
    receive: Receive,
    send: Send,
    headers: Optional[Dict[str, str]] = None,
) -> None:
    """Short-circuit the request with a JSON-RPC error envelope.

    The body is drained first so the error can echo the caller's ``id``.
    """
    request_id = None
    if scope.get("method") == "POST":
        request_id = peek_request_id(await drain_body(receive))
    response = JSONResponse(
        error_envelope(request_id, error),
        status_code=error.http_status,
        headers=headers,
    )
    await response(scope, receive, send)
