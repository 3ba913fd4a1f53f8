"""HTTP endpoints.

``POST /`` carries JSON-RPC requests and answers buffered or streamed;
``GET /`` opens a standalone event stream bound to a fresh session; the
remaining ``GET`` routes are read-only JSON snapshots.
"""

import logging
from typing import Any, Dict, Optional

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from mcp_conduit.constants import (
    PROTOCOL_VERSION,
    SERVER_NAME,
    SERVER_TITLE,
    SERVER_VERSION,
    SESSION_HEADER,
    TRANSPORT_NAME,
)
from mcp_conduit.errors import InternalError
from mcp_conduit.runtime.service import ConduitService
from mcp_conduit.server.dispatcher import EnvelopeError, RpcOutcome, RpcRequest
from mcp_conduit.server.middleware.metrics import OPERATION_STATE_KEY
from mcp_conduit.server.schemas import (
    CatalogSummary,
    HealthResponse,
    InfoCapabilities,
    InfoResponse,
    InfoTools,
    PromptsCatalogResponse,
    ResourcesCatalogResponse,
    ToolsCatalogResponse,
    error_envelope,
    progress_notification,
)
from mcp_conduit.server.transport import DeliveryMode, SseChannel

logger = logging.getLogger(__name__)

PROMPT_KINDS = ["workflow", "analysis", "troubleshooting", "migration"]

ENDPOINTS = {
    "mcp": "/",
    "health": "/health",
    "info": "/info",
    "metrics": "/metrics",
    "tools": "/tools",
    "resources": "/resources",
    "prompts": "/prompts",
}


# ── Helpers ──────────────────────────────────────────────────────────────


def _get_service(request: Request) -> ConduitService:
    """Retrieve the ConduitService instance from app state."""
    service: Optional[ConduitService] = getattr(request.app.state, "conduit_service", None)
    if service is None:
        raise RuntimeError("ConduitService not found on app.state")
    return service


def _session_headers(session_id: Optional[str]) -> Dict[str, str]:
    return {SESSION_HEADER: session_id} if session_id else {}


def _buffered(outcome: RpcOutcome) -> Response:
    headers = _session_headers(outcome.session_id)
    body = outcome.body
    if body is None:
        return Response(status_code=outcome.http_status, headers=headers)
    return JSONResponse(body, status_code=outcome.http_status, headers=headers)


def _resolve_session(service: ConduitService, request: Request) -> Optional[str]:
    """Return the caller's session id if it names a live session, touching it."""
    session_id = request.headers.get(SESSION_HEADER)
    if session_id and session_id in service.sessions:
        service.sessions.touch(session_id)
        return session_id
    return None


def _progress_params(rpc: RpcRequest, session_id: Optional[str]) -> Dict[str, Any]:
    params: Dict[str, Any] = {"status": "started", "sessionId": session_id}
    if rpc.operation_name:
        params["tool"] = rpc.operation_name
    elif rpc.method == "resources/read":
        params["uri"] = rpc.params.get("uri")
    elif rpc.method == "prompts/get":
        params["prompt"] = rpc.params.get("name")
    return params


def _server_info() -> Dict[str, str]:
    return {"name": SERVER_NAME, "version": SERVER_VERSION}


# ── POST / ───────────────────────────────────────────────────────────────


async def handle_rpc(request: Request) -> Response:
    """Main JSON-RPC endpoint."""
    service = _get_service(request)
    dispatcher = service.dispatcher

    try:
        rpc = dispatcher.parse(await request.body())
    except EnvelopeError as exc:
        logger.info("Rejected envelope: %s", exc.error.message)
        return _buffered(exc.outcome())

    session_id = _resolve_session(service, request)
    if session_id is None and rpc.method == "initialize":
        client = request.client.host if request.client else None
        session_id = service.sessions.create(client_id=client).id

    if rpc.operation_name:
        setattr(request.state, OPERATION_STATE_KEY, rpc.operation_name)

    mode = service.negotiator.negotiate(
        rpc.method,
        user_agent=request.headers.get("user-agent", ""),
        accept=request.headers.get("accept", ""),
        is_notification=rpc.is_notification,
    )
    logger.debug("%s (id=%r) delivered %s.", rpc.method, rpc.id, mode.value)

    if mode is DeliveryMode.BUFFERED:
        return _buffered(await dispatcher.dispatch(rpc, session_id))

    terminal_sent = False

    async def produce(channel: SseChannel) -> None:
        nonlocal terminal_sent
        channel.send(progress_notification(rpc.method, _progress_params(rpc, session_id)))
        outcome = await dispatcher.dispatch(rpc, session_id)
        channel.send(outcome.body or {})
        terminal_sent = True

    def failure_frame(exc: Exception) -> Optional[Dict[str, Any]]:
        if terminal_sent:
            return None
        return error_envelope(rpc.id, dispatcher.internal_error(exc))

    channel = service.negotiator.open_channel()
    return service.negotiator.stream_response(
        channel.frames(produce, on_failure=failure_frame), session_id
    )


# ── GET / ────────────────────────────────────────────────────────────────


async def handle_stream(request: Request) -> Response:
    """Standalone event stream: welcome frame, then heartbeats until disconnect."""
    service = _get_service(request)
    client = request.client.host if request.client else None
    session = service.sessions.create(client_id=client, transport_type="sse")
    logger.info("Opening SSE stream for session %s", session.id)

    def release() -> None:
        service.sessions.remove(session.id)
        logger.info("SSE stream closed for session %s", session.id)

    channel = service.negotiator.open_channel(on_close=release)
    channel.send(
        {
            "type": "welcome",
            "sessionId": session.id,
            "protocolVersion": PROTOCOL_VERSION,
            "serverInfo": _server_info(),
        }
    )
    return service.negotiator.stream_response(channel.frames(), session.id)


# ── GET /health ──────────────────────────────────────────────────────────


async def handle_health(request: Request) -> JSONResponse:
    service = _get_service(request)
    resp = HealthResponse(
        status="healthy" if service.is_running else service.state.value,
        server=SERVER_NAME,
        version=SERVER_VERSION,
        transport=TRANSPORT_NAME,
        sessions=service.sessions.active_count,
    )
    return JSONResponse(resp.model_dump())


# ── GET /info ────────────────────────────────────────────────────────────


async def handle_info(request: Request) -> JSONResponse:
    service = _get_service(request)
    registry = service.registry
    resp = InfoResponse(
        name=SERVER_NAME,
        title=SERVER_TITLE,
        version=SERVER_VERSION,
        transport=TRANSPORT_NAME,
        protocol=PROTOCOL_VERSION,
        mode=service.config.server.mode,
        capabilities=InfoCapabilities(
            rateLimit=service.guarded,
            authentication=service.guarded and bool(service.config.server.api_key),
        ),
        tools=InfoTools(total=len(registry), byCategory=registry.counts_by_category()),
        categories=registry.categories,
        endpoints=ENDPOINTS,
    )
    return JSONResponse(resp.model_dump())


# ── GET /metrics ─────────────────────────────────────────────────────────


async def handle_metrics(request: Request) -> JSONResponse:
    service = _get_service(request)
    snapshot = service.metrics.snapshot()
    snapshot["sessions"]["active"] = service.sessions.active_count
    return JSONResponse(snapshot)


# ── GET /tools, /resources, /prompts ─────────────────────────────────────


async def handle_tools(request: Request) -> JSONResponse:
    service = _get_service(request)
    registry = service.registry
    resp = ToolsCatalogResponse(
        tools=registry.describe(),
        categories=registry.categories,
        summary=CatalogSummary(total=len(registry), byCategory=registry.counts_by_category()),
    )
    return JSONResponse(resp.model_dump(exclude_none=True))


async def handle_resources(request: Request) -> JSONResponse:
    service = _get_service(request)
    resources = await service.resources.list()
    categories = service.resources.categories()
    by_category = {
        key: sum(1 for r in resources if f"://{key}/" in r.get("uri", "")) for key in categories
    }
    resp = ResourcesCatalogResponse(
        resources=resources,
        categories=categories,
        summary=CatalogSummary(total=len(resources), byCategory=by_category),
    )
    return JSONResponse(resp.model_dump(exclude_none=True))


async def handle_prompts(request: Request) -> JSONResponse:
    service = _get_service(request)
    prompts = await service.prompts.list()
    resp = PromptsCatalogResponse(
        prompts=prompts,
        summary=CatalogSummary(total=len(prompts), categories=PROMPT_KINDS),
    )
    return JSONResponse(resp.model_dump(exclude_none=True))


# ── Catch-all ────────────────────────────────────────────────────────────


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    """Outermost handler: any escaped exception becomes a -32603 envelope."""
    logger.exception("Unhandled exception for %s %s", request.method, request.url.path)
    service: Optional[ConduitService] = getattr(request.app.state, "conduit_service", None)
    if service is not None:
        error = service.dispatcher.internal_error(exc)
    else:
        error = InternalError("Internal error")
    return JSONResponse(error_envelope(None, error), status_code=error.http_status)
