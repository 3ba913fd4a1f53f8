"""Wire shapes: JSON-RPC envelopes and pydantic models for the status endpoints."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from mcp_conduit.errors import RpcError

JSONRPC_VERSION = "2.0"

# ── JSON-RPC envelopes ───────────────────────────────────────────────────


def result_envelope(request_id: Any, result: Any) -> Dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def error_envelope(request_id: Any, error: RpcError) -> Dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error.to_dict()}


def progress_notification(method: str, params: Dict[str, Any]) -> Dict[str, Any]:
    """A ``<method>/progress`` notification frame (no id)."""
    return {"jsonrpc": JSONRPC_VERSION, "method": f"{method}/progress", "params": params}


# ── GET /health ──────────────────────────────────────────────────────────


class HealthResponse(BaseModel):
    status: str = "healthy"
    server: str
    version: str
    transport: str
    sessions: int = 0


# ── GET /info ────────────────────────────────────────────────────────────


class InfoCapabilities(BaseModel):
    streaming: bool = True
    stateful: bool = True
    rateLimit: bool = False
    authentication: bool = False


class InfoTools(BaseModel):
    total: int = 0
    byCategory: Dict[str, int] = Field(default_factory=dict)


class InfoResponse(BaseModel):
    name: str
    title: str
    version: str
    transport: str
    protocol: str
    mode: str
    capabilities: InfoCapabilities = Field(default_factory=InfoCapabilities)
    tools: InfoTools = Field(default_factory=InfoTools)
    categories: Dict[str, Dict[str, str]] = Field(default_factory=dict)
    endpoints: Dict[str, str] = Field(default_factory=dict)


# ── GET /tools, /resources, /prompts ─────────────────────────────────────


class CatalogSummary(BaseModel):
    total: int = 0
    byCategory: Optional[Dict[str, int]] = None
    categories: Optional[List[str]] = None


class ToolsCatalogResponse(BaseModel):
    tools: List[Dict[str, Any]] = Field(default_factory=list)
    categories: Dict[str, Dict[str, str]] = Field(default_factory=dict)
    summary: CatalogSummary = Field(default_factory=CatalogSummary)


class ResourcesCatalogResponse(BaseModel):
    resources: List[Dict[str, Any]] = Field(default_factory=list)
    categories: Dict[str, Dict[str, str]] = Field(default_factory=dict)
    summary: CatalogSummary = Field(default_factory=CatalogSummary)


class PromptsCatalogResponse(BaseModel):
    prompts: List[Dict[str, Any]] = Field(default_factory=list)
    summary: CatalogSummary = Field(default_factory=CatalogSummary)


class ErrorResponse(BaseModel):
    error: str
    message: str = ""
