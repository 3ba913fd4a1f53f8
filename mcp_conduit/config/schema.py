"""Pydantic configuration models for MCP Conduit.

Defines the validated config structure using the versioned v1 format.
Every section has defaults, so an empty file (or no file) is valid.
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from mcp_conduit.constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_STREAM_DENYLIST,
    DEFAULT_STREAM_METHODS,
    HEARTBEAT_INTERVAL,
    MAX_BODY_BYTES,
    METRICS_COMPACT_INTERVAL,
    RATE_LIMIT_MAX_REQUESTS,
    RATE_LIMIT_SWEEP_INTERVAL,
    RATE_LIMIT_WINDOW,
    RESPONSE_SAMPLE_CAP,
    RESPONSE_SAMPLE_KEEP,
    SESSION_SWEEP_INTERVAL,
    SESSION_TIMEOUT,
)

ServerMode = Literal["development", "production"]


class ServerSettings(BaseModel):
    """HTTP listener and access-control settings."""

    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    mode: ServerMode = Field(
        default="development",
        description="'production' enables the API key check and rate limiting; "
        "'development' adds error detail to internal errors.",
    )
    api_key: Optional[str] = Field(
        default=None,
        description="Shared secret expected in x-api-key or Authorization: Bearer.",
    )
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    max_body_bytes: int = Field(
        default=MAX_BODY_BYTES,
        ge=1,
        description="Largest accepted request body; bigger ones get HTTP 413.",
    )

    @field_validator("mode", mode="before")
    @classmethod
    def _normalise_mode(cls, v: object) -> object:
        """Accept 'dev'/'prod' shorthands, case-insensitively."""
        if isinstance(v, str):
            v = v.strip().lower()
            return {"dev": "development", "prod": "production"}.get(v, v)
        return v

    @field_validator("api_key", mode="before")
    @classmethod
    def _blank_key_is_none(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class SessionSettings(BaseModel):
    timeout_seconds: float = Field(default=SESSION_TIMEOUT, gt=0)
    sweep_interval: float = Field(default=SESSION_SWEEP_INTERVAL, gt=0)


class RateLimitSettings(BaseModel):
    max_requests: int = Field(default=RATE_LIMIT_MAX_REQUESTS, ge=1)
    window_seconds: float = Field(default=RATE_LIMIT_WINDOW, gt=0)
    sweep_interval: float = Field(default=RATE_LIMIT_SWEEP_INTERVAL, gt=0)


class TransportSettings(BaseModel):
    """Streaming negotiation knobs."""

    stream_methods: List[str] = Field(default_factory=lambda: list(DEFAULT_STREAM_METHODS))
    stream_denylist: List[str] = Field(default_factory=lambda: list(DEFAULT_STREAM_DENYLIST))
    heartbeat_interval: float = Field(default=HEARTBEAT_INTERVAL, gt=0)


class MetricsSettings(BaseModel):
    sample_cap: int = Field(default=RESPONSE_SAMPLE_CAP, ge=1)
    sample_keep: int = Field(default=RESPONSE_SAMPLE_KEEP, ge=1)
    compact_interval: float = Field(default=METRICS_COMPACT_INTERVAL, gt=0)

    @model_validator(mode="after")
    def _keep_within_cap(self) -> "MetricsSettings":
        if self.sample_keep > self.sample_cap:
            raise ValueError("sample_keep must not exceed sample_cap")
        return self


class BackendSettings(BaseModel):
    """Connection to the Frappe-style REST backend."""

    url: str = "http://localhost:8000"
    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    timeout: float = Field(default=30.0, gt=0)
    validate_on_startup: bool = Field(
        default=True,
        description="Check the credentials against the backend before serving.",
    )

    @field_validator("url")
    @classmethod
    def _validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("Backend URL must start with http:// or https://")
        return v.rstrip("/")


class ConduitConfig(BaseModel):
    """Top-level validated configuration for MCP Conduit.

    Supports version ``"1"`` format::

        {
            "version": "1",
            "server": { ... },
            "sessions": { ... },
            "rate_limit": { ... },
            "transport": { ... },
            "metrics": { ... },
            "backend": { ... }
        }
    """

    version: str = "1"
    server: ServerSettings = Field(default_factory=ServerSettings)
    sessions: SessionSettings = Field(default_factory=SessionSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    transport: TransportSettings = Field(default_factory=TransportSettings)
    metrics: MetricsSettings = Field(default_factory=MetricsSettings)
    backend: BackendSettings = Field(default_factory=BackendSettings)

    @field_validator("version")
    @classmethod
    def _validate_version(cls, v: str) -> str:
        if v != "1":
            raise ValueError(f"Unsupported config version '{v}' (expected '1')")
        return v

    @property
    def guarded(self) -> bool:
        return self.server.mode == "production"

    @property
    def diagnostic(self) -> bool:
        return self.server.mode == "development"
