"""Configuration loading and validation for MCP Conduit."""

from mcp_conduit.config.env import apply_env_overrides, expand_env_vars
from mcp_conduit.config.loader import build_config, find_config_file, load_config
from mcp_conduit.config.schema import (
    BackendSettings,
    ConduitConfig,
    MetricsSettings,
    RateLimitSettings,
    ServerSettings,
    SessionSettings,
    TransportSettings,
)

__all__ = [
    "BackendSettings",
    "ConduitConfig",
    "MetricsSettings",
    "RateLimitSettings",
    "ServerSettings",
    "SessionSettings",
    "TransportSettings",
    "apply_env_overrides",
    "build_config",
    "expand_env_vars",
    "find_config_file",
    "load_config",
]
