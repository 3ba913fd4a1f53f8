"""Resource and prompt providers."""

from mcp_conduit.providers.base import CredentialValidator, PromptProvider, ResourceProvider
from mcp_conduit.providers.prompts import StaticPromptProvider
from mcp_conduit.providers.resources import StaticResourceProvider

__all__ = [
    "CredentialValidator",
    "PromptProvider",
    "ResourceProvider",
    "StaticPromptProvider",
    "StaticResourceProvider",
]
