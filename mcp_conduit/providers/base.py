"""Collaborator interfaces consumed by the dispatcher and the service."""

from typing import Any, Dict, List, Mapping, Optional, Protocol


class ResourceProvider(Protocol):
    async def list(self) -> List[Dict[str, Any]]: ...

    async def get(self, uri: str) -> Optional[Dict[str, Any]]:
        """Return ``{uri, mimeType, text}`` or ``None`` when *uri* is unknown."""
        ...

    def categories(self) -> Dict[str, Dict[str, str]]: ...


class PromptProvider(Protocol):
    async def list(self) -> List[Dict[str, Any]]: ...

    async def get(self, name: str, arguments: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """Return ``{description, messages}`` or ``None`` when *name* is unknown.

        Raises :class:`~mcp_conduit.errors.InvalidParamsError` when a
        required argument is missing.
        """
        ...


class CredentialValidator(Protocol):
    async def validate(self) -> Any:
        """Raise on invalid credentials."""
        ...
