"""Async HTTP client for a Frappe-style REST backend.

Wraps ``/api/resource/<doctype>`` (CRUD) and ``/api/method/<dotted.path>``
(whitelisted RPC) behind a small typed surface.  Every transport or HTTP
failure is mapped onto :class:`~mcp_conduit.errors.BackendError`.

The client also serves as the startup credential validator: :meth:`validate`
asks the backend who the configured key belongs to and fails if it cannot.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from mcp_conduit.errors import BackendError

logger = logging.getLogger(__name__)

# Default timeout for backend calls (seconds).
_DEFAULT_TIMEOUT = 30.0

_LOGGED_USER_METHOD = "frappe.auth.get_logged_user"


def _path_segment(value: str) -> str:
    return quote(value, safe="")


def _error_detail(resp: httpx.Response) -> str:
    """Pull the most useful message out of a Frappe error body."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200] or resp.reason_phrase
    if isinstance(body, dict):
        for key in ("message", "exception", "exc_type"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
        server_messages = body.get("_server_messages")
        if isinstance(server_messages, str) and server_messages:
            return server_messages
    return resp.reason_phrase


class FrappeClient:
    """Async client for the backend REST API.

    Parameters
    ----------
    base_url:
        Root URL of the backend, e.g. ``https://erp.example.com``.
    api_key / api_secret:
        Token credentials sent as ``Authorization: token <key>:<secret>``.
    timeout:
        Per-request timeout in seconds.
    transport:
        Optional ``httpx`` transport (tests pass an ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        timeout: float = _DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._api_secret = api_secret
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    # ── Lifecycle ────────────────────────────────────────────────

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def has_credentials(self) -> bool:
        return bool(self._api_key and self._api_secret)

    async def connect(self) -> None:
        """Create the underlying ``httpx.AsyncClient``."""
        if self.is_connected:
            return
        headers: Dict[str, str] = {"Accept": "application/json"}
        if self.has_credentials:
            headers["Authorization"] = f"token {self._api_key}:{self._api_secret}"
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=self._timeout,
            transport=self._transport,
        )
        logger.info("Backend client connected to %s", self._base_url)

    async def close(self) -> None:
        """Shut down the HTTP client gracefully."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Backend client closed")

    @property
    def is_connected(self) -> bool:
        return self._client is not None and not self._client.is_closed

    # ── Private helpers ──────────────────────────────────────────

    async def _ensure_client(self) -> httpx.AsyncClient:
        if not self.is_connected:
            await self.connect()
        assert self._client is not None
        return self._client

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Any] = None,
    ) -> Any:
        client = await self._ensure_client()
        logger.debug("Backend %s %s", method, path)
        try:
            resp = await client.request(method, path, params=params, json=json_body)
        except httpx.TimeoutException as exc:
            raise BackendError(f"{method} {path} timed out", orig_exc=exc) from exc
        except httpx.RequestError as exc:
            raise BackendError(f"{method} {path} failed", orig_exc=exc) from exc

        if resp.is_error:
            raise BackendError(_error_detail(resp), status_code=resp.status_code)
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise BackendError(
                f"{method} {path} returned a non-JSON body", status_code=resp.status_code
            ) from exc

    # ── Documents ────────────────────────────────────────────────

    async def get_document(
        self, doctype: str, name: str, fields: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        params = {"fields": json.dumps(fields)} if fields else None
        body = await self._request(
            "GET",
            f"/api/resource/{_path_segment(doctype)}/{_path_segment(name)}",
            params=params,
        )
        return (body or {}).get("data") or {}

    async def create_document(self, doctype: str, values: Dict[str, Any]) -> Dict[str, Any]:
        body = await self._request(
            "POST", f"/api/resource/{_path_segment(doctype)}", json_body=values
        )
        return (body or {}).get("data") or {}

    async def update_document(
        self, doctype: str, name: str, values: Dict[str, Any]
    ) -> Dict[str, Any]:
        body = await self._request(
            "PUT",
            f"/api/resource/{_path_segment(doctype)}/{_path_segment(name)}",
            json_body=values,
        )
        return (body or {}).get("data") or {}

    async def delete_document(self, doctype: str, name: str) -> None:
        await self._request(
            "DELETE", f"/api/resource/{_path_segment(doctype)}/{_path_segment(name)}"
        )

    async def list_documents(
        self,
        doctype: str,
        filters: Optional[Dict[str, Any]] = None,
        fields: Optional[List[str]] = None,
        limit: Optional[int] = None,
        order_by: Optional[str] = None,
        limit_start: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {}
        if filters:
            params["filters"] = json.dumps(filters)
        if fields:
            params["fields"] = json.dumps(fields)
        if limit is not None:
            params["limit_page_length"] = limit
        if order_by:
            params["order_by"] = order_by
        if limit_start is not None:
            params["limit_start"] = limit_start
        body = await self._request(
            "GET", f"/api/resource/{_path_segment(doctype)}", params=params or None
        )
        return (body or {}).get("data") or []

    # ── Whitelisted methods ──────────────────────────────────────

    async def call_method(
        self,
        method: str,
        params: Optional[Dict[str, Any]] = None,
        http_method: str = "POST",
    ) -> Any:
        """Call ``/api/method/<method>`` and return its ``message`` payload."""
        path = f"/api/method/{method}"
        if http_method.upper() == "GET":
            body = await self._request("GET", path, params=params)
        else:
            body = await self._request(http_method.upper(), path, json_body=params or {})
        if isinstance(body, dict) and "message" in body:
            return body["message"]
        return body

    async def get_doctype_meta(self, doctype: str) -> Dict[str, Any]:
        """Return the DocType definition (fields, naming, flags)."""
        body = await self._request(
            "GET",
            "/api/method/frappe.desk.form.load.getdoctype",
            params={"doctype": doctype},
        )
        docs = (body or {}).get("docs") or []
        for doc in docs:
            if doc.get("name") == doctype:
                return doc
        if docs:
            return docs[0]
        raise BackendError(f"DocType '{doctype}' not found", status_code=404)

    # ── Credential validation ────────────────────────────────────

    async def validate(self) -> str:
        """Confirm the configured credentials; return the logged-in user.

        Raises:
            BackendError: No credentials are configured, or the backend
                rejected them.
        """
        if not self.has_credentials:
            raise BackendError("API key and secret are not configured")
        user = await self.call_method(_LOGGED_USER_METHOD, http_method="GET")
        if not user or user == "Guest":
            raise BackendError("Credentials were not accepted (logged in as Guest)")
        logger.info("Backend credentials valid (user=%s).", user)
        return str(user)
