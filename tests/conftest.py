"""Shared fixtures: a fake Frappe backend, config builders and a wired service."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterator, List

import httpx
import pytest
from starlette.testclient import TestClient

from mcp_conduit.backend.client import FrappeClient
from mcp_conduit.config import ConduitConfig, build_config
from mcp_conduit.runtime.service import ConduitService
from mcp_conduit.server.app import create_app

BACKEND_URL = "http://erp.test"

CUSTOMER_META: Dict[str, Any] = {
    "name": "Customer",
    "module": "Selling",
    "autoname": "naming_series:",
    "naming_rule": "By \"Naming Series\" field",
    "istable": 0,
    "issingle": 0,
    "is_submittable": 0,
    "fields": [
        {"fieldname": "naming_series", "fieldtype": "Select", "options": "CUST-.YYYY.-\nCUS-"},
        {"fieldname": "customer_name", "label": "Customer Name", "fieldtype": "Data", "reqd": 1},
        {
            "fieldname": "customer_type",
            "label": "Customer Type",
            "fieldtype": "Select",
            "options": "Company\nIndividual",
            "reqd": 1,
        },
        {
            "fieldname": "customer_group",
            "label": "Customer Group",
            "fieldtype": "Link",
            "options": "Customer Group",
        },
        {"fieldname": "notes", "label": "Notes", "fieldtype": "Text"},
    ],
}


class FakeFrappe:
    """In-memory stand-in for the backend REST API, served via ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.user = "Administrator"
        self.documents: Dict[str, List[Dict[str, Any]]] = {
            "Customer": [{"name": "CUST-0001", "customer_name": "Acme"}],
            "Customer Group": [{"name": "Commercial"}, {"name": "Retail"}],
        }
        self.fail_with: int | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            return httpx.Response(self.fail_with, json={"exception": "Simulated failure"})

        path = request.url.path
        if path == "/api/method/frappe.auth.get_logged_user":
            return httpx.Response(200, json={"message": self.user})
        if path == "/api/method/frappe.desk.form.load.getdoctype":
            doctype = request.url.params.get("doctype")
            if doctype != "Customer":
                return httpx.Response(404, json={"exc_type": "DoesNotExistError"})
            return httpx.Response(200, json={"docs": [CUSTOMER_META]})
        if path == "/api/method/frappe.client.get_count":
            body = json.loads(request.content or b"{}")
            return httpx.Response(200, json={"message": len(self.documents.get(body["doctype"], []))})
        if path.startswith("/api/resource/"):
            return self._resource(request, path[len("/api/resource/") :])
        if path.startswith("/api/method/"):
            return httpx.Response(200, json={"message": {"echo": path[len("/api/method/") :]}})
        return httpx.Response(404, json={"message": "Not found"})

    def _resource(self, request: httpx.Request, tail: str) -> httpx.Response:
        doctype, _, name = tail.partition("/")
        docs = self.documents.setdefault(doctype, [])
        if request.method == "GET" and not name:
            return httpx.Response(200, json={"data": docs})
        if request.method == "GET":
            for doc in docs:
                if doc["name"] == name:
                    return httpx.Response(200, json={"data": doc})
            return httpx.Response(404, json={"exc_type": "DoesNotExistError"})
        if request.method == "POST":
            values = json.loads(request.content)
            doc = {"name": f"{doctype[:4].upper()}-{len(docs) + 1:04d}", **values}
            docs.append(doc)
            return httpx.Response(200, json={"data": doc})
        if request.method == "PUT":
            values = json.loads(request.content)
            return httpx.Response(200, json={"data": {"name": name, **values}})
        if request.method == "DELETE":
            return httpx.Response(202, json={"message": "ok"})
        return httpx.Response(405)


class FakeValidator:
    """Credential validator that counts calls and optionally fails."""

    def __init__(self, error: Exception | None = None) -> None:
        self.calls = 0
        self.error = error

    async def validate(self) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return "Administrator"


def make_config(**sections: Any) -> ConduitConfig:
    """Build a config from section dicts without reading the real environment."""
    raw: Dict[str, Any] = {
        "backend": {"url": BACKEND_URL, "api_key": "key-1234", "api_secret": "secret-5678"}
    }
    for name, values in sections.items():
        raw.setdefault(name, {}).update(values)
    return build_config(raw, environ={})


@pytest.fixture()
def fake_frappe() -> FakeFrappe:
    return FakeFrappe()


@pytest.fixture()
def frappe_client(fake_frappe: FakeFrappe) -> FrappeClient:
    return FrappeClient(
        BACKEND_URL,
        api_key="key-1234",
        api_secret="secret-5678",
        transport=httpx.MockTransport(fake_frappe),
    )


@pytest.fixture()
def validator() -> FakeValidator:
    return FakeValidator()


@pytest.fixture()
def service(frappe_client: FrappeClient, validator: FakeValidator) -> ConduitService:
    return ConduitService(make_config(), client=frappe_client, validator=validator)


@pytest.fixture()
def client(service: ConduitService) -> Iterator[TestClient]:
    with TestClient(create_app(service=service)) as test_client:
        yield test_client


def rpc(method: str, params: Dict[str, Any] | None = None, id: Any = 1) -> Dict[str, Any]:
    """Build a JSON-RPC request envelope."""
    envelope: Dict[str, Any] = {"jsonrpc": "2.0", "method": method}
    if params is not None:
        envelope["params"] = params
    if id is not None:
        envelope["id"] = id
    return envelope


def sse_payloads(body: str) -> List[Dict[str, Any]]:
    """Decode the ``data:`` frames of an SSE body."""
    return [
        json.loads(line[len("data: ") :])
        for line in body.splitlines()
        if line.startswith("data: ")
    ]
