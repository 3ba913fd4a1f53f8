"""Tests for OperationRegistry and the built-in operations catalog."""

from __future__ import annotations

import json
from typing import Any, Dict, List

import pytest
from pydantic import Field

from mcp_conduit.backend.client import FrappeClient
from mcp_conduit.errors import BackendError, InvalidParamsError, NotFoundError
from mcp_conduit.operations import CATEGORIES, build_registry
from mcp_conduit.operations.base import OperationArgs, text_content
from mcp_conduit.server.registry import (
    CategoryInfo,
    OperationRegistry,
    RegistryFrozenError,
)

EXPECTED_OPERATIONS = {
    "system": {"ping", "version", "call_method"},
    "document": {
        "create_document",
        "get_document",
        "update_document",
        "delete_document",
        "list_documents",
        "reconcile_bank_transaction_with_vouchers",
    },
    "schema": {"get_doctype_schema", "get_field_options"},
    "helper": {
        "find_doctypes",
        "get_module_list",
        "get_doctypes_in_module",
        "check_doctype_exists",
        "check_document_exists",
        "get_document_count",
        "get_naming_info",
        "get_required_fields",
    },
    "report": {
        "run_query_report",
        "get_report_meta",
        "list_reports",
        "export_report",
        "get_financial_statements",
        "get_report_columns",
        "run_doctype_report",
    },
}


class EchoArgs(OperationArgs):
    text: str = Field(min_length=1)
    times: int = Field(default=1, ge=1)


def _small_registry(calls: List[Any]) -> OperationRegistry:
    registry = OperationRegistry({"system": CategoryInfo("System", "System tools")})

    @registry.operation("echo", "Echo text back", EchoArgs, "system")
    async def echo(args: EchoArgs) -> Dict[str, Any]:
        calls.append(args)
        return text_content(args.text * args.times)

    return registry


def _text(result: Dict[str, Any]) -> str:
    return result["content"][0]["text"]


# ════════════════════════════════════════════════════════════════════════
#  Registry mechanics
# ════════════════════════════════════════════════════════════════════════


class TestOperationRegistry:
    @pytest.mark.asyncio
    async def test_invoke_runs_handler_with_typed_args(self) -> None:
        calls: List[Any] = []
        registry = _small_registry(calls)
        result = await registry.invoke("echo", {"text": "ab", "times": 2})
        assert _text(result) == "abab"
        assert isinstance(calls[0], EchoArgs)

    @pytest.mark.asyncio
    async def test_unknown_operation(self) -> None:
        registry = _small_registry([])
        with pytest.raises(NotFoundError) as exc_info:
            await registry.invoke("nope", {})
        assert exc_info.value.code == -32601
        assert exc_info.value.message == "Tool 'nope' not found"
        assert exc_info.value.data == {"availableTools": ["echo"]}

    @pytest.mark.asyncio
    async def test_invalid_arguments_never_reach_handler(self) -> None:
        calls: List[Any] = []
        registry = _small_registry(calls)
        for bad in ({}, {"text": ""}, {"text": "a", "times": 0}, {"text": "a", "x": 1}):
            with pytest.raises(InvalidParamsError) as exc_info:
                await registry.invoke("echo", bad)
            assert exc_info.value.code == -32602
            assert exc_info.value.data
        assert calls == []

    def test_duplicate_and_unknown_category_rejected(self) -> None:
        registry = _small_registry([])

        async def handler(args: EchoArgs) -> Dict[str, Any]:
            return text_content("")

        with pytest.raises(ValueError):
            registry.operation("echo", "again", EchoArgs, "system")(handler)
        with pytest.raises(ValueError):
            registry.operation("other", "x", EchoArgs, "reports")(handler)

    def test_frozen_registry_rejects_registration(self) -> None:
        registry = _small_registry([]).freeze()
        assert registry.frozen
        with pytest.raises(RegistryFrozenError):
            registry.operation("late", "x", EchoArgs, "system")(lambda args: None)

    def test_describe(self) -> None:
        [entry] = _small_registry([]).describe()
        assert entry["name"] == "echo"
        assert entry["category"] == "system"
        assert entry["categoryInfo"] == {"name": "System", "description": "System tools", "icon": ""}
        assert entry["inputSchema"]["required"] == ["text"]


# ════════════════════════════════════════════════════════════════════════
#  Built-in catalog
# ════════════════════════════════════════════════════════════════════════


class TestCatalog:
    def test_every_operation_registered_in_its_category(self, frappe_client: FrappeClient) -> None:
        registry = build_registry(frappe_client)
        assert registry.frozen
        assert len(registry) == 26
        assert set(registry.categories) == set(CATEGORIES)
        for category, names in EXPECTED_OPERATIONS.items():
            assert {op.name for op in registry if op.category == category} == names
        assert registry.counts_by_category() == {
            k: len(v) for k, v in EXPECTED_OPERATIONS.items()
        }

    def test_every_schema_is_closed_object(self, frappe_client: FrappeClient) -> None:
        for entry in build_registry(frappe_client).describe():
            schema = entry["inputSchema"]
            assert schema["type"] == "object"
            assert schema["additionalProperties"] is False

    @pytest.mark.asyncio
    async def test_ping(self, frappe_client: FrappeClient, fake_frappe) -> None:
        result = await build_registry(frappe_client).invoke("ping", {})
        assert result == {"content": [{"type": "text", "text": "pong"}]}
        assert fake_frappe.requests == []

    @pytest.mark.asyncio
    async def test_get_document(self, frappe_client: FrappeClient) -> None:
        result = await build_registry(frappe_client).invoke(
            "get_document", {"doctype": "Customer", "name": "CUST-0001"}
        )
        assert json.loads(_text(result))["customer_name"] == "Acme"

    @pytest.mark.asyncio
    async def test_create_document(self, frappe_client: FrappeClient, fake_frappe) -> None:
        result = await build_registry(frappe_client).invoke(
            "create_document", {"doctype": "Customer", "values": {"customer_name": "Globex"}}
        )
        assert _text(result) == "Document created successfully. Name: CUST-0002"
        request = fake_frappe.requests[-1]
        assert request.method == "POST"
        assert request.headers["authorization"] == "token key-1234:secret-5678"

    @pytest.mark.asyncio
    async def test_list_documents_passes_query(self, frappe_client: FrappeClient, fake_frappe) -> None:
        await build_registry(frappe_client).invoke(
            "list_documents",
            {"doctype": "Customer", "filters": {"customer_name": "Acme"}, "limit": 5},
        )
        params = fake_frappe.requests[-1].url.params
        assert json.loads(params["filters"]) == {"customer_name": "Acme"}
        assert params["limit_page_length"] == "5"

    @pytest.mark.asyncio
    async def test_get_doctype_schema(self, frappe_client: FrappeClient) -> None:
        result = await build_registry(frappe_client).invoke(
            "get_doctype_schema", {"doctype": "Customer"}
        )
        schema = json.loads(_text(result))
        assert schema["name"] == "Customer"
        assert [f["fieldname"] for f in schema["fields"]][:2] == ["naming_series", "customer_name"]

    @pytest.mark.asyncio
    async def test_field_options_select_and_link(self, frappe_client: FrappeClient) -> None:
        registry = build_registry(frappe_client)
        select = json.loads(
            _text(
                await registry.invoke(
                    "get_field_options", {"doctype": "Customer", "fieldname": "customer_type"}
                )
            )
        )
        assert select["options"] == ["Company", "Individual"]
        link = json.loads(
            _text(
                await registry.invoke(
                    "get_field_options", {"doctype": "Customer", "fieldname": "customer_group"}
                )
            )
        )
        assert link["options"] == ["Commercial", "Retail"]

    @pytest.mark.asyncio
    async def test_field_options_rejects_other_fields(self, frappe_client: FrappeClient) -> None:
        registry = build_registry(frappe_client)
        with pytest.raises(InvalidParamsError):
            await registry.invoke("get_field_options", {"doctype": "Customer", "fieldname": "notes"})
        with pytest.raises(InvalidParamsError):
            await registry.invoke("get_field_options", {"doctype": "Customer", "fieldname": "zzz"})

    @pytest.mark.asyncio
    async def test_required_fields_and_naming(self, frappe_client: FrappeClient) -> None:
        registry = build_registry(frappe_client)
        required = json.loads(
            _text(await registry.invoke("get_required_fields", {"doctype": "Customer"}))
        )
        assert [f["fieldname"] for f in required] == ["customer_name", "customer_type"]
        naming = json.loads(_text(await registry.invoke("get_naming_info", {"doctype": "Customer"})))
        assert naming["naming_series"] == ["CUST-.YYYY.-", "CUS-"]

    @pytest.mark.asyncio
    async def test_document_count(self, frappe_client: FrappeClient) -> None:
        result = await build_registry(frappe_client).invoke(
            "get_document_count", {"doctype": "Customer Group"}
        )
        assert json.loads(_text(result)) == {"count": 2}

    @pytest.mark.asyncio
    async def test_backend_failure_propagates(self, frappe_client: FrappeClient, fake_frappe) -> None:
        fake_frappe.fail_with = 417
        with pytest.raises(BackendError) as exc_info:
            await build_registry(frappe_client).invoke(
                "get_document", {"doctype": "Customer", "name": "CUST-0001"}
            )
        assert exc_info.value.status_code == 417
        assert "Simulated failure" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_export_report_calls_query_report(
        self, frappe_client: FrappeClient, fake_frappe
    ) -> None:
        result = await build_registry(frappe_client).invoke(
            "export_report", {"report_name": "General Ledger", "file_format": "CSV"}
        )
        assert json.loads(_text(result)) == {"echo": "frappe.desk.query_report.export_query"}
        body = json.loads(fake_frappe.requests[-1].content)
        assert body == {"report_name": "General Ledger", "file_format": "CSV", "filters": {}}

    @pytest.mark.asyncio
    async def test_export_report_rejects_unknown_format(self, frappe_client: FrappeClient) -> None:
        with pytest.raises(InvalidParamsError):
            await build_registry(frappe_client).invoke(
                "export_report", {"report_name": "General Ledger", "file_format": "DOCX"}
            )
