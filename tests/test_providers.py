"""Tests for the resource and prompt providers."""

from __future__ import annotations

import json

import pytest

from mcp_conduit.backend.client import FrappeClient
from mcp_conduit.errors import InvalidParamsError
from mcp_conduit.providers import StaticPromptProvider, StaticResourceProvider
from mcp_conduit.providers.resources import EXAMPLES, WORKFLOWS


class TestResources:
    @pytest.mark.asyncio
    async def test_list_covers_every_family(self, frappe_client: FrappeClient) -> None:
        provider = StaticResourceProvider(frappe_client, schema_doctypes=("Customer",))
        resources = await provider.list()
        assert len(resources) == 1 + len(WORKFLOWS) + len(EXAMPLES)
        assert resources[0] == {
            "uri": "frappe://schema/Customer",
            "name": "Customer Schema",
            "description": "Complete field definitions and validation rules for Customer",
            "mimeType": "application/json",
        }
        assert set(provider.categories()) == {"schema", "workflow", "examples"}

    @pytest.mark.asyncio
    async def test_read_static_guide(self, frappe_client: FrappeClient, fake_frappe) -> None:
        content = await StaticResourceProvider(frappe_client).get(
            "frappe://workflow/customer-onboarding"
        )
        assert content["mimeType"] == "text/markdown"
        assert content["text"].startswith("# Customer Onboarding Workflow")
        assert fake_frappe.requests == []

    @pytest.mark.asyncio
    async def test_read_schema_goes_to_backend(self, frappe_client: FrappeClient) -> None:
        content = await StaticResourceProvider(frappe_client).get("frappe://schema/Customer")
        body = json.loads(content["text"])
        assert body["doctype"] == "Customer"
        assert body["schema"]["name"] == "Customer"
        assert "generated_at" in body

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "uri",
        [
            "https://workflow/customer-onboarding",
            "frappe://workflow",
            "frappe://workflow/unknown",
            "frappe://videos/intro",
        ],
    )
    async def test_unknown_uris(self, frappe_client: FrappeClient, uri: str) -> None:
        assert await StaticResourceProvider(frappe_client).get(uri) is None


class TestPrompts:
    @pytest.mark.asyncio
    async def test_list_shapes(self) -> None:
        prompts = await StaticPromptProvider().list()
        names = [p["name"] for p in prompts]
        assert names == [
            "analyze_doctype",
            "generate_api_usage",
            "design_workflow",
            "troubleshoot_setup",
            "plan_migration",
        ]
        assert prompts[1]["arguments"][1] == {
            "name": "operation",
            "description": "API operation (create, read, update, delete, list)",
            "required": False,
        }

    @pytest.mark.asyncio
    async def test_optional_argument_defaults(self) -> None:
        result = await StaticPromptProvider().get(
            "troubleshoot_setup", {"issue_description": "Emails are not sent"}
        )
        [message] = result["messages"]
        text = message["content"]["text"]
        assert "(module: unspecified)" in text
        assert "Emails are not sent" in text

    @pytest.mark.asyncio
    async def test_supplied_argument_wins(self) -> None:
        result = await StaticPromptProvider().get(
            "plan_migration", {"source_system": "Odoo", "target_doctypes": "Item, Customer"}
        )
        text = result["messages"][0]["content"]["text"]
        assert "from Odoo into Frappe (target DocTypes: Item, Customer)" in text

    @pytest.mark.asyncio
    async def test_missing_required_argument(self) -> None:
        with pytest.raises(InvalidParamsError) as exc_info:
            await StaticPromptProvider().get("design_workflow", {"modules": "Selling"})
        assert exc_info.value.data == {"missing": ["business_process"]}

    @pytest.mark.asyncio
    async def test_unknown_prompt(self) -> None:
        assert await StaticPromptProvider().get("nope", {}) is None
