"""Helper operations for exploring the backend's modules and DocTypes."""

from typing import Any, Dict, Optional

from pydantic import Field

from mcp_conduit.backend.client import FrappeClient
from mcp_conduit.operations.base import OperationArgs, json_content
from mcp_conduit.operations.categories import HELPER
from mcp_conduit.server.registry import OperationRegistry

DEFAULT_SEARCH_LIMIT = 20


class FindDoctypesArgs(OperationArgs):
    search_term: Optional[str] = None
    module: Optional[str] = None
    is_table: Optional[bool] = None
    is_single: Optional[bool] = None
    is_custom: Optional[bool] = None
    limit: Optional[int] = Field(default=None, ge=1)


class NoArgs(OperationArgs):
    pass


class ModuleArgs(OperationArgs):
    module: str = Field(min_length=1)


class DoctypeArgs(OperationArgs):
    doctype: str = Field(min_length=1)


class DocumentRefArgs(OperationArgs):
    doctype: str = Field(min_length=1)
    name: str = Field(min_length=1)


class CountArgs(OperationArgs):
    doctype: str = Field(min_length=1)
    filters: Optional[Dict[str, Any]] = None


def register(registry: OperationRegistry, client: FrappeClient) -> None:
    @registry.operation(
        "find_doctypes",
        "Find DocTypes in the system matching a search term",
        FindDoctypesArgs,
        HELPER,
    )
    async def find_doctypes(args: FindDoctypesArgs) -> Dict[str, Any]:
        filters: Dict[str, Any] = {}
        if args.search_term:
            filters["name"] = ["like", f"%{args.search_term}%"]
        if args.module:
            filters["module"] = args.module
        if args.is_table is not None:
            filters["istable"] = int(args.is_table)
        if args.is_single is not None:
            filters["issingle"] = int(args.is_single)
        if args.is_custom is not None:
            filters["custom"] = int(args.is_custom)
        docs = await client.list_documents(
            "DocType",
            filters=filters,
            fields=["name", "module", "istable", "issingle", "custom"],
            limit=args.limit or DEFAULT_SEARCH_LIMIT,
        )
        return json_content(docs)

    @registry.operation(
        "get_module_list", "Get a list of all modules in the system", NoArgs, HELPER
    )
    async def get_module_list(args: NoArgs) -> Dict[str, Any]:
        docs = await client.list_documents("Module Def", fields=["name", "app_name"], limit=0)
        return json_content(docs)

    @registry.operation(
        "get_doctypes_in_module",
        "Get a list of DocTypes in a specific module",
        ModuleArgs,
        HELPER,
    )
    async def get_doctypes_in_module(args: ModuleArgs) -> Dict[str, Any]:
        docs = await client.list_documents(
            "DocType",
            filters={"module": args.module},
            fields=["name", "istable", "issingle", "custom"],
            limit=0,
        )
        return json_content(docs)

    @registry.operation(
        "check_doctype_exists", "Check if a DocType exists in the system", DoctypeArgs, HELPER
    )
    async def check_doctype_exists(args: DoctypeArgs) -> Dict[str, Any]:
        docs = await client.list_documents(
            "DocType", filters={"name": args.doctype}, fields=["name"], limit=1
        )
        return json_content({"exists": bool(docs)})

    @registry.operation(
        "check_document_exists", "Check if a document exists", DocumentRefArgs, HELPER
    )
    async def check_document_exists(args: DocumentRefArgs) -> Dict[str, Any]:
        docs = await client.list_documents(
            args.doctype, filters={"name": args.name}, fields=["name"], limit=1
        )
        return json_content({"exists": bool(docs)})

    @registry.operation(
        "get_document_count", "Get a count of documents matching filters", CountArgs, HELPER
    )
    async def get_document_count(args: CountArgs) -> Dict[str, Any]:
        count = await client.call_method(
            "frappe.client.get_count",
            {"doctype": args.doctype, "filters": args.filters or {}},
        )
        return json_content({"count": count})

    @registry.operation(
        "get_naming_info",
        "Get the naming series information for a DocType",
        DoctypeArgs,
        HELPER,
    )
    async def get_naming_info(args: DoctypeArgs) -> Dict[str, Any]:
        meta = await client.get_doctype_meta(args.doctype)
        series_field = next(
            (f for f in meta.get("fields") or [] if f.get("fieldname") == "naming_series"),
            None,
        )
        series = []
        if series_field:
            series = [s for s in (series_field.get("options") or "").split("\n") if s]
        return json_content(
            {
                "doctype": args.doctype,
                "autoname": meta.get("autoname"),
                "naming_rule": meta.get("naming_rule"),
                "naming_series": series,
            }
        )

    @registry.operation(
        "get_required_fields",
        "Get a list of required fields for a DocType",
        DoctypeArgs,
        HELPER,
    )
    async def get_required_fields(args: DoctypeArgs) -> Dict[str, Any]:
        meta = await client.get_doctype_meta(args.doctype)
        required = [
            {
                "fieldname": f.get("fieldname"),
                "label": f.get("label"),
                "fieldtype": f.get("fieldtype"),
                "options": f.get("options"),
            }
            for f in meta.get("fields") or []
            if f.get("reqd")
        ]
        return json_content(required)
