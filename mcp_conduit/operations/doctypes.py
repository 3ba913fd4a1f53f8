"""Schema operations: DocType definitions and field options."""

from typing import Any, Dict, List, Optional

from pydantic import Field

from mcp_conduit.backend.client import FrappeClient
from mcp_conduit.errors import InvalidParamsError
from mcp_conduit.operations.base import OperationArgs, json_content
from mcp_conduit.operations.categories import SCHEMA
from mcp_conduit.server.registry import OperationRegistry

# Upper bound on Link-field candidates returned by get_field_options.
LINK_OPTIONS_LIMIT = 50

_FIELD_KEYS = ("fieldname", "label", "fieldtype", "options", "reqd", "default", "description")


def summarise_meta(meta: Dict[str, Any]) -> Dict[str, Any]:
    """Reduce a raw DocType definition to the parts clients need."""
    return {
        "name": meta.get("name"),
        "module": meta.get("module"),
        "istable": bool(meta.get("istable")),
        "issingle": bool(meta.get("issingle")),
        "is_submittable": bool(meta.get("is_submittable")),
        "autoname": meta.get("autoname"),
        "fields": [
            {key: field[key] for key in _FIELD_KEYS if field.get(key) not in (None, "")}
            for field in meta.get("fields") or []
        ],
    }


class DoctypeArgs(OperationArgs):
    doctype: str = Field(min_length=1)


class FieldOptionsArgs(OperationArgs):
    doctype: str = Field(min_length=1)
    fieldname: str = Field(min_length=1)
    filters: Optional[Dict[str, Any]] = None


def register(registry: OperationRegistry, client: FrappeClient) -> None:
    @registry.operation(
        "get_doctype_schema", "Get the complete schema for a DocType", DoctypeArgs, SCHEMA
    )
    async def get_doctype_schema(args: DoctypeArgs) -> Dict[str, Any]:
        return json_content(summarise_meta(await client.get_doctype_meta(args.doctype)))

    @registry.operation(
        "get_field_options",
        "Get available options for a Link or Select field",
        FieldOptionsArgs,
        SCHEMA,
    )
    async def get_field_options(args: FieldOptionsArgs) -> Dict[str, Any]:
        meta = await client.get_doctype_meta(args.doctype)
        field = next(
            (f for f in meta.get("fields") or [] if f.get("fieldname") == args.fieldname),
            None,
        )
        if field is None:
            raise InvalidParamsError(
                f"Field '{args.fieldname}' not found in DocType '{args.doctype}'"
            )

        fieldtype = field.get("fieldtype")
        options: List[Any]
        if fieldtype == "Select":
            options = [opt for opt in (field.get("options") or "").split("\n") if opt]
        elif fieldtype == "Link" and field.get("options"):
            docs = await client.list_documents(
                field["options"],
                filters=args.filters,
                fields=["name"],
                limit=LINK_OPTIONS_LIMIT,
            )
            options = [doc.get("name") for doc in docs]
        else:
            raise InvalidParamsError(
                f"Field '{args.fieldname}' is a {fieldtype} field, not Link or Select"
            )
        return json_content({"fieldname": args.fieldname, "fieldtype": fieldtype, "options": options})
