"""Document CRUD operations."""

from typing import Any, Dict, List, Optional

from pydantic import Field

from mcp_conduit.backend.client import FrappeClient
from mcp_conduit.operations.base import OperationArgs, json_content, text_content
from mcp_conduit.operations.categories import DOCUMENT
from mcp_conduit.server.registry import OperationRegistry

_RECONCILE_METHOD = (
    "erpnext.accounts.doctype.bank_transaction.bank_transaction."
    "reconcile_bank_transaction_with_vouchers"
)


class CreateDocumentArgs(OperationArgs):
    doctype: str = Field(min_length=1)
    values: Dict[str, Any]


class GetDocumentArgs(OperationArgs):
    doctype: str = Field(min_length=1)
    name: str = Field(min_length=1)
    fields: Optional[List[str]] = None


class UpdateDocumentArgs(OperationArgs):
    doctype: str = Field(min_length=1)
    name: str = Field(min_length=1)
    values: Dict[str, Any]


class DeleteDocumentArgs(OperationArgs):
    doctype: str = Field(min_length=1)
    name: str = Field(min_length=1)


class ListDocumentsArgs(OperationArgs):
    doctype: str = Field(min_length=1)
    filters: Optional[Dict[str, Any]] = None
    fields: Optional[List[str]] = None
    limit: Optional[int] = Field(default=None, ge=0)
    order_by: Optional[str] = None
    limit_start: Optional[int] = Field(default=None, ge=0)


class Voucher(OperationArgs):
    payment_doctype: str
    payment_name: str
    amount: float


class ReconcileArgs(OperationArgs):
    bank_transaction_name: str = Field(min_length=1)
    vouchers: List[Voucher]


def register(registry: OperationRegistry, client: FrappeClient) -> None:
    @registry.operation(
        "create_document", "Create a new document in Frappe", CreateDocumentArgs, DOCUMENT
    )
    async def create_document(args: CreateDocumentArgs) -> Dict[str, Any]:
        doc = await client.create_document(args.doctype, args.values)
        return text_content(f"Document created successfully. Name: {doc.get('name')}")

    @registry.operation("get_document", "Retrieve a document from Frappe", GetDocumentArgs, DOCUMENT)
    async def get_document(args: GetDocumentArgs) -> Dict[str, Any]:
        return json_content(await client.get_document(args.doctype, args.name, args.fields))

    @registry.operation(
        "update_document", "Update an existing document in Frappe", UpdateDocumentArgs, DOCUMENT
    )
    async def update_document(args: UpdateDocumentArgs) -> Dict[str, Any]:
        doc = await client.update_document(args.doctype, args.name, args.values)
        return text_content(f"Document updated successfully. Name: {doc.get('name', args.name)}")

    @registry.operation(
        "delete_document", "Delete a document from Frappe", DeleteDocumentArgs, DOCUMENT
    )
    async def delete_document(args: DeleteDocumentArgs) -> Dict[str, Any]:
        await client.delete_document(args.doctype, args.name)
        return text_content(
            f"Document deleted successfully. DocType: {args.doctype}, Name: {args.name}"
        )

    @registry.operation(
        "list_documents", "List documents from Frappe with filters", ListDocumentsArgs, DOCUMENT
    )
    async def list_documents(args: ListDocumentsArgs) -> Dict[str, Any]:
        docs = await client.list_documents(
            args.doctype,
            filters=args.filters,
            fields=args.fields,
            limit=args.limit,
            order_by=args.order_by,
            limit_start=args.limit_start,
        )
        return json_content(docs)

    @registry.operation(
        "reconcile_bank_transaction_with_vouchers",
        "Reconciles a Bank Transaction document with specified vouchers",
        ReconcileArgs,
        DOCUMENT,
    )
    async def reconcile(args: ReconcileArgs) -> Dict[str, Any]:
        result = await client.call_method(
            _RECONCILE_METHOD,
            {
                "bank_transaction_name": args.bank_transaction_name,
                "vouchers": [v.model_dump() for v in args.vouchers],
            },
        )
        return json_content({"reconciled": True, "result": result})
