"""Report operations, all backed by ``frappe.desk.query_report``."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from mcp_conduit.backend.client import FrappeClient
from mcp_conduit.operations.base import OperationArgs, json_content
from mcp_conduit.operations.categories import REPORT
from mcp_conduit.server.registry import OperationRegistry

_QUERY_REPORT = "frappe.desk.query_report"


class RunQueryReportArgs(OperationArgs):
    report_name: str = Field(min_length=1)
    filters: Optional[Dict[str, Any]] = None
    user: Optional[str] = None


class ReportNameArgs(OperationArgs):
    report_name: str = Field(min_length=1)


class ListReportsArgs(OperationArgs):
    module: Optional[str] = None


class ExportReportArgs(OperationArgs):
    report_name: str = Field(min_length=1)
    file_format: Literal["PDF", "Excel", "CSV"]
    filters: Optional[Dict[str, Any]] = None
    visible_idx: Optional[List[int]] = None


class FinancialStatementArgs(OperationArgs):
    report_type: Literal["Profit and Loss Statement", "Balance Sheet", "Cash Flow"]
    company: str = Field(min_length=1)
    from_date: str
    to_date: str
    periodicity: Optional[Literal["Monthly", "Quarterly", "Half-Yearly", "Yearly"]] = None
    include_default_book_entries: Optional[bool] = None


class ReportColumnsArgs(OperationArgs):
    report_name: str = Field(min_length=1)
    filters: Optional[Dict[str, Any]] = None


class DoctypeReportArgs(OperationArgs):
    doctype: str = Field(min_length=1)
    fields: Optional[List[str]] = None
    filters: Optional[Dict[str, Any]] = None
    order_by: Optional[str] = None
    limit: Optional[int] = Field(default=None, ge=0)


def register(registry: OperationRegistry, client: FrappeClient) -> None:
    @registry.operation(
        "run_query_report",
        "Execute a Frappe query report with filters",
        RunQueryReportArgs,
        REPORT,
    )
    async def run_query_report(args: RunQueryReportArgs) -> Dict[str, Any]:
        params: Dict[str, Any] = {"report_name": args.report_name, "filters": args.filters or {}}
        if args.user:
            params["user"] = args.user
        return json_content(await client.call_method(f"{_QUERY_REPORT}.run", params))

    @registry.operation(
        "get_report_meta",
        "Get metadata for a specific report including columns and filters",
        ReportNameArgs,
        REPORT,
    )
    async def get_report_meta(args: ReportNameArgs) -> Dict[str, Any]:
        result = await client.call_method(
            f"{_QUERY_REPORT}.get_report_meta", {"report_name": args.report_name}
        )
        return json_content(result)

    @registry.operation(
        "list_reports",
        "Get a list of all available reports in the system",
        ListReportsArgs,
        REPORT,
    )
    async def list_reports(args: ListReportsArgs) -> Dict[str, Any]:
        docs = await client.list_documents(
            "Report",
            filters={"module": args.module} if args.module else None,
            fields=["name", "report_name", "report_type", "module"],
        )
        return json_content(docs)

    @registry.operation(
        "export_report", "Export a report in PDF, Excel, or CSV format", ExportReportArgs, REPORT
    )
    async def export_report(args: ExportReportArgs) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "report_name": args.report_name,
            "file_format": args.file_format,
            "filters": args.filters or {},
        }
        if args.visible_idx is not None:
            params["visible_idx"] = args.visible_idx
        return json_content(await client.call_method(f"{_QUERY_REPORT}.export_query", params))

    @registry.operation(
        "get_financial_statements",
        "Get standard financial reports (P&L, Balance Sheet, Cash Flow)",
        FinancialStatementArgs,
        REPORT,
    )
    async def get_financial_statements(args: FinancialStatementArgs) -> Dict[str, Any]:
        result = await client.call_method(
            f"{_QUERY_REPORT}.run",
            {
                "report_name": args.report_type,
                "filters": {
                    "company": args.company,
                    "from_date": args.from_date,
                    "to_date": args.to_date,
                    "periodicity": args.periodicity or "Yearly",
                    "include_default_book_entries": int(bool(args.include_default_book_entries)),
                },
            },
        )
        return json_content(result)

    @registry.operation(
        "get_report_columns",
        "Get the column structure for a specific report",
        ReportColumnsArgs,
        REPORT,
    )
    async def get_report_columns(args: ReportColumnsArgs) -> Dict[str, Any]:
        result = await client.call_method(
            f"{_QUERY_REPORT}.get_columns",
            {"report_name": args.report_name, "filters": args.filters or {}},
        )
        return json_content(result)

    @registry.operation(
        "run_doctype_report",
        "Run a standard doctype report with filters and sorting",
        DoctypeReportArgs,
        REPORT,
    )
    async def run_doctype_report(args: DoctypeReportArgs) -> Dict[str, Any]:
        docs = await client.list_documents(
            args.doctype,
            filters=args.filters,
            fields=args.fields,
            limit=args.limit,
            order_by=args.order_by,
        )
        return json_content(docs)
