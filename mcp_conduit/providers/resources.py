"""Resource catalog served over ``resources/list`` and ``resources/read``.

Two families of ``frappe://`` URIs are served:

* ``frappe://workflow/<slug>`` and ``frappe://examples/<slug>``: static
  markdown guides bundled with the server;
* ``frappe://schema/<DocType>``: live DocType definitions read through the
  backend client.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from mcp_conduit.backend.client import FrappeClient
from mcp_conduit.operations.doctypes import summarise_meta

logger = logging.getLogger(__name__)

URI_SCHEME = "frappe://"

DEFAULT_SCHEMA_DOCTYPES = ("Customer", "Item", "Sales Order", "Sales Invoice")

RESOURCE_CATEGORIES: Dict[str, Dict[str, str]] = {
    "schema": {
        "name": "DocType Schemas",
        "description": "Frappe DocType field definitions and validation rules",
        "icon": "🏗️",
    },
    "workflow": {
        "name": "Business Workflows",
        "description": "Predefined business process templates",
        "icon": "🔄",
    },
    "examples": {
        "name": "Code Examples",
        "description": "Ready-to-use code snippets and templates",
        "icon": "💡",
    },
}

# slug -> (title, description, markdown body)
WORKFLOWS: Dict[str, tuple] = {
    "customer-onboarding": (
        "Customer Onboarding",
        "Step-by-step customer creation and setup process",
        """# Customer Onboarding Workflow

## Steps

1. Create the **Customer** (`customer_name`, `customer_type`, `customer_group`, `territory`).
2. Add a billing **Address** linked to the customer.
3. Add a primary **Contact** with email and phone.
4. Set payment terms and the credit limit on the Customer.

## Notes
- Check `check_document_exists` before creating to avoid duplicates.
- Link addresses and contacts through their `links` child table.
""",
    ),
    "sales-order-processing": (
        "Sales Order Processing",
        "Complete sales order to invoice workflow",
        """# Sales Order Processing Workflow

## Steps

1. Create a **Quotation** for the customer with the item rows.
2. Convert the approved quotation into a **Sales Order**.
3. Create a **Delivery Note** against the sales order.
4. Raise the **Sales Invoice** and record the payment.

## Status tracking
Draft, Submitted, Delivered, Paid.
""",
    ),
    "purchase-requisition": (
        "Purchase Requisition",
        "Purchase request to purchase order workflow",
        """# Purchase Requisition Workflow

## Steps

1. Raise a **Material Request** of type `Purchase`.
2. Send a **Request for Quotation** to suppliers.
3. Compare **Supplier Quotations** and pick one.
4. Create the **Purchase Order** and later the **Purchase Receipt**.
""",
    ),
    "employee-management": (
        "Employee Management",
        "Employee lifecycle management processes",
        """# Employee Management Workflow

## Steps

1. Create the **Employee** record with company, department and designation.
2. Assign a **Salary Structure**.
3. Track **Attendance** and **Leave Applications**.
4. Close out with an **Employee Separation** when the employee leaves.
""",
    ),
}

EXAMPLES: Dict[str, tuple] = {
    "rest-api": (
        "REST API Examples",
        "Common Frappe REST API usage patterns",
        """# Frappe REST API Examples

All calls authenticate with `Authorization: token <api_key>:<api_secret>`.

```bash
# Get a document
curl "https://your-site/api/resource/Customer/CUST-001" -H "Authorization: token $KEY:$SECRET"

# Create a document
curl -X POST "https://your-site/api/resource/Customer" \\
  -H "Authorization: token $KEY:$SECRET" -H "Content-Type: application/json" \\
  -d '{"customer_name": "New Customer", "customer_type": "Individual"}'

# List with filters
curl "https://your-site/api/resource/Customer?filters=[[\\"customer_type\\",\\"=\\",\\"Company\\"]]"
```
""",
    ),
    "doctype-customization": (
        "DocType Customization",
        "Custom field and form scripting examples",
        """# DocType Customization

Add a field without touching the core DocType by creating a **Custom Field**:

```json
{"doctype": "Custom Field", "dt": "Customer", "fieldname": "loyalty_tier",
 "label": "Loyalty Tier", "fieldtype": "Select", "options": "Bronze\\nSilver\\nGold",
 "insert_after": "customer_group"}
```

Use **Property Setter** records to change labels, defaults or `reqd` flags.
""",
    ),
    "reports": (
        "Report Generation",
        "Query and script report examples",
        """# Report Generation

- `run_query_report` runs any Query or Script Report with filters.
- `get_report_columns` returns the column structure before running.
- `export_report` produces PDF, Excel or CSV output.

```json
{"report_name": "General Ledger",
 "filters": {"company": "ACME", "from_date": "2024-01-01", "to_date": "2024-12-31"}}
```
""",
    ),
    "integrations": (
        "Integration Patterns",
        "Common integration and webhook patterns",
        """# Integration Patterns

- **Webhooks**: create a `Webhook` document to push document events to an external URL.
- **Polling**: list documents with a `modified` filter to pick up changes incrementally.
- **Whitelisted methods**: expose server logic with `@frappe.whitelist()` and call it
  through `call_method`.
""",
    ),
}


def _resource_entry(uri: str, name: str, description: str, mime_type: str) -> Dict[str, Any]:
    return {"uri": uri, "name": name, "description": description, "mimeType": mime_type}


class StaticResourceProvider:
    """Static guides plus live DocType schema resources."""

    def __init__(
        self,
        client: FrappeClient,
        schema_doctypes: Sequence[str] = DEFAULT_SCHEMA_DOCTYPES,
    ) -> None:
        self._client = client
        self._schema_doctypes = tuple(schema_doctypes)

    def categories(self) -> Dict[str, Dict[str, str]]:
        return {key: dict(value) for key, value in RESOURCE_CATEGORIES.items()}

    async def list(self) -> List[Dict[str, Any]]:
        resources = [
            _resource_entry(
                f"{URI_SCHEME}schema/{doctype}",
                f"{doctype} Schema",
                f"Complete field definitions and validation rules for {doctype}",
                "application/json",
            )
            for doctype in self._schema_doctypes
        ]
        for slug, (title, description, _body) in WORKFLOWS.items():
            resources.append(
                _resource_entry(f"{URI_SCHEME}workflow/{slug}", title, description, "text/markdown")
            )
        for slug, (title, description, _body) in EXAMPLES.items():
            resources.append(
                _resource_entry(f"{URI_SCHEME}examples/{slug}", title, description, "text/markdown")
            )
        return resources

    async def get(self, uri: str) -> Optional[Dict[str, Any]]:
        if not uri.startswith(URI_SCHEME):
            return None
        category, _, key = uri[len(URI_SCHEME) :].partition("/")
        if not key:
            return None

        match category:
            case "workflow" | "examples":
                table = WORKFLOWS if category == "workflow" else EXAMPLES
                entry = table.get(key)
                if entry is None:
                    return None
                return {"uri": uri, "mimeType": "text/markdown", "text": entry[2]}
            case "schema":
                meta = await self._client.get_doctype_meta(key)
                content = {
                    "doctype": key,
                    "schema": summarise_meta(meta),
                    "generated_at": datetime.now(timezone.utc).isoformat(),
                }
                return {
                    "uri": uri,
                    "mimeType": "application/json",
                    "text": json.dumps(content, indent=2, default=str),
                }
            case _:
                logger.debug("Unknown resource category in %s", uri)
                return None
