"""Operation categories shown in ``tools/list`` and ``GET /tools``."""

from typing import Dict

from mcp_conduit.server.registry import CategoryInfo

DOCUMENT = "document"
SCHEMA = "schema"
HELPER = "helper"
REPORT = "report"
SYSTEM = "system"

CATEGORIES: Dict[str, CategoryInfo] = {
    DOCUMENT: CategoryInfo(
        name="Document Operations",
        description="Create, read, update, delete documents in Frappe",
        icon="📄",
    ),
    SCHEMA: CategoryInfo(
        name="Schema Operations",
        description="Get DocType schemas, field options, and metadata",
        icon="🏗️",
    ),
    HELPER: CategoryInfo(
        name="Helper Tools",
        description="Utility functions for system exploration",
        icon="🔧",
    ),
    REPORT: CategoryInfo(
        name="Report Operations",
        description="Generate and export reports from Frappe",
        icon="📊",
    ),
    SYSTEM: CategoryInfo(
        name="System Tools",
        description="Server information and system utilities",
        icon="⚙️",
    ),
}
