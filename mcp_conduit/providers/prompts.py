"""Templated prompts served over ``prompts/list`` and ``prompts/get``."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from mcp_conduit.errors import InvalidParamsError


@dataclass(frozen=True)
class PromptArgument:
    name: str
    description: str
    required: bool = False


@dataclass(frozen=True)
class PromptTemplate:
    name: str
    description: str
    arguments: Tuple[PromptArgument, ...]
    template: str
    defaults: Tuple[Tuple[str, str], ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "arguments": [
                {"name": a.name, "description": a.description, "required": a.required}
                for a in self.arguments
            ],
        }

    def render(self, arguments: Mapping[str, Any]) -> str:
        values = dict(self.defaults)
        values.update({k: str(v) for k, v in arguments.items() if v is not None})
        for arg in self.arguments:
            values.setdefault(arg.name, "")
        return self.template.format(**values)


PROMPTS: Tuple[PromptTemplate, ...] = (
    PromptTemplate(
        name="analyze_doctype",
        description="Analyze a DocType structure and suggest improvements",
        arguments=(PromptArgument("doctype_name", "Name of the DocType to analyze", True),),
        template=(
            'Please analyze the DocType "{doctype_name}" and provide insights on:\n\n'
            "1. **Field structure**: field types, missing mandatory fields, naming.\n"
            "2. **Relationships**: Link fields, their targets and circular dependencies.\n"
            "3. **Performance**: indexing opportunities and heavy computed fields.\n"
            "4. **User experience**: form layout and field grouping.\n\n"
            "Use get_doctype_schema and get_required_fields to inspect it first. "
            "Please provide specific, actionable recommendations."
        ),
    ),
    PromptTemplate(
        name="generate_api_usage",
        description="Generate API usage examples for a specific DocType",
        arguments=(
            PromptArgument("doctype_name", "DocType to generate API examples for", True),
            PromptArgument("operation", "API operation (create, read, update, delete, list)"),
        ),
        defaults=(("operation", "create, read, update, delete, list"),),
        template=(
            'Generate API usage examples for the DocType "{doctype_name}" covering: '
            "{operation}.\n\nFor each operation show the REST call, the equivalent tool "
            "call with its arguments, and the expected response. Include error handling "
            "for validation failures and missing permissions."
        ),
    ),
    PromptTemplate(
        name="design_workflow",
        description="Design a business workflow using Frappe DocTypes",
        arguments=(
            PromptArgument("business_process", "Business process to model", True),
            PromptArgument("modules", "Comma-separated modules to draw DocTypes from"),
        ),
        defaults=(("modules", "any relevant module"),),
        template=(
            'Design a workflow for the business process "{business_process}" using '
            "DocTypes from {modules}.\n\nDescribe the states, transitions, roles allowed "
            "to perform each transition, and the documents created at each step."
        ),
    ),
    PromptTemplate(
        name="troubleshoot_setup",
        description="Troubleshoot a configuration or setup issue",
        arguments=(
            PromptArgument("issue_description", "What is going wrong", True),
            PromptArgument("module", "Module where the issue appears"),
        ),
        defaults=(("module", "unspecified"),),
        template=(
            "Help troubleshoot the following issue (module: {module}):\n\n"
            "{issue_description}\n\n"
            "List likely causes in order of probability, the checks to confirm each one, "
            "and the fix."
        ),
    ),
    PromptTemplate(
        name="plan_migration",
        description="Plan a data migration into Frappe",
        arguments=(
            PromptArgument("source_system", "System the data comes from", True),
            PromptArgument("target_doctypes", "Comma-separated target DocTypes"),
        ),
        defaults=(("target_doctypes", "to be determined"),),
        template=(
            "Plan a data migration from {source_system} into Frappe "
            "(target DocTypes: {target_doctypes}).\n\n"
            "Cover data mapping, transformation rules, load order for linked documents, "
            "validation after loading, and a rollback plan."
        ),
    ),
)


class StaticPromptProvider:
    """Serves :data:`PROMPTS` with required-argument checks."""

    def __init__(self, prompts: Tuple[PromptTemplate, ...] = PROMPTS) -> None:
        self._prompts: Dict[str, PromptTemplate] = {p.name: p for p in prompts}

    async def list(self) -> List[Dict[str, Any]]:
        return [p.to_dict() for p in self._prompts.values()]

    async def get(self, name: str, arguments: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        prompt = self._prompts.get(name)
        if prompt is None:
            return None
        missing = [a.name for a in prompt.arguments if a.required and not arguments.get(a.name)]
        if missing:
            raise InvalidParamsError(
                f"Missing required argument(s) for prompt '{name}': {', '.join(missing)}",
                data={"missing": missing},
            )
        return {
            "description": prompt.description,
            "messages": [
                {"role": "user", "content": {"type": "text", "text": prompt.render(arguments)}}
            ],
        }
