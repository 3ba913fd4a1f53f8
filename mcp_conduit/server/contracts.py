"""Operation input contracts.

An :class:`InputContract` wraps a pydantic model and offers two things:

* :meth:`InputContract.validate` turns raw JSON arguments into a typed model
  instance, or into a list of structured violations;
* :meth:`InputContract.json_schema` publishes the same contract as a
  draft-07 JSON Schema document for ``tools/list``.

Pydantic's own schema output (``$defs``/``$ref``, nullable ``anyOf``,
titles) is normalised into a small, closed set of shapes: string, number,
integer, boolean, array, enum, object, record and union.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

DRAFT_07 = "http://json-schema.org/draft-07/schema#"

ModelT = TypeVar("ModelT", bound=BaseModel)

_SCALAR_KEYWORDS = (
    "minLength",
    "maxLength",
    "pattern",
    "format",
    "minimum",
    "maximum",
    "exclusiveMinimum",
    "exclusiveMaximum",
)


@dataclass(frozen=True)
class ContractResult(Generic[ModelT]):
    """Either validated ``args`` or a non-empty list of ``violations``."""

    args: Optional[ModelT] = None
    violations: List[Dict[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.violations


def format_violations(exc: ValidationError) -> List[Dict[str, str]]:
    """Flatten a pydantic :class:`ValidationError` into ``{loc, msg, type}`` dicts."""
    violations = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ())) or "(root)"
        violations.append({"loc": loc, "msg": err.get("msg", ""), "type": err.get("type", "")})
    return violations


class InputContract(Generic[ModelT]):
    """Validator and schema publisher for one operation's arguments."""

    def __init__(self, model: Type[ModelT]) -> None:
        self.model = model
        self._schema: Optional[Dict[str, Any]] = None

    def validate(self, raw: Any) -> ContractResult[ModelT]:
        try:
            args = self.model.model_validate(raw)
        except ValidationError as exc:
            return ContractResult(violations=format_violations(exc))
        return ContractResult(args=args)

    def json_schema(self) -> Dict[str, Any]:
        """Return the published draft-07 schema (a fresh copy each call)."""
        if self._schema is None:
            raw = self.model.model_json_schema()
            defs = raw.get("$defs", {})
            schema = normalise_schema(raw, defs)
            schema["$schema"] = DRAFT_07
            self._schema = schema
        return copy.deepcopy(self._schema)

    def __repr__(self) -> str:
        return f"InputContract({self.model.__name__})"


def _resolve(node: Dict[str, Any], defs: Dict[str, Any]) -> Dict[str, Any]:
    ref = node.get("$ref")
    if isinstance(ref, str) and ref.startswith("#/$defs/"):
        target = dict(defs.get(ref[len("#/$defs/") :], {}))
        # Sibling keywords (description, default) win over the target's.
        target.update({k: v for k, v in node.items() if k != "$ref"})
        return target
    return node


def _enum_type(values: List[Any]) -> Optional[str]:
    if all(isinstance(v, str) for v in values):
        return "string"
    if all(isinstance(v, bool) for v in values):
        return "boolean"
    if all(isinstance(v, int) and not isinstance(v, bool) for v in values):
        return "integer"
    if all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in values):
        return "number"
    return None


def normalise_schema(node: Dict[str, Any], defs: Dict[str, Any]) -> Dict[str, Any]:
    """Map one pydantic JSON-schema node onto the closed variant set."""
    node = _resolve(node, defs)
    out: Dict[str, Any]

    match node:
        case {"enum": list(values)}:
            out = {"enum": list(values)}
            enum_type = _enum_type(values)
            if enum_type:
                out = {"type": enum_type, "enum": list(values)}
        case {"const": value}:
            out = {"enum": [value]}
            enum_type = _enum_type([value])
            if enum_type:
                out = {"type": enum_type, "enum": [value]}
        case {"anyOf": list(options)} | {"oneOf": list(options)}:
            present = [opt for opt in options if opt.get("type") != "null"]
            if len(present) == 1:
                # Optional[X] publishes as plain X; optionality lives in ``required``.
                out = normalise_schema(present[0], defs)
            else:
                out = {"anyOf": [normalise_schema(opt, defs) for opt in present]}
        case {"type": "object", "properties": dict(props)}:
            out = {
                "type": "object",
                "properties": {name: normalise_schema(prop, defs) for name, prop in props.items()},
                "additionalProperties": False,
            }
            required = node.get("required")
            if required:
                out["required"] = list(required)
        case {"type": "object", "additionalProperties": dict(values)}:
            out = {
                "type": "object",
                "properties": {},
                "additionalProperties": normalise_schema(values, defs),
            }
        case {"type": "object"}:
            out = {"type": "object", "properties": {}, "additionalProperties": True}
        case {"type": "array"}:
            items = node.get("items")
            out = {"type": "array", "items": normalise_schema(items, defs) if items else {}}
        case {"type": "string" | "number" | "integer" | "boolean" as scalar}:
            out = {"type": scalar}
            for keyword in _SCALAR_KEYWORDS:
                if keyword in node:
                    out[keyword] = node[keyword]
        case _:
            out = {}

    description = node.get("description")
    if description and "description" not in out:
        out["description"] = description
    if node.get("default") is not None and "default" not in out:
        out["default"] = node["default"]
    return out
