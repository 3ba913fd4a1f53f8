"""Operation registry.

The registry is the static catalog behind ``tools/list`` and ``tools/call``.
It is populated once at startup and then frozen.  :meth:`OperationRegistry.invoke`
is the only way to run a handler and it always validates the arguments
against the operation's :class:`~mcp_conduit.server.contracts.InputContract`
first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Mapping, Optional, Type

from pydantic import BaseModel

from mcp_conduit.errors import InvalidParamsError, NotFoundError
from mcp_conduit.server.contracts import InputContract
from mcp_conduit.telemetry.tracing import start_span

logger = logging.getLogger(__name__)

OperationHandler = Callable[[Any], Awaitable[Dict[str, Any]]]


@dataclass(frozen=True)
class CategoryInfo:
    name: str
    description: str
    icon: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "description": self.description, "icon": self.icon}


@dataclass(frozen=True)
class OperationDescriptor:
    """Immutable registry entry for one operation."""

    name: str
    description: str
    contract: InputContract
    handler: OperationHandler
    category: str = "system"


class RegistryFrozenError(RuntimeError):
    """Raised when registering into a frozen registry."""


class OperationRegistry:
    """Name → :class:`OperationDescriptor` catalog."""

    def __init__(self, categories: Mapping[str, CategoryInfo]) -> None:
        self._categories: Dict[str, CategoryInfo] = dict(categories)
        self._operations: Dict[str, OperationDescriptor] = {}
        self._frozen = False

    # ── Building ─────────────────────────────────────────────────────

    def register(self, descriptor: OperationDescriptor) -> None:
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot register '{descriptor.name}': registry is frozen"
            )
        if descriptor.name in self._operations:
            raise ValueError(f"Duplicate operation name: '{descriptor.name}'")
        if descriptor.category not in self._categories:
            raise ValueError(
                f"Operation '{descriptor.name}' uses unknown category '{descriptor.category}'"
            )
        self._operations[descriptor.name] = descriptor

    def operation(
        self,
        name: str,
        description: str,
        args_model: Type[BaseModel],
        category: str,
    ) -> Callable[[OperationHandler], OperationHandler]:
        """Decorator form of :meth:`register`."""

        def decorator(handler: OperationHandler) -> OperationHandler:
            self.register(
                OperationDescriptor(
                    name=name,
                    description=description,
                    contract=InputContract(args_model),
                    handler=handler,
                    category=category,
                )
            )
            return handler

        return decorator

    def freeze(self) -> "OperationRegistry":
        self._frozen = True
        logger.debug("Operation registry frozen with %d operation(s).", len(self._operations))
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ── Lookup ───────────────────────────────────────────────────────

    def get(self, name: str) -> Optional[OperationDescriptor]:
        return self._operations.get(name)

    def names(self) -> List[str]:
        return list(self._operations)

    @property
    def categories(self) -> Dict[str, Dict[str, str]]:
        return {key: info.to_dict() for key, info in self._categories.items()}

    def counts_by_category(self) -> Dict[str, int]:
        counts = {key: 0 for key in self._categories}
        for op in self._operations.values():
            counts[op.category] += 1
        return counts

    def describe(self) -> List[Dict[str, Any]]:
        """Project every operation to its published ``tools/list`` entry."""
        return [
            {
                "name": op.name,
                "description": op.description,
                "inputSchema": op.contract.json_schema(),
                "category": op.category,
                "categoryInfo": self._categories[op.category].to_dict(),
            }
            for op in self._operations.values()
        ]

    def __len__(self) -> int:
        return len(self._operations)

    def __contains__(self, name: object) -> bool:
        return name in self._operations

    def __iter__(self) -> Iterator[OperationDescriptor]:
        return iter(self._operations.values())

    # ── Invocation ───────────────────────────────────────────────────

    async def invoke(self, name: str, raw_args: Any) -> Dict[str, Any]:
        """Validate *raw_args* and run the named operation's handler.

        Raises:
            NotFoundError: Unknown operation; ``data.availableTools`` lists
                the registered names.
            InvalidParamsError: Arguments failed validation; ``data`` is the
                list of violations.  The handler is not called.
        """
        op = self._operations.get(name)
        if op is None:
            raise NotFoundError(
                f"Tool '{name}' not found",
                data={"availableTools": self.names()},
            )

        checked = op.contract.validate(raw_args)
        if not checked.ok:
            logger.info(
                "Rejected arguments for '%s': %d violation(s).", name, len(checked.violations)
            )
            raise InvalidParamsError(f"Invalid arguments for tool '{name}'", data=checked.violations)

        with start_span(
            f"conduit.tools/call.{name}",
            attributes={"conduit.operation": name, "conduit.category": op.category},
        ):
            return await op.handler(checked.args)
