"""ABOUTME: Tool registry with an enforced allowlist, and the dispatcher that runs tool calls.

The registry is built once at startup from every known handler intersected
with the configured allowlist. Disabled tools are absent, so calling one
fails exactly like calling a name that never existed.

The dispatcher turns a ToolCall into a ToolResult. It never raises for tool
failures: unknown names, bad arguments, ToolErrors and unexpected exceptions
all come back as ToolFailure values with a {kind, message} descriptor.
"""

import logging
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from mcp.types import CallToolResult, Tool
from pydantic import ValidationError

from .common.error_handling import (
    ERROR_INTERNAL,
    InvalidArguments,
    ToolError,
    ToolNotFound,
    create_error_result,
)
from .common.mcp_base import create_success_result, truncate_for_log
from .config import ToolName
from .tools.base import ToolHandler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolCall:
    name: str
    arguments: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolSuccess:
    payload: Dict[str, Any]

    def to_call_tool_result(self) -> CallToolResult:
        return create_success_result(self.payload)


@dataclass(frozen=True)
class ToolFailure:
    kind: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_error(cls, error: ToolError) -> "ToolFailure":
        return cls(kind=error.kind, message=error.message, details=dict(error.details))

    def to_call_tool_result(self) -> CallToolResult:
        return create_error_result(
            error_message=self.message,
            error_code=self.kind,
            additional_metadata=self.details or None,
        )


ToolResult = Union[ToolSuccess, ToolFailure]


class ToolRegistry:
    """Immutable name -> handler mapping restricted to the enabled tools."""

    def __init__(self, handlers: Iterable[ToolHandler], enabled: Iterable[ToolName]):
        allowed = frozenset(enabled)
        self._handlers: Mapping[str, ToolHandler] = MappingProxyType(
            {h.name.value: h for h in handlers if h.name in allowed}
        )

    def get(self, name: str) -> Optional[ToolHandler]:
        return self._handlers.get(name)

    def names(self) -> List[str]:
        return sorted(self._handlers)

    def list_tools(self) -> List[Tool]:
        return [self._handlers[name].to_tool() for name in self.names()]

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)


def invalid_arguments_from(error: ValidationError) -> InvalidArguments:
    """Describe the first pydantic error as an InvalidArguments failure."""
    first = error.errors()[0]
    field_name = ".".join(str(part) for part in first.get("loc", ())) or "arguments"
    return InvalidArguments(field_name, first.get("msg", "invalid value"))


class Dispatcher:
    """Runs tool calls against a ToolRegistry."""

    def __init__(self, registry: ToolRegistry):
        self.registry = registry

    async def dispatch(self, call: ToolCall) -> ToolResult:
        handler = self.registry.get(call.name)
        if handler is None:
            logger.warning(f"Tool not found: tool={truncate_for_log(call.name, 64)}")
            return ToolFailure.from_error(ToolNotFound(call.name))

        if not isinstance(call.arguments, Mapping):
            return ToolFailure.from_error(InvalidArguments("arguments", "must be an object"))

        try:
            args = handler.input_model.model_validate(dict(call.arguments))
        except ValidationError as e:
            failure = invalid_arguments_from(e)
            logger.info(f"Invalid arguments: tool={call.name} {failure.message}")
            return ToolFailure.from_error(failure)

        logger.info(f"Tool start: tool={call.name}")
        start = time.perf_counter()
        try:
            payload = await handler.invoke(args)
        except ToolError as e:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.warning(
                f"Tool error: tool={call.name} kind={e.kind} "
                f"duration_ms={elapsed_ms:.0f} message={e.message}"
            )
            return ToolFailure.from_error(e)
        except Exception:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.exception(f"Tool crashed: tool={call.name} duration_ms={elapsed_ms:.0f}")
            return ToolFailure(ERROR_INTERNAL, f"Internal error while running {call.name}")

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(f"Tool complete: tool={call.name} duration_ms={elapsed_ms:.0f}")
        return ToolSuccess(payload)
