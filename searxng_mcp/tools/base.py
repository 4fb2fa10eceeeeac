"""ABOUTME: Tool handler interface shared by every tool the server can expose."""

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, Type

from mcp.types import Tool
from pydantic import BaseModel

from ..config import ToolName


class ToolHandler(ABC):
    """One tool: its name, description, argument model and behaviour.

    Subclasses set the three class attributes and implement invoke(). The
    dispatcher validates raw arguments against input_model before invoke()
    is called, so handlers always receive a validated model instance.
    """

    name: ClassVar[ToolName]
    description: ClassVar[str]
    input_model: ClassVar[Type[BaseModel]]

    @abstractmethod
    async def invoke(self, args: Any) -> Dict[str, Any]:
        """Run the tool and return its JSON-serializable success payload.

        Raises:
            ToolError: For failures that should reach the caller as a tool error
        """

    def input_schema(self) -> Dict[str, Any]:
        return self.input_model.model_json_schema(by_alias=True)

    def to_tool(self) -> Tool:
        """Describe this handler as an MCP Tool definition."""
        return Tool(
            name=self.name.value,
            description=self.description,
            inputSchema=self.input_schema(),
        )
