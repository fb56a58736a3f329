"""Tool abstraction exposed to the model."""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

if TYPE_CHECKING:
    from agentloop.domain.execution_context import ExecutionContext


@dataclass
class BaseTool(ABC):
    """
    Abstract base class for all tools callable by the model.
    """

    name: str
    description: str
    input_schema: Dict[str, Any]

    @abstractmethod
    def execute(self, args: Dict[str, Any], context: "ExecutionContext") -> str:
        """
        Executes the tool with the provided arguments.

        Args:
            args: Arguments for the tool execution.
            context: The execution context of the requesting loop.

        Returns:
            The text output of the tool.

        Raises:
            Exception: Any failure; the loop reports it to the model.
        """
        raise NotImplementedError

    def as_openai_tool(self) -> Dict[str, Any]:
        """
        Returns an OpenAI-compatible tool schema definition.

        Returns:
            A dictionary describing the tool for LLM binding.
        """
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }


@dataclass
class FunctionTool(BaseTool):
    """
    Tool backed by a plain handler function.

    Non-string handler results are rendered as indented JSON.
    """

    handler: Callable[[Dict[str, Any], "ExecutionContext"], Any]

    def execute(self, args: Dict[str, Any], context: "ExecutionContext") -> str:
        result = self.handler(args, context)
        if isinstance(result, str):
            return result
        return json.dumps(result, indent=2, default=str)


@dataclass(frozen=True)
class ToolInvocation:
    """A single tool call as dispatched by the loop."""

    id: str
    name: str
    input: Dict[str, Any]
    cache_key: Optional[str] = None
