"""Tool registry and executor for the agent loop."""

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Dict, Iterable, List, Optional

from agentloop.domain.execution_context import ExecutionContext
from agentloop.domain.exceptions import ToolTimeoutError, UnknownToolError
from agentloop.domain.tool import BaseTool
from agentloop.infra.library import Library

logger = logging.getLogger(__name__)


class ToolLibrary(Library[BaseTool]):
    """
    Central registry of callable tools, usable as the loop's tool executor.

    Args:
        tools: Optional tools to register up front.
        timeout_seconds: Optional per-call timeout. A timed-out tool that
            already started keeps running in its worker thread; one still
            queued is cancelled and never runs.
    """

    def __init__(
        self,
        tools: Optional[Iterable[BaseTool]] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self._registry: Dict[str, BaseTool] = {}
        self._timeout_seconds = timeout_seconds
        self._pool: Optional[ThreadPoolExecutor] = None
        for tool in tools or ():
            self.register(tool)

    def register(self, tool: BaseTool) -> None:
        """
        Registers a tool with the library.

        Args:
            tool: The tool instance to register.

        Raises:
            ValueError: If a tool with the same name is already registered.
        """
        if tool.name in self._registry:
            raise ValueError(f"Tool '{tool.name}' is already registered.")
        self._registry[tool.name] = tool

    def get_tool(self, name: str) -> Optional[BaseTool]:
        return self._registry.get(name)

    def list_tools(
        self,
        whitelist: Optional[List[str]] = None,
        blacklist: Optional[List[str]] = None,
    ) -> List[BaseTool]:
        """
        Returns tools filtered by access control lists.

        Args:
            whitelist: Tool names that are allowed.
            blacklist: Tool names that are forbidden.

        Returns:
            The filtered list of tools.
        """
        tools = list(self._registry.values())
        return self.apply_access_control(tools, whitelist, blacklist)

    def definitions(
        self,
        whitelist: Optional[List[str]] = None,
        blacklist: Optional[List[str]] = None,
    ) -> List[Dict[str, Any]]:
        """Return OpenAI-style definitions for the filtered tools."""

        return [
            tool.as_openai_tool() for tool in self.list_tools(whitelist, blacklist)
        ]

    def execute(
        self, name: str, args: Dict[str, Any], context: ExecutionContext
    ) -> str:
        """
        Executes a registered tool.

        Args:
            name: Tool name requested by the model.
            args: Tool input arguments.
            context: Execution context of the requesting loop.

        Returns:
            The tool output text.

        Raises:
            UnknownToolError: If no tool is registered under ``name``.
            ToolTimeoutError: If the tool exceeds the configured timeout.
        """
        tool = self.get_tool(name)
        if tool is None:
            raise UnknownToolError(f"Tool {name} not found or access denied.")
        if self._timeout_seconds is None:
            return tool.execute(args, context)

        future = self._get_pool().submit(tool.execute, args, context)
        try:
            return future.result(timeout=self._timeout_seconds)
        except FutureTimeoutError as exc:
            # A call still queued behind busy workers must never start later.
            cancelled = future.cancel()
            logger.warning(
                "Tool timed out",
                extra=context.log_extra(
                    tool_name=name,
                    timeout_seconds=self._timeout_seconds,
                    started=not cancelled,
                ),
            )
            raise ToolTimeoutError(
                f"Tool {name} did not finish within {self._timeout_seconds:g}s."
            ) from exc

    def close(self, wait: bool = False) -> None:
        """
        Releases the worker pool used for timed tool calls.

        Args:
            wait: Whether to block until running tool calls finish.
        """
        if self._pool is not None:
            self._pool.shutdown(wait=wait)
            self._pool = None

    def _get_pool(self) -> ThreadPoolExecutor:
        if self._pool is None:
            self._pool = ThreadPoolExecutor(
                max_workers=4, thread_name_prefix="agentloop-tool"
            )
        return self._pool

    def __contains__(self, name: object) -> bool:
        return name in self._registry

    def __len__(self) -> int:
        return len(self._registry)
