"""Tool execution utilities for agent loops."""

import time
from dataclasses import dataclass
from typing import Any, Dict, Protocol

from agentloop.domain.error_sanitizer import describe_tool_error
from agentloop.domain.execution_context import ExecutionContext
from agentloop.domain.messages import ToolResultBlock
from agentloop.domain.tool import ToolInvocation
from agentloop.engine.tool_result_cache import ToolResultCache, mark_cached

DEFAULT_TRUNCATION_LIMIT = 12_000


class ToolExecutor(Protocol):
    """Protocol for performing a tool's side effect."""

    def execute(
        self, name: str, args: Dict[str, Any], context: ExecutionContext
    ) -> str:
        """Execute a tool call.

        Args:
            name: Tool name.
            args: Tool input arguments.
            context: Execution context of the requesting loop.

        Returns:
            The tool output text.
        """

        ...


@dataclass(frozen=True)
class ToolOutcome:
    """Result of running one invocation through the runner."""

    block: ToolResultBlock
    cached: bool
    failed: bool
    duration_ms: float


def truncate_result(text: str, limit: int) -> tuple[str, bool]:
    """Cut ``text`` to ``limit`` characters, appending an explicit notice.

    Args:
        text: Tool output.
        limit: Character ceiling.

    Returns:
        Tuple of (possibly truncated text, whether it was truncated).
    """

    if len(text) <= limit:
        return text, False
    notice = (
        f"\n\n[truncated: showing the first {limit} of {len(text)} characters]"
    )
    return f"{text[:limit]}{notice}", True


class ToolRunner:
    """
    Executes tool invocations with caching, error containment, and truncation.

    Tool failures never escape: they become ``Error: <message>`` results so
    the model can correct itself.

    Args:
        executor: The tool executor performing side effects.
        cache: Result cache for the current loop invocation.
        truncation_limit: Character ceiling for a single result.
    """

    def __init__(
        self,
        executor: ToolExecutor,
        cache: ToolResultCache,
        truncation_limit: int = DEFAULT_TRUNCATION_LIMIT,
    ) -> None:
        self.executor = executor
        self.cache = cache
        self.truncation_limit = truncation_limit

    def run(self, invocation: ToolInvocation, context: ExecutionContext) -> ToolOutcome:
        """
        Runs a single invocation.

        Args:
            invocation: The tool call to run.
            context: Execution context of the requesting loop.

        Returns:
            The outcome, holding the ToolResultBlock to feed back.
        """
        cached = self.cache.lookup(invocation)
        if cached is not None:
            content, truncated = truncate_result(cached, self.truncation_limit)
            return ToolOutcome(
                block=ToolResultBlock(
                    tool_use_id=invocation.id,
                    content=mark_cached(content),
                    truncated=truncated,
                ),
                cached=True,
                failed=False,
                duration_ms=0.0,
            )

        started = time.perf_counter()
        failed = False
        try:
            output = self.executor.execute(invocation.name, invocation.input, context)
            if not isinstance(output, str):
                output = str(output)
        except Exception as exc:
            failed = True
            output = describe_tool_error(exc)
            context.logger.warning(
                "Tool execution failed",
                extra=context.log_extra(
                    tool_name=invocation.name, error_class=exc.__class__.__name__
                ),
            )
        duration_ms = (time.perf_counter() - started) * 1000

        if not failed:
            self.cache.store(invocation, output)
        content, truncated = truncate_result(output, self.truncation_limit)
        return ToolOutcome(
            block=ToolResultBlock(
                tool_use_id=invocation.id, content=content, truncated=truncated
            ),
            cached=False,
            failed=failed,
            duration_ms=duration_ms,
        )
