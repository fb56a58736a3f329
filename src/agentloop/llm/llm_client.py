"""Protocol implemented by LLM clients."""

from typing import Protocol

from agentloop.llm.llm_request import LLMRequest
from agentloop.llm.llm_response import LLMResponse


class LLMClient(Protocol):
    """Protocol for executing a tool-aware LLM call."""

    def complete(self, request: LLMRequest) -> LLMResponse:
        """Execute an LLM request.

        Implementations must raise on transport or authentication failures
        and must never drop tool-use blocks.

        Args:
            request: Request to execute.

        Returns:
            The normalized model response.

        Raises:
            LLMError: On any provider failure.
        """

        ...
