"""Provider-neutral LLM request."""

from typing import Any, Dict, List

from pydantic import BaseModel, Field

from agentloop.domain.messages import Message


class LLMRequest(BaseModel):
    """Request payload for one LLM call made by the agent loop."""

    system_prompt: str = Field(description="System prompt for the call.")
    messages: List[Message] = Field(description="Conversation history, oldest first.")
    tools: List[Dict[str, Any]] = Field(
        default_factory=list,
        description="OpenAI-style tool definitions; empty disables tool use.",
    )
    metadata: Dict[str, Any] = Field(
        default_factory=dict, description="Session metadata for auditing."
    )

    @property
    def tools_enabled(self) -> bool:
        return bool(self.tools)
